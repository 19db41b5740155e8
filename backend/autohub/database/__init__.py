"""
Database package.

- base: declarative base and mixins
- connection: async engine and session management
- models: ORM models for parts, orders, payables and payment transactions
"""

__all__ = []
