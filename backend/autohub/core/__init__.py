"""Core utilities shared across the backend: configuration, logging, errors and validation."""
