"""API v1 routers."""

from autohub.api.v1.part_orders import router as part_orders_router
from autohub.api.v1.parts import router as parts_router
from autohub.api.v1.transactions import router as transactions_router

__all__ = ["part_orders_router", "parts_router", "transactions_router"]
