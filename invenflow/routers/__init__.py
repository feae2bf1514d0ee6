# invenflow/routers/__init__.py

from .inventory.bulk_movement_router import router as bulk_movement_router
from .inventory.public_bulk_movement_router import router as public_bulk_movement_router


__all__ = [
"bulk_movement_router",
"public_bulk_movement_router",
]
