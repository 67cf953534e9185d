"""Shared FastAPI dependencies."""
from bmcsync.core.scheduler import InventoryScheduler, inventory_scheduler
from bmcsync.db.database import async_session_factory
from bmcsync.db.store import NodeStore


def get_store() -> NodeStore:
    """Node store bound to the application database."""
    return NodeStore(async_session_factory)


def get_scheduler() -> InventoryScheduler:
    """The application's inventory scheduler."""
    return inventory_scheduler
