"""Database module."""
from bmcsync.db.database import close_db, init_db
from bmcsync.db.models import Base, Node, NodeDetail

__all__ = ["init_db", "close_db", "Base", "Node", "NodeDetail"]
