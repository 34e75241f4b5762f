"""Database layer: declarative base, engine/session management, ORM guards."""

from kazbooks_kernel.db.base import Base, TrackedBase, UUIDString

__all__ = ["Base", "TrackedBase", "UUIDString"]
