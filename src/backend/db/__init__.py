"""Database module."""

from db.cosmos_session import close_cosmos, ensure_containers, get_container

__all__ = ["close_cosmos", "ensure_containers", "get_container"]
