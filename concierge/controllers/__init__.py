"""FastAPI routers acting as controllers in the MVC architecture."""

from . import conversations, knowledge, realtime, users

__all__ = ["conversations", "knowledge", "realtime", "users"]
