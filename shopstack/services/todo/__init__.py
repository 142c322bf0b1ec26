"""Todo API: standalone CRUD service."""
from .app import SERVICE_NAME, create_todo_app

__all__ = ["SERVICE_NAME", "create_todo_app"]
