"""Auth service: login, token verification, logout."""
from .app import SERVICE_NAME, create_auth_app

__all__ = ["SERVICE_NAME", "create_auth_app"]
