"""Building blocks shared by the services: errors, auth, traced client, stores, app factory."""
from .app import create_service_app
from .auth import UserContext, get_current_user
from .client import ServiceClient
from .errors import (
    AuthenticationError,
    BadRequestError,
    NotFoundError,
    ServiceError,
    UpstreamServiceError,
)
from .store import JsonFileStore

__all__ = [
    "AuthenticationError",
    "BadRequestError",
    "JsonFileStore",
    "NotFoundError",
    "ServiceClient",
    "ServiceError",
    "UpstreamServiceError",
    "UserContext",
    "create_service_app",
    "get_current_user",
]
