"""Auth service application."""
from typing import Optional

from fastapi import FastAPI

from ...common.app import create_service_app
from ...config import Settings, get_settings
from .routes import auth_router
from .sessions import SessionStore

SERVICE_NAME = "auth-service"


def create_auth_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = (settings or get_settings()).for_service(SERVICE_NAME)

    app = create_service_app(
        settings,
        routers=[auth_router],
        title="Auth Service",
        description="Demo login issuing JWTs; sessions kept in a JSON file",
    )
    app.state.sessions = SessionStore(settings.data_dir / "sessions.json")
    return app
