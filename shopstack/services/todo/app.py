"""Todo API application."""
from typing import Optional

from fastapi import FastAPI

from ...common.app import create_service_app
from ...config import Settings, get_settings
from .database import TodoDatabase
from .routes import todo_router

SERVICE_NAME = "todo-api"


def create_todo_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = (settings or get_settings()).for_service(SERVICE_NAME)

    database = TodoDatabase(settings.todo_database_url)
    database.init()

    app = create_service_app(
        settings,
        routers=[todo_router],
        title="Todo API",
        description="CRUD over a SQLite todo list with traced, correlated logs",
    )
    app.state.todo_db = database
    return app
