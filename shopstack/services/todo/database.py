"""Database engine and session management for the todo API."""
from collections.abc import Generator
from pathlib import Path
from typing import Any

import structlog
from sqlalchemy import create_engine, func, select
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base, Todo

logger = structlog.get_logger(__name__)

SEED_TODOS = [
    ("Learn OpenTelemetry", "Study distributed tracing with OpenTelemetry", False),
    ("Setup Grafana", "Configure Grafana dashboards for monitoring", True),
    ("Implement Todo App", "Create a full-stack todo application with tracing", False),
    ("Study Tempo", "Learn how to use Grafana Tempo for trace visualization", False),
]


class TodoDatabase:
    """
    Engine, session factory and schema setup for one database URL.

    An in-memory SQLite URL ("sqlite://") shares a single connection so every
    session sees the same tables.
    """

    def __init__(self, database_url: str):
        url = make_url(database_url)
        engine_kwargs: dict[str, Any] = {}
        if url.get_backend_name() == "sqlite":
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if url.database in (None, "", ":memory:"):
                engine_kwargs["poolclass"] = StaticPool
            else:
                Path(url.database).parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(database_url, **engine_kwargs)
        self._session_factory = sessionmaker(
            self.engine, expire_on_commit=False, autoflush=False
        )

    def init(self) -> None:
        """Create tables and seed sample todos into an empty table."""
        Base.metadata.create_all(self.engine)
        with self._session_factory() as session:
            if session.scalar(select(func.count()).select_from(Todo)):
                return
            session.add_all(
                Todo(title=title, description=description, completed=completed)
                for title, description, completed in SEED_TODOS
            )
            session.commit()
            logger.info("todos_seeded", count=len(SEED_TODOS))

    def session(self) -> Generator[Session, Any, None]:
        """
        Dependency for getting database sessions.

        Commits when the handler returns, rolls back if it raises.
        """
        with self._session_factory() as session:
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise

    def dispose(self) -> None:
        self.engine.dispose()
