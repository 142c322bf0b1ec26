"""
Todo API routes.

Handlers are plain functions (FastAPI runs them in its threadpool) over a
synchronous SQLAlchemy session. Every log line carries an `operation` field.
"""
from collections.abc import Generator
from typing import Any, List

import structlog
from fastapi import APIRouter, Depends, Query, Request, status
from opentelemetry import trace
from sqlalchemy import select
from sqlalchemy.orm import Session

from ...common.errors import NotFoundError, ServiceError
from ...observability.metrics import todo_operations_total
from .models import Todo
from .schemas import TodoCreate, TodoRead, TodoUpdate

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

DEFAULT_PAGE_SIZE = 10

todo_router = APIRouter(tags=["todos"])


def get_db(request: Request) -> Generator[Session, Any, None]:
    yield from request.app.state.todo_db.session()


def _get_or_404(db: Session, todo_id: int, operation: str) -> Todo:
    todo = db.get(Todo, todo_id)
    if todo is None:
        logger.warning("todo_not_found", operation=operation, todo_id=todo_id)
        raise NotFoundError("ToDo not found")
    return todo


@todo_router.post("/todos", response_model=TodoRead, status_code=status.HTTP_201_CREATED)
def create_todo(payload: TodoCreate, db: Session = Depends(get_db)):
    with tracer.start_as_current_span("create_todo") as span:
        todo = Todo(**payload.model_dump())
        db.add(todo)
        db.flush()

        span.set_attribute("todo.id", todo.id)
        todo_operations_total.labels(operation="create").inc()
        logger.info("todo_created", operation="create_todo", todo_id=todo.id)
        return todo


@todo_router.get("/todos", response_model=List[TodoRead])
def list_todos(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=0),
    db: Session = Depends(get_db),
):
    """Page through todos by id. A limit of 0 means the default page size."""
    with tracer.start_as_current_span("list_todos") as span:
        limit = limit or DEFAULT_PAGE_SIZE
        todos = db.scalars(select(Todo).order_by(Todo.id).offset(skip).limit(limit)).all()

        span.set_attribute("todos.count", len(todos))
        todo_operations_total.labels(operation="list").inc()
        logger.info("todos_listed", operation="list_todos", skip=skip, limit=limit, count=len(todos))
        return todos


@todo_router.get("/todos/{todo_id}", response_model=TodoRead)
def read_todo(todo_id: int, db: Session = Depends(get_db)):
    with tracer.start_as_current_span("read_todo") as span:
        span.set_attribute("todo.id", todo_id)
        todo = _get_or_404(db, todo_id, "read_todo")
        todo_operations_total.labels(operation="read").inc()
        logger.info("todo_read", operation="read_todo", todo_id=todo_id)
        return todo


@todo_router.put("/todos/{todo_id}", response_model=TodoRead)
def update_todo(todo_id: int, payload: TodoUpdate, db: Session = Depends(get_db)):
    with tracer.start_as_current_span("update_todo") as span:
        span.set_attribute("todo.id", todo_id)
        todo = _get_or_404(db, todo_id, "update_todo")

        changes = payload.model_dump(exclude_none=True)
        for field, value in changes.items():
            setattr(todo, field, value)
        db.flush()

        todo_operations_total.labels(operation="update").inc()
        logger.info("todo_updated", operation="update_todo", todo_id=todo_id, fields=sorted(changes))
        return todo


@todo_router.delete("/todos/{todo_id}", response_model=TodoRead)
def delete_todo(todo_id: int, db: Session = Depends(get_db)):
    """Delete a todo and return it as it was."""
    with tracer.start_as_current_span("delete_todo") as span:
        span.set_attribute("todo.id", todo_id)
        todo = _get_or_404(db, todo_id, "delete_todo")
        deleted = TodoRead.model_validate(todo)
        db.delete(todo)

        todo_operations_total.labels(operation="delete").inc()
        logger.info("todo_deleted", operation="delete_todo", todo_id=todo_id)
        return deleted


@todo_router.get("/error")
def error_endpoint():
    """Always fails; used to produce an error trace and log on demand."""
    with tracer.start_as_current_span("error_handler") as span:
        span.set_attribute("error.simulated", True)
        logger.error("simulated_error", operation="error_handler")
        raise ServiceError("This is an error")
