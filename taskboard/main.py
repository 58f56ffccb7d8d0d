from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .db import TaskStore
from .schemas import (
    MAX_ID, CategoryCreate, CategoryOut, StatusUpdate, TaskCreate, TaskEdit, TaskOut,
    field_errors, today,
)
from .settings import Settings

logger = logging.getLogger(__name__)

router = APIRouter()


def get_store(request: Request) -> TaskStore:
    return request.app.state.store


def to_category_out(r) -> CategoryOut:
    return CategoryOut(id=int(r["id"]), name=r["name"])


def to_task_out(r) -> TaskOut:
    category = None
    if r.get("category_name") is not None:
        category = CategoryOut(id=int(r["category_id"]), name=r["category_name"])
    return TaskOut(
        id=int(r["id"]), name=r["name"], description=r["description"],
        duedate=r["duedate"], status=r["status"], owner=r["owner"],
        categoryId=int(r["category_id"]), category=category,
        createdAt=int(r["created_at"]), updatedAt=int(r["updated_at"]),
    )


def parse_task_id(raw: str) -> int:
    try:
        tid = int(raw)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="Invalid task ID")
    if not 0 < tid <= MAX_ID:
        raise HTTPException(status_code=400, detail="Invalid task ID")
    return tid


def ensure_category_exists(store: TaskStore, category_id: int) -> None:
    if not store.category_exists(category_id):
        raise HTTPException(
            status_code=400,
            detail={"error": "Validation failed", "fields": {"categoryId": ["Category not found"]}},
        )


@router.get("/health")
def health():
    return {"ok": True, "today": today().isoformat()}


@router.post("/categories", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(payload: CategoryCreate, store: TaskStore = Depends(get_store)):
    row = store.create_category(payload.model_dump())
    logger.info("Created category %s (%r)", row["id"], row["name"])
    return to_category_out(row)


@router.get("/categories", response_model=List[CategoryOut])
def list_categories(store: TaskStore = Depends(get_store)):
    return [to_category_out(r) for r in store.list_categories()]


@router.post("/tasks", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
def create_task(payload: TaskCreate, store: TaskStore = Depends(get_store)):
    ensure_category_exists(store, payload.categoryId)
    data = payload.model_dump()
    data["status"] = "OPEN"
    row = store.create_task(data)
    logger.info("Created task %s for %s", row["id"], row["owner"])
    return to_task_out(row)


@router.get("/tasks", response_model=List[TaskOut])
def list_tasks(store: TaskStore = Depends(get_store)):
    return [to_task_out(r) for r in store.list_tasks(exclude_status="DELETED")]


@router.put("/tasks", response_model=TaskOut)
def update_task_status(payload: StatusUpdate, store: TaskStore = Depends(get_store)):
    """Status-only path used by the close/delete row actions."""
    if payload.id is None:
        raise HTTPException(status_code=400, detail="Task ID is required")
    row = store.update_status(payload.id, payload.status)
    if not row:
        raise HTTPException(status_code=404, detail="Task not found")
    logger.info("Task %s -> %s", payload.id, payload.status)
    return to_task_out(row)


@router.get("/tasks/{task_id}", response_model=TaskOut)
def get_task(task_id: str, store: TaskStore = Depends(get_store)):
    tid = parse_task_id(task_id)
    row = store.get_task(tid)
    if not row:
        raise HTTPException(status_code=404, detail="Task not found")
    return to_task_out(row)


@router.put("/tasks/{task_id}", response_model=TaskOut)
def update_task(task_id: str, payload: TaskEdit, store: TaskStore = Depends(get_store)):
    """Full overwrite: every field in the payload is written."""
    tid = parse_task_id(task_id)
    ensure_category_exists(store, payload.categoryId)
    row = store.update_task(tid, payload.model_dump())
    if not row:
        raise HTTPException(status_code=404, detail="Task not found")
    logger.info("Updated task %s", tid)
    return to_task_out(row)


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    body = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "fields": field_errors(exc.errors())},
    )


async def _store_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Store error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "An unexpected error occurred."})


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "An unexpected error occurred."})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    store = TaskStore(settings.database_url)
    store.init_db()

    app = FastAPI(title="Taskboard")
    app.state.settings = settings
    app.state.store = store
    app.add_middleware(
        CORSMiddleware, allow_origins=list(settings.cors_origins), allow_credentials=False,
        allow_methods=["*"], allow_headers=["*"],
    )
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(SQLAlchemyError, _store_error)
    app.add_exception_handler(Exception, _unhandled_error)
    app.include_router(router, prefix="/api")
    return app


def run() -> None:
    import uvicorn

    from .logging_setup import setup_logging

    settings = Settings.from_env()
    setup_logging(level=settings.log_level, log_dir=settings.log_dir)
    uvicorn.run(
        "taskboard.main:create_app", factory=True,
        host=settings.host, port=settings.port, log_config=None,
    )
