"""SQLAlchemy Core store for tasks and categories.

One TaskStore (and so one Engine) is built per process and shared by every
request; nothing here opens a new engine per call.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    create_engine, MetaData, Table, Column, ForeignKey,
    String, Integer, BigInteger, Text, Date,
    select, insert, update,
)
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

metadata = MetaData()

categories = Table(
    "categories", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(20), nullable=False),
)

tasks = Table(
    "tasks", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(50), nullable=False),
    Column("description", Text, nullable=False),
    Column("duedate", Date, nullable=False, index=True),
    Column("status", String(16), nullable=False, server_default="OPEN", index=True),
    Column("owner", String(25), nullable=False),
    Column("category_id", Integer, ForeignKey("categories.id"), nullable=False),
    Column("created_at", BigInteger, nullable=False),
    Column("updated_at", BigInteger, nullable=False),
)


def now_ts() -> int:
    return int(datetime.now(tz=timezone.utc).timestamp())


def get_engine(db_url: str) -> Engine:
    connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}
    return create_engine(db_url, future=True, pool_pre_ping=True, connect_args=connect_args)


def _task_query():
    """Tasks joined with their category name (outer join: a dangling FK still lists)."""
    j = tasks.outerjoin(categories, tasks.c.category_id == categories.c.id)
    return select(tasks, categories.c.name.label("category_name")).select_from(j)


class TaskStore:
    """Shared handle to the relational store."""

    def __init__(self, db_url: str) -> None:
        self.engine = get_engine(db_url)

    def init_db(self) -> None:
        """Create tables if missing."""
        metadata.create_all(self.engine)
        logger.info("Store ready at %s", self.engine.url.render_as_string(hide_password=True))

    def dispose(self) -> None:
        self.engine.dispose()

    # --- categories ---

    def create_category(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        stmt = insert(categories).values(name=payload["name"]).returning(categories)
        with self.engine.begin() as conn:
            row = conn.execute(stmt).mappings().first()
        return dict(row)

    def list_categories(self) -> List[Dict[str, Any]]:
        stmt = select(categories).order_by(categories.c.id.asc())
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [dict(r) for r in rows]

    def category_exists(self, category_id: int) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(select(categories.c.id).where(categories.c.id == category_id)).first()
        return row is not None

    # --- tasks ---

    def create_task(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        ts = now_ts()
        stmt = insert(tasks).values(
            name=payload["name"],
            description=payload["description"],
            duedate=payload["duedate"],
            owner=payload["owner"],
            status=payload.get("status", "OPEN"),
            category_id=int(payload["categoryId"]),
            created_at=ts,
            updated_at=ts,
        ).returning(tasks.c.id)
        with self.engine.begin() as conn:
            task_id = conn.execute(stmt).scalar_one()
            row = conn.execute(_task_query().where(tasks.c.id == task_id)).mappings().first()
        return dict(row)

    def list_tasks(self, exclude_status: Optional[str] = "DELETED") -> List[Dict[str, Any]]:
        stmt = _task_query()
        if exclude_status:
            stmt = stmt.where(tasks.c.status != exclude_status)
        stmt = stmt.order_by(tasks.c.duedate.asc(), tasks.c.id.asc())
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [dict(r) for r in rows]

    def get_task(self, task_id: int) -> Optional[Dict[str, Any]]:
        with self.engine.connect() as conn:
            row = conn.execute(_task_query().where(tasks.c.id == task_id)).mappings().first()
        return dict(row) if row else None

    def update_task(self, task_id: int, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Write every given field; returns None when the row does not exist."""
        values = {
            "name": fields["name"],
            "description": fields["description"],
            "duedate": fields["duedate"],
            "owner": fields["owner"],
            "status": fields["status"],
            "category_id": int(fields["categoryId"]),
        }
        return self._update(task_id, values)

    def update_status(self, task_id: int, status: str) -> Optional[Dict[str, Any]]:
        return self._update(task_id, {"status": status})

    def _update(self, task_id: int, values: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        values["updated_at"] = now_ts()
        with self.engine.begin() as conn:
            res = conn.execute(update(tasks).where(tasks.c.id == task_id).values(**values))
            if res.rowcount == 0:
                return None
            row = conn.execute(_task_query().where(tasks.c.id == task_id)).mappings().first()
        return dict(row)
