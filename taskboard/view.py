"""Task list view: filter, sort and row-action state for the task table.

The table never edits the list it was given. ``derive_view`` returns a new
list; ``TaskTable`` recomputes it whenever the tasks, the filter or the sort
change.
"""

from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from .client import ApiError
from .session import UserContext

logger = logging.getLogger(__name__)

NO_CATEGORY = "No Category"

Task = Dict[str, Any]


def category_label(task: Task) -> str:
    category = task.get("category") or {}
    return category.get("name") or NO_CATEGORY


def _text(field: str) -> Callable[[Task], str]:
    def key(task: Task) -> str:
        value = task.get(field)
        return "" if value is None else str(value)
    return key


class SortField(str, Enum):
    ID = "id"
    NAME = "name"
    DESCRIPTION = "description"
    DUEDATE = "duedate"
    STATUS = "status"
    OWNER = "owner"
    CATEGORY = "category.name"

    @property
    def key(self) -> Callable[[Task], str]:
        return SORT_KEYS[self]


SORT_KEYS: Dict[SortField, Callable[[Task], str]] = {
    SortField.ID: _text("id"),
    SortField.NAME: _text("name"),
    SortField.DESCRIPTION: _text("description"),
    SortField.DUEDATE: _text("duedate"),
    SortField.STATUS: _text("status"),
    SortField.OWNER: _text("owner"),
    SortField.CATEGORY: category_label,
}


class Direction(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class TaskFilter:
    category: str = ""
    status: str = ""
    owner: str = ""
    search: str = ""

    def matches(self, task: Task) -> bool:
        if self.category and category_label(task) != self.category:
            return False
        if self.status and task.get("status") != self.status:
            return False
        if self.owner and task.get("owner") != self.owner:
            return False
        if self.search:
            term = self.search.lower()
            name = (task.get("name") or "").lower()
            description = (task.get("description") or "").lower()
            if term not in name and term not in description:
                return False
        return True


@dataclass(frozen=True)
class SortState:
    field: Optional[SortField] = None
    direction: Direction = Direction.ASC

    def toggle(self, field: SortField) -> "SortState":
        """Column-header click: ascending -> descending on the active column, else ascending."""
        field = SortField(field)
        if self.field == field and self.direction == Direction.ASC:
            return SortState(field, Direction.DESC)
        return SortState(field, Direction.ASC)


def filter_tasks(tasks: Sequence[Task], task_filter: TaskFilter) -> List[Task]:
    return [t for t in tasks if task_filter.matches(t)]


def sort_tasks(tasks: Sequence[Task], sort: SortState) -> List[Task]:
    if sort.field is None:
        return list(tasks)
    # sorted() is stable in both directions; equal keys keep their order.
    return sorted(tasks, key=sort.field.key, reverse=sort.direction == Direction.DESC)


def derive_view(tasks: Sequence[Task], task_filter: TaskFilter, sort: SortState) -> List[Task]:
    return sort_tasks(filter_tasks(tasks, task_filter), sort)


@dataclass(frozen=True)
class FilterOptions:
    categories: List[str]
    owners: List[str]
    statuses: List[str]


def filter_options(tasks: Sequence[Task]) -> FilterOptions:
    """Distinct dropdown values taken from the raw list, not the filtered one."""
    return FilterOptions(
        categories=sorted({category_label(t) for t in tasks}),
        owners=sorted({t.get("owner") for t in tasks if t.get("owner")}),
        statuses=sorted({t.get("status") for t in tasks if t.get("status")}),
    )


def can_modify(task: Task, username: str) -> bool:
    """Edit/close/delete are enabled for the owner only, and never on CLOSED rows."""
    if not username or task.get("owner") != username:
        return False
    return task.get("status") != "CLOSED"


@dataclass(frozen=True)
class Row:
    task: Task
    can_edit: bool

    @property
    def id(self) -> int:
        return self.task["id"]


class TaskTable:
    """State behind the task list page.

    Holds the raw tasks from the API plus the current filter and sort and
    exposes the derived rows. Close and delete go through the status-only
    update path.
    """

    def __init__(self, client, context: UserContext) -> None:
        self.client = client
        self.context = context
        self.task_filter = TaskFilter()
        self.sort = SortState()
        self.error: Optional[str] = None
        self._tasks: tuple = ()
        self._view: List[Task] = []
        self._rows: List[Row] = []
        self._options = FilterOptions([], [], [])
        # The context only holds a weak reference; a dropped table unsubscribes itself.
        ref = weakref.ref(self)

        def on_user_change(_username: str) -> None:
            table = ref()
            if table is None:
                unsubscribe()
            else:
                table._recompute()

        unsubscribe = context.subscribe(on_user_change)
        self._unsubscribe = unsubscribe

    @property
    def tasks(self) -> tuple:
        return self._tasks

    @property
    def view(self) -> List[Task]:
        return list(self._view)

    @property
    def options(self) -> FilterOptions:
        return self._options

    @property
    def rows(self) -> List[Row]:
        return list(self._rows)

    def refresh(self) -> None:
        try:
            self.load(self.client.list_tasks())
            self.error = None
        except ApiError as exc:
            logger.warning("Could not load tasks: %s", exc)
            self.error = "Error fetching tasks."

    def load(self, tasks: Sequence[Task]) -> None:
        # Deleted rows never show in the table even if the server sends them.
        self._tasks = tuple(t for t in tasks if t.get("status") != "DELETED")
        self._options = filter_options(self._tasks)
        self._recompute()

    def set_filter(self, **changes: str) -> None:
        self.task_filter = replace(self.task_filter, **changes)
        self._recompute()

    def clear_filter(self) -> None:
        self.task_filter = TaskFilter()
        self._recompute()

    def sort_by(self, field: SortField) -> None:
        self.sort = self.sort.toggle(field)
        self._recompute()

    def close(self, task_id: int) -> bool:
        return self._set_status(task_id, "CLOSED")

    def delete(self, task_id: int) -> bool:
        return self._set_status(task_id, "DELETED")

    def detach(self) -> None:
        """Stop following login changes now instead of when the table is collected."""
        self._unsubscribe()

    def _set_status(self, task_id: int, status: str) -> bool:
        task = next((t for t in self._tasks if t["id"] == task_id), None)
        if task is None or not can_modify(task, self.context.username):
            logger.info("Ignoring %s on task %s: action not allowed", status, task_id)
            return False
        try:
            self.client.set_status(task_id, status)
        except ApiError as exc:
            logger.warning("Could not set task %s to %s: %s", task_id, status, exc)
            self.error = "Error updating task."
            return False
        if status == "DELETED":
            self._tasks = tuple(t for t in self._tasks if t["id"] != task_id)
        else:
            self._tasks = tuple(dict(t, status=status) if t["id"] == task_id else t for t in self._tasks)
        self._options = filter_options(self._tasks)
        self.error = None
        self._recompute()
        return True

    def _recompute(self) -> None:
        self._view = derive_view(self._tasks, self.task_filter, self.sort)
        username = self.context.username
        self._rows = [Row(t, can_modify(t, username)) for t in self._view]
