"""New/edit task and new category forms.

Forms validate with the same schemas the API uses, so most mistakes are
reported per field before anything is sent. A failed save keeps the entered
values so the user can fix them and submit again.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .client import ApiError, NotFound, TaskboardClient, ValidationFailed
from .schemas import CategoryCreate, TaskCreate, TaskEdit, field_errors
from .session import UserContext

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR = "An unexpected error occurred."


class TaskForm:
    def __init__(self, client: TaskboardClient, context: UserContext, task_id: Optional[int] = None) -> None:
        self.client = client
        self.context = context
        self.task_id = task_id
        self.values: Dict[str, Any] = {"owner": context.username}
        self.categories: List[Dict[str, Any]] = []
        self.field_errors: Dict[str, List[str]] = {}
        self.error: Optional[str] = None
        self.submitting = False
        self.saved: Optional[Dict[str, Any]] = None

    @property
    def is_edit(self) -> bool:
        return self.task_id is not None

    def load(self) -> bool:
        """Fetch categories (and the task, when editing) and pre-fill the values."""
        if not self.context.logged_in:
            self.error = "Log in to manage tasks."
            return False
        try:
            self.categories = self.client.list_categories()
            if self.is_edit:
                task = self.client.get_task(self.task_id)
                self.values = {
                    "name": task["name"],
                    "description": task["description"],
                    "categoryId": task["categoryId"],
                    "duedate": task["duedate"],
                    "owner": self.context.username or task["owner"],
                    # the edit path has no OPEN option
                    "status": task["status"] if task["status"] != "OPEN" else "IN_PROGRESS",
                }
        except NotFound:
            self.error = "Task not found"
            return False
        except ApiError as exc:
            logger.warning("Could not load form data: %s", exc)
            self.error = "Failed to load task or category data"
            return False
        self.error = None
        return True

    def validate(self) -> Optional[Dict[str, Any]]:
        schema = TaskEdit if self.is_edit else TaskCreate
        try:
            model = schema.model_validate(self.values, context={"require_future": True})
        except ValidationError as exc:
            self.field_errors = field_errors(exc.errors())
            return None
        self.field_errors = {}
        return model.model_dump()

    def submit(self, **changes: Any) -> Optional[Dict[str, Any]]:
        """Validate and save; returns the saved task or None."""
        self.values.update(changes)
        if not self.values.get("owner"):
            self.values["owner"] = self.context.username
        payload = self.validate()
        if payload is None:
            return None
        self.submitting = True
        try:
            if self.is_edit:
                self.saved = self.client.update_task(self.task_id, payload)
            else:
                self.saved = self.client.create_task(payload)
        except ValidationFailed as exc:
            self.field_errors = exc.fields
            self.error = str(exc)
            return None
        except ApiError as exc:
            logger.warning("Could not save task: %s", exc)
            self.error = UNEXPECTED_ERROR
            return None
        finally:
            self.submitting = False
        self.error = None
        return self.saved


class CategoryForm:
    def __init__(self, client: TaskboardClient) -> None:
        self.client = client
        self.field_errors: Dict[str, List[str]] = {}
        self.error: Optional[str] = None
        self.submitting = False

    def submit(self, name: str) -> Optional[Dict[str, Any]]:
        try:
            payload = CategoryCreate(name=name)
        except ValidationError as exc:
            self.field_errors = field_errors(exc.errors())
            return None
        self.field_errors = {}
        self.submitting = True
        try:
            created = self.client.create_category(payload.name)
        except ApiError as exc:
            logger.warning("Could not create category: %s", exc)
            self.error = "Error in Category submission."
            return None
        finally:
            self.submitting = False
        self.error = None
        return created
