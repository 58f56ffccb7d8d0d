"""Request/response models shared by the API and the client-side forms.

The same schema validates a payload in the browser-side form before it is
sent and again in the route handler when it arrives.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

Status = Literal["OPEN", "IN_PROGRESS", "CLOSED", "DELETED"]
# OPEN is only ever set by task creation.
EditStatus = Literal["IN_PROGRESS", "CLOSED", "DELETED"]

# Largest id the store can hold (signed 64-bit).
MAX_ID = 2**63 - 1


def today() -> date:
    return date.today()


def parse_due_date(v: Any) -> date:
    """Accept a date, a datetime, YYYY-MM-DD, or a full ISO timestamp."""
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    if v is None or (isinstance(v, str) and not v.strip()):
        raise PydanticCustomError("missing_date", "Due date is required.")
    if not isinstance(v, str):
        raise PydanticCustomError("date_type", "Invalid date format. Use YYYY-MM-DD.")
    s = v.strip()
    try:
        if len(s) == 10:
            return datetime.strptime(s, "%Y-%m-%d").date()
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        raise PydanticCustomError("date_format", "Invalid date format. Use YYYY-MM-DD.")


def check_length(v: str, max_length: Optional[int], required: str, too_long: str = "") -> str:
    if not v:
        raise PydanticCustomError("string_too_short", required)
    if max_length is not None and len(v) > max_length:
        raise PydanticCustomError("string_too_long", too_long)
    return v


def check_future(d: date) -> date:
    # Today is not the future: only tomorrow or later passes.
    if d <= today():
        raise PydanticCustomError("date_not_future", "Due date must be after today.")
    return d


class CategoryCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str

    @field_validator("name")
    @classmethod
    def name_length(cls, v: str) -> str:
        return check_length(v, 20, "A category value is required.", "Category must be 20 characters or less.")


class CategoryOut(BaseModel):
    id: int
    name: str


class _TaskFields(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str
    description: str
    duedate: date
    owner: str
    categoryId: int = Field(gt=0, le=MAX_ID)

    @field_validator("name")
    @classmethod
    def name_length(cls, v: str) -> str:
        return check_length(v, 50, "Title is required.", "Title must be 50 characters or less.")

    @field_validator("description")
    @classmethod
    def description_required(cls, v: str) -> str:
        return check_length(v, None, "Description is required.")

    @field_validator("owner")
    @classmethod
    def owner_length(cls, v: str) -> str:
        return check_length(v, 25, "Owner is required.", "Owner must be 25 characters or less.")

    @field_validator("duedate", mode="before")
    @classmethod
    def coerce_duedate(cls, v: Any) -> date:
        return parse_due_date(v)


class TaskCreate(_TaskFields):
    """New task payload. Any status in the body is ignored; creation forces OPEN."""

    @field_validator("duedate")
    @classmethod
    def duedate_in_future(cls, v: date) -> date:
        return check_future(v)


class TaskEdit(_TaskFields):
    """Full field set for the general update path (every field is written).

    The future-date rule only applies when validated with
    ``context={"require_future": True}``, which is what the edit form does.
    """

    status: EditStatus

    @field_validator("duedate")
    @classmethod
    def duedate_in_future(cls, v: date, info: ValidationInfo) -> date:
        if info.context and info.context.get("require_future"):
            return check_future(v)
        return v


class StatusUpdate(BaseModel):
    id: Optional[int] = Field(default=None, gt=0, le=MAX_ID)
    status: EditStatus


class TaskOut(BaseModel):
    id: int
    name: str
    description: str
    duedate: date
    status: Status
    owner: str
    categoryId: int
    category: Optional[CategoryOut] = None
    createdAt: int
    updatedAt: int


def field_errors(errors: List[Dict[str, Any]]) -> Dict[str, List[str]]:
    """Collapse pydantic error dicts into ``{field: [messages]}``."""
    out: Dict[str, List[str]] = {}
    for err in errors:
        loc = [str(p) for p in err.get("loc", ())]
        if loc and loc[0] == "body":
            loc = loc[1:]
        key = ".".join(loc) or "body"
        out.setdefault(key, []).append(err.get("msg", "Invalid value"))
    return out
