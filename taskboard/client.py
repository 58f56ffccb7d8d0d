"""HTTP client for the taskboard API, used by the task table and forms."""

from __future__ import annotations

from datetime import date
from http import HTTPStatus
from typing import Any, Dict, List, Optional

import httpx

from .settings import Settings


class ApiError(Exception):
    """Non-2xx response (or no response at all) from the API."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 fields: Optional[Dict[str, List[str]]] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.fields = fields or {}


class ValidationFailed(ApiError):
    pass


class NotFound(ApiError):
    pass


def _jsonable(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v.isoformat() if isinstance(v, date) else v for k, v in payload.items()}


class TaskboardClient:
    """Thin wrapper over an ``httpx.Client`` pointed at the API root.

    Pass ``http`` to reuse an existing client (a FastAPI ``TestClient`` works).
    """

    def __init__(self, base_url: str = "http://127.0.0.1:8000", http: Optional[httpx.Client] = None) -> None:
        self.http = http if http is not None else httpx.Client(base_url=base_url)
        self.prefix = "/api"

    @classmethod
    def from_settings(cls, settings: Settings) -> "TaskboardClient":
        return cls(base_url=settings.api_url)

    def close(self) -> None:
        self.http.close()

    def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = self.http.request(method, self.prefix + path, json=json)
        except httpx.HTTPError as exc:
            raise ApiError(f"Request failed: {exc}") from exc
        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> Any:
        try:
            data = response.json()
        except ValueError:
            if response.is_error:
                raise ApiError(f"API error: {response.status_code} - {response.text}",
                               response.status_code) from None
            return None

        if not response.is_error:
            return data

        message = data.get("error", str(data)) if isinstance(data, dict) else str(data)
        if response.status_code == HTTPStatus.NOT_FOUND:
            raise NotFound(message, response.status_code)
        if response.status_code == HTTPStatus.BAD_REQUEST:
            fields = data.get("fields") if isinstance(data, dict) else None
            raise ValidationFailed(message, response.status_code, fields)
        raise ApiError(message, response.status_code)

    # --- categories ---

    def list_categories(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/categories")

    def create_category(self, name: str) -> Dict[str, Any]:
        return self._request("POST", "/categories", json={"name": name})

    # --- tasks ---

    def list_tasks(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/tasks")

    def get_task(self, task_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/tasks/{task_id}")

    def create_task(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/tasks", json=_jsonable(payload))

    def update_task(self, task_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"/tasks/{task_id}", json=_jsonable(payload))

    def set_status(self, task_id: int, status: str) -> Dict[str, Any]:
        return self._request("PUT", "/tasks", json={"id": task_id, "status": status})
