from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class APIError(Exception):
    status_code: int
    code: str
    message: str
    details: dict[str, Any] | None = None


class StorageError(APIError):
    pass


class AnalyzerError(APIError):
    pass


class RemoteError(APIError):
    pass


class RemoteNotFoundError(RemoteError):
    pass


def describe_error(exc: BaseException | str | None) -> str:
    if exc is None:
        return "Unknown error"
    if isinstance(exc, str):
        return exc
    if isinstance(exc, APIError):
        if exc.status_code == 404:
            return "Not found (404)"
        if exc.status_code >= 400:
            return f"Request failed ({exc.status_code})"
        return exc.message or "Request failed"
    message = str(exc)
    return message or "Request failed"
