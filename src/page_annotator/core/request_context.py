from __future__ import annotations

from uuid import uuid4

from fastapi import Request

REQUEST_ID_HEADERS = ("x-request-id", "x-correlation-id")


def get_request_id(request: Request | None) -> str:
    if request is None:
        return str(uuid4())
    cached = getattr(request.state, "request_id", None)
    if cached:
        return cached
    request_id = next(
        (request.headers[header] for header in REQUEST_ID_HEADERS if request.headers.get(header)),
        None,
    ) or str(uuid4())
    request.state.request_id = request_id
    return request_id
