from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request
from pydantic import ValidationError

from page_annotator.core.errors import APIError
from page_annotator.core.request_context import get_request_id
from page_annotator.schemas.page import PageDocument
from page_annotator.services.analyzer import analyze_page, get_analyzer
from page_annotator.services.page_store import load_page, save_page
from page_annotator.settings import get_settings

router = APIRouter(prefix=get_settings().api_prefix, tags=["pages"])
logger = logging.getLogger("page_annotator")


def _load_or_404(page_id: str) -> PageDocument:
    try:
        return load_page(page_id)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Page not found") from exc


@router.get("/pages/{page_id}")
def get_page(page_id: str) -> dict[str, object]:
    return _load_or_404(page_id).to_wire()


@router.put("/pages/{page_id}")
def put_page(page_id: str, payload: dict, request: Request) -> dict[str, object]:
    request_id = get_request_id(request)
    try:
        document = PageDocument.model_validate(payload)
    except ValidationError as exc:
        raise APIError(
            status_code=400,
            code="invalid_page_payload",
            message="Invalid page document",
            details={"errors": exc.errors(include_url=False)},
        ) from exc
    if document.page_id != page_id:
        raise APIError(
            status_code=400,
            code="page_id_mismatch",
            message="Document pageId does not match the request path",
            details={"page_id": page_id, "document_page_id": document.page_id},
        )
    stored = save_page(document)
    logger.info(
        "Page saved request_id=%s page_id=%s elements=%s",
        request_id,
        page_id,
        len(stored.elements),
    )
    return stored.to_wire()


@router.post("/pages/{page_id}/analyze")
def post_analyze(page_id: str, request: Request) -> dict[str, object]:
    request_id = get_request_id(request)
    page = _load_or_404(page_id)
    analyzer = get_analyzer()
    analyzed = save_page(analyze_page(page, analyzer))
    logger.info(
        "Page analyzed request_id=%s page_id=%s engine=%s elements=%s",
        request_id,
        page_id,
        analyzer.engine,
        len(analyzed.elements),
    )
    return analyzed.to_wire()
