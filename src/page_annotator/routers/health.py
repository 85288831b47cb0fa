from __future__ import annotations

from fastapi import APIRouter

from page_annotator.schemas.api import HealthResponse
from page_annotator.settings import get_settings

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    settings = get_settings()
    return HealthResponse(
        status="ok",
        build_version=settings.ANNOTATOR_BUILD_VERSION or "dev",
        storage_driver=settings.ANNOTATOR_STORAGE_DRIVER,
        analyzer_engine=settings.ANNOTATOR_ANALYZER_ENGINE,
    )
