from __future__ import annotations

import logging
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from page_annotator.core.errors import RemoteError, RemoteNotFoundError
from page_annotator.schemas.page import PageDocument
from page_annotator.settings import get_settings

logger = logging.getLogger(__name__)


class RemotePageClient:
    """Request/response client for the remote page document service."""

    def __init__(
        self,
        base_url: str | None = None,
        prefix: str | None = None,
        timeout_s: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        settings = get_settings()
        self.prefix = settings.api_prefix if prefix is None else prefix.rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=(base_url or settings.ANNOTATOR_API_BASE_URL).rstrip("/"),
            timeout=timeout_s if timeout_s is not None else settings.ANNOTATOR_HTTP_TIMEOUT_S,
        )

    def _page_url(self, page_id: str) -> str:
        return f"{self.prefix}/pages/{quote(page_id, safe='')}"

    async def analyze(self, page_id: str) -> PageDocument:
        return await self._request("POST", f"{self._page_url(page_id)}/analyze", page_id)

    async def fetch(self, page_id: str) -> PageDocument:
        return await self._request("GET", self._page_url(page_id), page_id)

    async def save(self, page_id: str, document: PageDocument) -> PageDocument:
        return await self._request("PUT", self._page_url(page_id), page_id, body=document.to_wire())

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        page_id: str,
        body: dict[str, object] | None = None,
    ) -> PageDocument:
        try:
            response = await self.client.request(method, url, json=body)
        except httpx.HTTPError as exc:
            logger.warning("Remote request failed method=%s page_id=%s error=%s", method, page_id, exc)
            raise RemoteError(
                status_code=0,
                code="remote_unreachable",
                message="Page service unreachable",
                details={"error": exc.__class__.__name__},
            ) from exc

        if response.status_code == 404:
            raise RemoteNotFoundError(
                status_code=404,
                code="page_not_found",
                message="Page not found",
                details={"page_id": page_id},
            )
        if response.is_error:
            logger.warning(
                "Remote request rejected method=%s page_id=%s status=%s",
                method,
                page_id,
                response.status_code,
            )
            raise RemoteError(
                status_code=response.status_code,
                code="remote_http_error",
                message="Page service request failed",
                details={"page_id": page_id, "body": _error_body(response)},
            )

        try:
            return PageDocument.model_validate_json(response.content)
        except ValidationError as exc:
            raise RemoteError(
                status_code=response.status_code,
                code="remote_invalid_document",
                message="Page service returned an invalid document",
                details={"page_id": page_id, "errors": exc.errors(include_url=False)},
            ) from exc


def _error_body(response: httpx.Response) -> object:
    try:
        return response.json()
    except ValueError:
        return response.text[:500]
