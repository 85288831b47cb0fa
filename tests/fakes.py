from __future__ import annotations

from page_annotator.core.errors import RemoteError, RemoteNotFoundError
from page_annotator.schemas.page import PageDocument


class FakePageClient:
    """In-memory stand-in for the remote page service with call counters."""

    def __init__(
        self,
        remote: PageDocument | None = None,
        analyzed: PageDocument | None = None,
        fail_with: RemoteError | None = None,
    ) -> None:
        self.remote = remote
        self.analyzed = analyzed
        self.fail_with = fail_with
        self.calls: list[str] = []
        self.saved: list[PageDocument] = []

    def _raise_if_failing(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def fetch(self, page_id: str) -> PageDocument:
        self.calls.append("fetch")
        self._raise_if_failing()
        if self.remote is None:
            raise RemoteNotFoundError(status_code=404, code="page_not_found", message="Page not found")
        return self.remote

    async def analyze(self, page_id: str) -> PageDocument:
        self.calls.append("analyze")
        self._raise_if_failing()
        return self.analyzed

    async def save(self, page_id: str, document: PageDocument) -> PageDocument:
        self.calls.append("save")
        self._raise_if_failing()
        self.saved.append(document)
        return document
