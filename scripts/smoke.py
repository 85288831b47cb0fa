from __future__ import annotations

import asyncio
import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from uuid import uuid4

import httpx

from page_annotator.editor.controller import HydrationState, PageEditorController
from page_annotator.services.draft_store import LocalDraftStore
from page_annotator.services.page_client import RemotePageClient
from page_annotator.services.storage import LocalStorageDriver


def _seed_page(page_id: str) -> dict[str, object]:
    return {
        "pageId": page_id,
        "pageNumber": 1,
        "title": "Smoke page",
        "keywords": ["smoke"],
        "image": {
            "src": f"https://example.com/pages/{page_id}.png",
            "naturalWidth": 1000,
            "naturalHeight": 1500,
        },
        "elements": [],
        "meta": {"version": "0.1", "engine": "seed", "createdAt": datetime.now(timezone.utc).isoformat()},
    }


async def _edit_round_trip(base_url: str, prefix: str, page_id: str) -> int:
    with tempfile.TemporaryDirectory() as tmp:
        storage = LocalStorageDriver(Path(tmp))
        storage.ensure_root()
        drafts = LocalDraftStore(storage, namespace="smoke")
        client = RemotePageClient(base_url=base_url, prefix=prefix)
        controller = PageEditorController(page_id, drafts, client, debounce_ms=0, notice_ttl_ms=0)
        try:
            if await controller.mount() is not HydrationState.REMOTE_HYDRATED:
                raise RuntimeError(f"Unexpected hydration state: {controller.state}")
            added = controller.add_element("free_text")
            if not await controller.save():
                raise RuntimeError(f"Save failed: {controller.server_error}")
            if not await controller.pull():
                raise RuntimeError(f"Pull failed: {controller.server_error}")
            if controller.document.element(added.id) is None:
                raise RuntimeError("Saved element missing after pull")
            return len(controller.document.elements)
        finally:
            await controller.close()
            await client.aclose()


def main() -> int:
    base_url = os.getenv("ANNOTATOR_SMOKE_API_BASE_URL", "http://localhost:8000").rstrip("/")
    prefix = os.getenv("ANNOTATOR_SMOKE_API_PREFIX", "/comics-analyzer").rstrip("/")
    client = httpx.Client(base_url=base_url, timeout=30)
    page_id = f"smoke-{uuid4().hex[:8]}"

    health = client.get("/health")
    health.raise_for_status()

    seed = client.put(f"{prefix}/pages/{page_id}", json=_seed_page(page_id))
    seed.raise_for_status()

    analyze = client.post(f"{prefix}/pages/{page_id}/analyze")
    analyze.raise_for_status()
    elements = analyze.json()["elements"]
    if not elements:
        raise RuntimeError("Analyze returned no elements")

    fetched = client.get(f"{prefix}/pages/{page_id}")
    fetched.raise_for_status()
    if fetched.json()["elements"] != elements:
        raise RuntimeError("Stored page does not match analyze result")

    element_count = asyncio.run(_edit_round_trip(base_url, prefix, page_id))

    print(json.dumps({"status": "ok", "page_id": page_id, "elements": element_count}))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
