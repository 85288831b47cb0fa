from __future__ import annotations

import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from page_annotator.main import app
from page_annotator.services.draft_store import LocalDraftStore
from page_annotator.services.storage import LocalStorageDriver
from page_annotator.settings import get_settings
from tests.fakes import FakePageClient


@pytest.fixture()
def client(tmp_path: Path) -> TestClient:
    os.environ["ANNOTATOR_STORAGE_LOCAL_DIR"] = str(tmp_path / ".data")
    get_settings.cache_clear()
    return TestClient(app)


@pytest.fixture()
def draft_store(tmp_path: Path) -> LocalDraftStore:
    storage = LocalStorageDriver(tmp_path / ".drafts")
    storage.ensure_root()
    return LocalDraftStore(storage, namespace="comics-analyzer")


@pytest.fixture()
def fake_client_factory():
    return FakePageClient
