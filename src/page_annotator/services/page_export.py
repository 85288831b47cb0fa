from __future__ import annotations

import json
from pathlib import Path

from page_annotator.schemas.page import PageDocument


def export_filename(page_id: str) -> str:
    return f"analyzer-page-{page_id}.json"


def export_json(document: PageDocument) -> str:
    return json.dumps(document.to_wire(), ensure_ascii=False, indent=2)


def parse_export(raw: str | bytes) -> PageDocument:
    return PageDocument.model_validate_json(raw)


def write_export(document: PageDocument, directory: str | Path) -> Path:
    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / export_filename(document.page_id)
    path.write_text(export_json(document), encoding="utf-8")
    return path
