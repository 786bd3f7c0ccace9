import dataclasses
import io
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pytest
from reportlab.lib.pagesizes import A4, landscape
from reportlab.pdfgen import canvas

from renewal_worker.config.settings import Settings
from renewal_worker.database.models import OBJECT_FINALIZED, PipelineEventRecord
from renewal_worker.progress.exceptions import ProcessingLogNotFoundError
from renewal_worker.progress.models import ProcessingLogEntry


class InMemoryLogRepository:
    """Stands in for ProcessingLogRepository and keeps every write."""

    def __init__(self) -> None:
        self.entries: dict[str, ProcessingLogEntry] = {}
        self.writes: list[tuple[str, dict[str, Any]]] = []

    def create(self, entry: ProcessingLogEntry) -> None:
        self.entries[entry.id] = dataclasses.replace(entry)
        self.writes.append((entry.id, {"stage": entry.stage, "status": entry.status}))

    def update(self, log_id: str, changes: Mapping[str, Any]) -> None:
        entry = self.entries.get(log_id)
        if entry is None:
            raise ProcessingLogNotFoundError(f"Processing log {log_id} not found")
        for name, value in changes.items():
            setattr(entry, name, value)
        self.writes.append((log_id, dict(changes)))

    def find_by_id(self, log_id: str) -> ProcessingLogEntry | None:
        return self.entries.get(log_id)

    def delete_for_policy(self, policy_id: str) -> int:
        doomed = [
            log_id
            for log_id, entry in self.entries.items()
            if entry.policy_id == policy_id or log_id == policy_id
        ]
        for log_id in doomed:
            del self.entries[log_id]
        return len(doomed)

    def stages(self, log_id: str) -> list[str]:
        return [
            changes["stage"].value
            for written_id, changes in self.writes
            if written_id == log_id and "stage" in changes
        ]


@pytest.fixture()
def log_repo() -> InMemoryLogRepository:
    return InMemoryLogRepository()


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    (tmp_path / "tmp").mkdir()
    return Settings(
        _env_file=None,
        artifact_root=tmp_path / "artifacts",
        temp_dir=tmp_path / "tmp",
        policy_batch_size=400,
        dedupe_pdf_imports=True,
    )


@pytest.fixture()
def make_event():
    def _make(
        object_name: str,
        *,
        bucket: str = "uploads",
        event_type: str = OBJECT_FINALIZED,
        payload: dict[str, Any] | None = None,
        event_id: int = 1,
    ) -> PipelineEventRecord:
        return PipelineEventRecord(
            id=event_id,
            event_type=event_type,
            bucket=bucket,
            object_name=object_name,
            payload=payload or {},
            status="processing",
        )

    return _make


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a single-page premium due list PDF."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=landscape(A4))
    c.drawString(40, 540, "Premium Due List For The Agent")
    c.drawString(
        40,
        500,
        "1 | 508515995 | CHHABI DAS | 14/02/2025 | 736/25 | Qly | 05/2025 | FY | "
        "2,665.00 | 3 | 300.00 | 8,295 | 1,599.00",
    )
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a three-page PDF."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=landscape(A4))
    for page in range(1, 4):
        c.drawString(40, 540, f"Page {page} of the due list")
        c.showPage()
    c.save()
    return buf.getvalue()
