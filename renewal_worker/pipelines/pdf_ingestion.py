import uuid
from collections.abc import Callable
from datetime import date
from pathlib import PurePosixPath

import psycopg

from renewal_worker.config.settings import Settings
from renewal_worker.database.models import PipelineEventRecord, PolicyRecord, PolicyStatus
from renewal_worker.database.repositories.policy_repository import PolicyRepository
from renewal_worker.database.repositories.processing_log_repository import (
    ProcessingLogRepository,
)
from renewal_worker.extraction.client_base import BaseExtractionClient
from renewal_worker.extraction.models import BinaryPayload, ExtractedPolicyRow
from renewal_worker.extraction.prompt_loader import PREMIUM_DUE_LIST, load_instruction
from renewal_worker.extraction.response_parser import parse_json_array
from renewal_worker.extraction.validator import filter_valid_rows
from renewal_worker.logging.logger import Log
from renewal_worker.pdf.base import BasePdfInspector
from renewal_worker.pipelines.base import BasePipeline, is_settled, record_failure
from renewal_worker.pipelines.due_dates import compute_due_date
from renewal_worker.pipelines.exceptions import PolicyBatchWriteError
from renewal_worker.progress.clock import now_ms
from renewal_worker.progress.models import LogStatus, LogType, Stage
from renewal_worker.progress.tracker import ProgressTracker
from renewal_worker.storage.base import BaseArtifactStore
from renewal_worker.storage.local_store import temporary_download

PDF_MIME_TYPE = "application/pdf"


def upload_id_from_object(object_name: str) -> str:
    """``policy-uploads/1718000000000_due-list.pdf`` -> ``1718000000000_due-list``."""
    return PurePosixPath(object_name).stem


class PdfIngestionPipeline(BasePipeline):
    """Turns an uploaded premium due list PDF into pending policy records.

    Pipeline: log -> download -> inspect -> extract -> parse -> validate ->
    chunked insert -> complete. Any failure after the log exists ends the log
    at ``failed``.
    """

    def __init__(
        self,
        *,
        store: BaseArtifactStore,
        client: BaseExtractionClient,
        inspector: BasePdfInspector,
        policy_repo: PolicyRepository,
        log_repo: ProcessingLogRepository,
        settings: Settings,
        clock: Callable[[], int] = now_ms,
        today: Callable[[], date] = date.today,
        new_policy_id: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self._store = store
        self._client = client
        self._inspector = inspector
        self._policy_repo = policy_repo
        self._log_repo = log_repo
        self._settings = settings
        self._clock = clock
        self._today = today
        self._new_policy_id = new_policy_id
        self._instruction = load_instruction(PREMIUM_DUE_LIST)

    def handle(self, event: PipelineEventRecord) -> None:
        upload_id = upload_id_from_object(event.object_name)
        if is_settled(self._log_repo, upload_id):
            return
        tracker = ProgressTracker(self._log_repo, upload_id, LogType.PDF, clock=self._clock)
        tracker.start(
            Stage.PROCESSING,
            "Analyzing PDF content...",
            file_name=PurePosixPath(event.object_name).name,
        )

        try:
            self._run(event, upload_id, tracker)
        except Exception as exc:
            Log.exception(f"PDF import {upload_id} failed: {exc}")
            record_failure(tracker, "Processing failed", exc)

    def _run(
        self,
        event: PipelineEventRecord,
        upload_id: str,
        tracker: ProgressTracker,
    ) -> None:
        if self._settings.dedupe_pdf_imports:
            existing = self._policy_repo.count_by_source_upload(upload_id)
            if existing > 0:
                Log.warning(
                    f"PDF import {upload_id} already created {existing} policies, skipping"
                )
                tracker.advance(Stage.PARSING, "Upload already imported, skipping extraction")
                tracker.complete(
                    LogStatus.SUCCESS,
                    "Successfully processed!",
                    policies_found=existing,
                )
                return

        with temporary_download(
            self._store, event.bucket, event.object_name, self._settings.temp_dir
        ) as temp_path:
            pdf_bytes = temp_path.read_bytes()
        Log.info(f"Downloaded {len(pdf_bytes)} bytes for PDF import {upload_id}")

        page_count = self._inspector.page_count(pdf_bytes)

        tracker.advance(
            Stage.PARSING,
            "Extracting policy data with AI...",
            page_count=page_count,
        )
        raw_text = self._client.generate(
            model=self._settings.extraction_model_name,
            temperature=self._settings.extraction_temperature,
            payload=BinaryPayload(mime_type=PDF_MIME_TYPE, data=pdf_bytes),
            instruction=self._instruction,
            timeout_seconds=self._settings.pdf_extraction_timeout_seconds,
        )
        raw_rows = parse_json_array(raw_text)
        rows = filter_valid_rows(raw_rows)
        Log.info(
            f"PDF import {upload_id}: {len(rows)} of {len(raw_rows)} extracted rows are valid"
        )

        if not rows:
            tracker.complete(
                LogStatus.WARNING,
                "No valid policies found in PDF",
                policies_found=0,
            )
            return

        created = self._persist(upload_id, rows)
        tracker.complete(
            LogStatus.SUCCESS,
            "Successfully processed!",
            policies_found=created,
        )

    def _persist(self, upload_id: str, rows: list[ExtractedPolicyRow]) -> int:
        """Insert rows in sequential chunks, each chunk its own transaction.

        Raises:
            PolicyBatchWriteError: when a chunk fails; earlier chunks stay committed.
        """
        today = self._today()
        created_at = self._clock()
        records = [self._to_record(row, upload_id, today, created_at) for row in rows]

        size = self._settings.policy_batch_size
        chunks = [records[start : start + size] for start in range(0, len(records), size)]
        committed = 0
        for index, chunk in enumerate(chunks):
            try:
                committed += self._policy_repo.insert_batch(chunk)
            except psycopg.Error as exc:
                raise PolicyBatchWriteError(
                    f"Policy batch {index + 1}/{len(chunks)} failed after "
                    f"{committed} policies were committed: {exc}",
                    committed=committed,
                    batch_index=index,
                ) from exc
            Log.info(
                f"Batch {index + 1}/{len(chunks)} committed ({len(chunk)} policies)",
                upload_id=upload_id,
            )
        return committed

    def _to_record(
        self,
        row: ExtractedPolicyRow,
        upload_id: str,
        today: date,
        created_at: int,
    ) -> PolicyRecord:
        return PolicyRecord(
            id=self._new_policy_id(),
            policy_number=row.policy_number,
            customer_name=row.customer_name,
            amount=row.amount,
            commission=row.commission,
            mode=row.mode,
            fup=row.fup,
            date_of_commencement=row.date_of_commencement,
            due_date=compute_due_date(row.date_of_commencement, today),
            status=PolicyStatus.PENDING,
            source_upload_id=upload_id,
            created_at=created_at,
        )
