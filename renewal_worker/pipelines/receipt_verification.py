import mimetypes
from collections.abc import Callable
from pathlib import PurePosixPath

from renewal_worker.config.settings import Settings
from renewal_worker.database.models import PipelineEventRecord, PolicyRecord
from renewal_worker.database.repositories.policy_repository import PolicyRepository
from renewal_worker.database.repositories.processing_log_repository import (
    ProcessingLogRepository,
)
from renewal_worker.extraction.client_base import BaseExtractionClient
from renewal_worker.extraction.models import BinaryPayload, ReceiptExtraction
from renewal_worker.extraction.prompt_loader import RECEIPT, load_instruction
from renewal_worker.extraction.response_parser import parse_json_object
from renewal_worker.extraction.validator import build_receipt_extraction
from renewal_worker.logging.logger import Log
from renewal_worker.matching.name_matcher import NameMatcher
from renewal_worker.matching.verification import verify_receipt
from renewal_worker.pipelines.base import BasePipeline, is_settled, record_failure
from renewal_worker.pipelines.exceptions import PolicyNotFoundError
from renewal_worker.progress.clock import now_ms
from renewal_worker.progress.models import LogStatus, LogType, Stage
from renewal_worker.progress.tracker import ProgressTracker
from renewal_worker.storage.base import BaseArtifactStore
from renewal_worker.storage.local_store import temporary_download

VERIFICATION_METHOD = "auto"
DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"


def policy_id_from_object(object_name: str) -> str:
    """``receipts/{policyId}_{ts}.jpg`` -> ``policyId``; a stem without ``_`` is the id."""
    return PurePosixPath(object_name).stem.split("_", 1)[0]


def guess_image_mime_type(object_name: str) -> str:
    mime_type, _ = mimetypes.guess_type(object_name)
    if mime_type is None or not mime_type.startswith("image/"):
        return DEFAULT_IMAGE_MIME_TYPE
    return mime_type


class ReceiptVerificationPipeline(BasePipeline):
    """Verifies an uploaded receipt photo against its policy record.

    Pipeline: log -> policy lookup -> download -> extract -> parse -> match ->
    mark verified or report mismatch. The policy is only ever touched when
    both checks pass.
    """

    def __init__(
        self,
        *,
        store: BaseArtifactStore,
        client: BaseExtractionClient,
        policy_repo: PolicyRepository,
        log_repo: ProcessingLogRepository,
        settings: Settings,
        matcher: NameMatcher | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._client = client
        self._policy_repo = policy_repo
        self._log_repo = log_repo
        self._settings = settings
        self._matcher = matcher or NameMatcher()
        self._clock = clock
        self._instruction = load_instruction(RECEIPT)

    def handle(self, event: PipelineEventRecord) -> None:
        object_path = PurePosixPath(event.object_name)
        policy_id = policy_id_from_object(event.object_name)
        if not policy_id:
            Log.error(
                "Could not extract policy ID from receipt filename",
                object_name=event.object_name,
            )
            return

        log_id = object_path.stem
        if is_settled(self._log_repo, log_id):
            return
        tracker = ProgressTracker(self._log_repo, log_id, LogType.RECEIPT, clock=self._clock)
        tracker.start(
            Stage.UPLOADING,
            "Receipt uploaded",
            policy_id=policy_id,
            file_name=object_path.name,
        )

        try:
            self._run(event, policy_id, tracker)
        except PolicyNotFoundError as exc:
            Log.error(f"Receipt {log_id}: {exc}")
            record_failure(tracker, "Policy not found", exc)
        except Exception as exc:
            Log.exception(f"Receipt {log_id} failed: {exc}")
            record_failure(tracker, "Processing error", exc)

    def _run(
        self,
        event: PipelineEventRecord,
        policy_id: str,
        tracker: ProgressTracker,
    ) -> None:
        policy = self._policy_repo.find_by_id(policy_id)

        tracker.advance(Stage.PROCESSING, "Analyzing receipt with AI...")
        extraction = self._extract(event)
        Log.info(
            f"Extracted receipt data for policy {policy_id}",
            confidence=extraction.confidence,
        )

        tracker.advance(
            Stage.VERIFYING,
            "Verifying against policy data...",
            extracted_policy_number=extraction.policy_number,
            extracted_customer_name=extraction.customer_name,
            confidence=extraction.confidence,
        )
        self._verify(policy, extraction, tracker)

    def _extract(self, event: PipelineEventRecord) -> ReceiptExtraction:
        with temporary_download(
            self._store, event.bucket, event.object_name, self._settings.temp_dir
        ) as temp_path:
            image_bytes = temp_path.read_bytes()

        raw_text = self._client.generate(
            model=self._settings.extraction_model_name,
            temperature=self._settings.extraction_temperature,
            payload=BinaryPayload(
                mime_type=guess_image_mime_type(event.object_name),
                data=image_bytes,
            ),
            instruction=self._instruction,
            timeout_seconds=self._settings.receipt_extraction_timeout_seconds,
        )
        return build_receipt_extraction(parse_json_object(raw_text))

    def _verify(
        self,
        policy: PolicyRecord,
        extraction: ReceiptExtraction,
        tracker: ProgressTracker,
    ) -> None:
        outcome = verify_receipt(extraction, policy, self._matcher)
        Log.info(
            f"Verification for policy {policy.id}",
            policy_number_match=outcome.policy_number_match,
            customer_name_match=outcome.customer_name_match,
        )

        if not outcome.passed:
            tracker.complete(
                LogStatus.ERROR,
                f"Verification failed: {', '.join(outcome.failure_reasons)}",
                policy_number_match=outcome.policy_number_match,
                customer_name_match=outcome.customer_name_match,
                verification_passed=False,
                failure_reasons=outcome.failure_reasons,
            )
            return

        self._policy_repo.mark_verified(
            policy.id,
            verified_at=self._clock(),
            verification_method=VERIFICATION_METHOD,
            evidence=extraction.as_evidence(),
        )
        tracker.complete(
            LogStatus.SUCCESS,
            "Receipt verified successfully!",
            policy_number_match=True,
            customer_name_match=True,
            verification_passed=True,
        )
