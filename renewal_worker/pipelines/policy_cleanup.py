from pathlib import PurePosixPath

from renewal_worker.config.settings import Settings
from renewal_worker.database.models import PipelineEventRecord
from renewal_worker.database.repositories.processing_log_repository import (
    ProcessingLogRepository,
)
from renewal_worker.logging.logger import Log
from renewal_worker.pipelines.base import BasePipeline
from renewal_worker.storage.base import BaseArtifactStore
from renewal_worker.storage.exceptions import ArtifactStoreError


class PolicyCleanupPipeline(BasePipeline):
    """Removes a deleted policy's receipts and processing logs.

    Each removal is independent: one failure is logged and the rest still run.
    """

    def __init__(
        self,
        *,
        store: BaseArtifactStore,
        log_repo: ProcessingLogRepository,
        settings: Settings,
    ) -> None:
        self._store = store
        self._log_repo = log_repo
        self._settings = settings

    def handle(self, event: PipelineEventRecord) -> None:
        policy_id = str(event.payload.get("policyId") or "")
        if not policy_id:
            Log.error("Policy deletion event carries no policy ID", event_id=event.id)
            return

        Log.info(f"Policy deleted: {policy_id}, starting cleanup")
        bucket = event.bucket or self._settings.artifact_bucket
        self._delete_receipts(bucket, policy_id)
        self._delete_logs(policy_id)
        Log.info(f"Cleanup complete for policy {policy_id}")

    def _delete_receipts(self, bucket: str, policy_id: str) -> None:
        prefix = f"{self._settings.receipt_upload_prefix}{policy_id}"
        try:
            candidates = self._store.list_objects(bucket, prefix)
        except ArtifactStoreError as exc:
            Log.error(f"Failed to list receipts for policy {policy_id}: {exc}")
            return

        deleted = 0
        for object_name in candidates:
            if not self._belongs_to(object_name, policy_id):
                continue
            try:
                if self._store.delete(bucket, object_name):
                    deleted += 1
            except ArtifactStoreError as exc:
                Log.error(f"Failed to delete receipt {object_name}: {exc}")
        Log.info(f"Deleted {deleted} receipt(s) for policy {policy_id}")

    def _delete_logs(self, policy_id: str) -> None:
        try:
            deleted = self._log_repo.delete_for_policy(policy_id)
        except Exception as exc:
            Log.error(f"Failed to delete processing logs for policy {policy_id}: {exc}")
            return
        Log.info(f"Deleted {deleted} processing log(s) for policy {policy_id}")

    @staticmethod
    def _belongs_to(object_name: str, policy_id: str) -> bool:
        # The prefix match also catches other ids that merely start with this one.
        stem = PurePosixPath(object_name).stem
        return stem == policy_id or stem.startswith(f"{policy_id}_")
