from pathlib import Path
from unittest.mock import MagicMock

import pytest

from renewal_worker.config.settings import Settings
from renewal_worker.database.models import POLICY_DELETED
from renewal_worker.pipelines.policy_cleanup import PolicyCleanupPipeline
from renewal_worker.progress.models import LogStatus, LogType, ProcessingLogEntry, Stage
from renewal_worker.storage.exceptions import ArtifactStoreError
from renewal_worker.storage.local_store import LocalArtifactStore


def _put(root: Path, object_name: str) -> Path:
    path = root / "uploads" / object_name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\xff\xd8receipt")
    return path


def _log(log_id: str, policy_id: str | None) -> ProcessingLogEntry:
    return ProcessingLogEntry(
        id=log_id,
        type=LogType.RECEIPT,
        stage=Stage.COMPLETED,
        message="Receipt verified successfully!",
        status=LogStatus.SUCCESS,
        started_at=1,
        policy_id=policy_id,
    )


@pytest.fixture()
def store(settings: Settings) -> LocalArtifactStore:
    return LocalArtifactStore(root=settings.artifact_root)


def _deletion(make_event, policy_id: str | None = "pol-1", bucket: str = "uploads"):
    payload = {"policyId": policy_id} if policy_id is not None else {}
    return make_event("", bucket=bucket, event_type=POLICY_DELETED, payload=payload)


class TestReceiptRemoval:
    def test_deletes_only_this_policys_receipts(
        self, store, log_repo, settings, make_event
    ) -> None:
        root = settings.artifact_root
        mine = [_put(root, "receipts/pol-1_1718.jpg"), _put(root, "receipts/pol-1.png")]
        other = _put(root, "receipts/pol-10_1718.jpg")
        pipeline = PolicyCleanupPipeline(store=store, log_repo=log_repo, settings=settings)

        pipeline.handle(_deletion(make_event))

        assert not any(path.exists() for path in mine)
        assert other.exists()

    def test_falls_back_to_default_bucket(
        self, store, log_repo, settings, make_event
    ) -> None:
        receipt = _put(settings.artifact_root, "receipts/pol-1_1718.jpg")
        pipeline = PolicyCleanupPipeline(store=store, log_repo=log_repo, settings=settings)

        pipeline.handle(_deletion(make_event, bucket=""))

        assert not receipt.exists()

    def test_no_receipts_is_not_an_error(
        self, store, log_repo, settings, make_event
    ) -> None:
        log_repo.create(_log("pol-1_1718", "pol-1"))
        pipeline = PolicyCleanupPipeline(store=store, log_repo=log_repo, settings=settings)

        pipeline.handle(_deletion(make_event))

        assert log_repo.entries == {}


class TestLogRemoval:
    def test_deletes_logs_linked_to_policy(
        self, store, log_repo, settings, make_event
    ) -> None:
        log_repo.create(_log("pol-1_1718", "pol-1"))
        log_repo.create(_log("pol-2_1718", "pol-2"))
        pipeline = PolicyCleanupPipeline(store=store, log_repo=log_repo, settings=settings)

        pipeline.handle(_deletion(make_event))

        assert list(log_repo.entries) == ["pol-2_1718"]

    def test_failed_receipt_delete_still_removes_logs(
        self, log_repo, settings, make_event
    ) -> None:
        mock_store = MagicMock()
        mock_store.list_objects.return_value = [
            "receipts/pol-1_1.jpg",
            "receipts/pol-1_2.jpg",
        ]
        mock_store.delete.side_effect = [ArtifactStoreError("denied"), True]
        log_repo.create(_log("pol-1_1", "pol-1"))
        pipeline = PolicyCleanupPipeline(store=mock_store, log_repo=log_repo, settings=settings)

        pipeline.handle(_deletion(make_event))

        assert mock_store.delete.call_count == 2
        assert log_repo.entries == {}

    def test_failed_log_delete_is_swallowed(
        self, store, settings, make_event
    ) -> None:
        mock_log_repo = MagicMock()
        mock_log_repo.delete_for_policy.side_effect = Exception("db down")
        receipt = _put(settings.artifact_root, "receipts/pol-1_1718.jpg")
        pipeline = PolicyCleanupPipeline(
            store=store, log_repo=mock_log_repo, settings=settings
        )

        pipeline.handle(_deletion(make_event))

        assert not receipt.exists()


class TestMissingPolicyId:
    def test_does_nothing(self, log_repo, settings, make_event) -> None:
        mock_store = MagicMock()
        log_repo.create(_log("pol-1_1718", "pol-1"))
        pipeline = PolicyCleanupPipeline(store=mock_store, log_repo=log_repo, settings=settings)

        pipeline.handle(_deletion(make_event, policy_id=None))

        mock_store.list_objects.assert_not_called()
        assert "pol-1_1718" in log_repo.entries
