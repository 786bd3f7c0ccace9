from decimal import Decimal
from typing import Any

import psycopg
import pytest

from renewal_worker.database.models import POLICY_DELETED, PolicyRecord, PolicyStatus
from renewal_worker.database.repositories.event_repository import EventRepository
from renewal_worker.database.repositories.policy_repository import PolicyRepository
from renewal_worker.pipelines.exceptions import PolicyNotFoundError


def _policy(policy_id: str, upload_id: str = "1718_list", **overrides: Any) -> PolicyRecord:
    values: dict[str, Any] = {
        "id": policy_id,
        "policy_number": "508515995",
        "customer_name": "CHHABI DAS",
        "amount": Decimal("8295.00"),
        "commission": Decimal("1599.00"),
        "mode": "Quarterly",
        "fup": "05/2025",
        "date_of_commencement": "14/02/2025",
        "due_date": "14/02/2025",
        "source_upload_id": upload_id,
        "created_at": 1_718_000_000_000,
    }
    values.update(overrides)
    return PolicyRecord(**values)


@pytest.mark.integration
class TestPolicyRepositoryIntegration:
    def test_insert_and_find(self, db_conn: psycopg.Connection[Any]) -> None:
        repo = PolicyRepository()

        inserted = repo.insert_batch([_policy("pol-1"), _policy("pol-2")])
        found = repo.find_by_id("pol-1")

        assert inserted == 2
        assert found.amount == Decimal("8295.00")
        assert found.status == PolicyStatus.PENDING
        assert repo.count_by_source_upload("1718_list") == 2
        assert repo.count_by_source_upload("other") == 0

    def test_failed_batch_inserts_nothing(self, db_conn: psycopg.Connection[Any]) -> None:
        repo = PolicyRepository()

        with pytest.raises(psycopg.Error):
            repo.insert_batch([_policy("pol-1"), _policy("pol-2", amount=Decimal("-1"))])

        assert repo.count_by_source_upload("1718_list") == 0

    def test_mark_verified_attaches_evidence(self, db_conn: psycopg.Connection[Any]) -> None:
        repo = PolicyRepository()
        repo.insert_batch([_policy("pol-1")])

        repo.mark_verified(
            "pol-1",
            verified_at=1_718_000_100_000,
            verification_method="auto",
            evidence={"policyNumber": "508515995", "confidence": "high"},
        )
        found = repo.find_by_id("pol-1")

        assert found.status == PolicyStatus.VERIFIED
        assert found.verification_method == "auto"
        assert found.extracted_data == {"policyNumber": "508515995", "confidence": "high"}

    def test_missing_policy_raises(self, db_conn: psycopg.Connection[Any]) -> None:
        with pytest.raises(PolicyNotFoundError):
            PolicyRepository().find_by_id("nope")

    def test_delete_enqueues_cleanup_event(self, db_conn: psycopg.Connection[Any]) -> None:
        PolicyRepository().insert_batch([_policy("pol-1")])

        db_conn.execute("DELETE FROM policies WHERE id = %s", ("pol-1",))
        db_conn.commit()
        event = EventRepository().claim_next_event(db_conn)

        assert event is not None
        assert event.event_type == POLICY_DELETED
        assert event.payload["policyId"] == "pol-1"
