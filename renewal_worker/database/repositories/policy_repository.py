from collections.abc import Sequence
from decimal import Decimal
from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from renewal_worker.database.connection import get_connection
from renewal_worker.database.models import PolicyRecord, PolicyStatus
from renewal_worker.pipelines.exceptions import PolicyNotFoundError

_INSERT_SQL = """
    INSERT INTO policies (
        id, policy_number, customer_name, date_of_commencement, mode, fup,
        amount, commission, due_date, status, source_upload_id, created_at
    )
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
"""


class PolicyRepository:
    """Database operations for the policies table."""

    def find_by_id(self, policy_id: str) -> PolicyRecord:
        """Find a policy by ID.

        Raises:
            PolicyNotFoundError: if no policy with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, policy_number, customer_name, date_of_commencement,
                           mode, fup, amount, commission, due_date, status,
                           receipt_url, uploaded_by, uploaded_at, verified_at,
                           verification_method, extracted_data, source_upload_id,
                           created_at
                    FROM policies
                    WHERE id = %s
                    """,
                    (policy_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise PolicyNotFoundError(f"Policy {policy_id} not found")
        return self._to_record(row)

    def count_by_source_upload(self, upload_id: str) -> int:
        """Count policies created from the PDF upload with this ID."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT COUNT(*) FROM policies WHERE source_upload_id = %s",
                    (upload_id,),
                )
                row = cur.fetchone()
        return int(row[0]) if row else 0

    def insert_batch(self, records: Sequence[PolicyRecord]) -> int:
        """Insert *records* in one atomic transaction.

        Returns:
            Number of rows inserted.
        """
        if not records:
            return 0
        params = [self._insert_params(record) for record in records]
        with get_connection() as conn:
            with conn.transaction():
                with conn.cursor() as cur:
                    cur.executemany(_INSERT_SQL, params)
        return len(records)

    def mark_verified(
        self,
        policy_id: str,
        *,
        verified_at: int,
        verification_method: str,
        evidence: dict[str, Any],
    ) -> None:
        """Transition a policy to verified and attach the extracted evidence.

        Raises:
            PolicyNotFoundError: if no policy with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE policies
                    SET status = %s,
                        verified_at = %s,
                        verification_method = %s,
                        extracted_data = %s
                    WHERE id = %s
                    """,
                    (
                        PolicyStatus.VERIFIED.value,
                        verified_at,
                        verification_method,
                        Jsonb(evidence),
                        policy_id,
                    ),
                )
                if cur.rowcount == 0:
                    raise PolicyNotFoundError(f"Policy {policy_id} not found")
            conn.commit()

    @staticmethod
    def _insert_params(record: PolicyRecord) -> tuple[Any, ...]:
        return (
            record.id,
            record.policy_number,
            record.customer_name,
            record.date_of_commencement,
            record.mode,
            record.fup,
            record.amount,
            record.commission,
            record.due_date,
            record.status.value,
            record.source_upload_id,
            record.created_at,
        )

    @staticmethod
    def _to_record(row: dict[str, Any]) -> PolicyRecord:
        return PolicyRecord(
            id=row["id"],
            policy_number=row["policy_number"],
            customer_name=row["customer_name"],
            date_of_commencement=row["date_of_commencement"],
            mode=row["mode"],
            fup=row["fup"],
            amount=Decimal(row["amount"]),
            commission=Decimal(row["commission"] or 0),
            due_date=row["due_date"],
            status=PolicyStatus(row["status"]),
            receipt_url=row["receipt_url"],
            uploaded_by=row["uploaded_by"],
            uploaded_at=row["uploaded_at"],
            verified_at=row["verified_at"],
            verification_method=row["verification_method"],
            extracted_data=row["extracted_data"],
            source_upload_id=row["source_upload_id"],
            created_at=row["created_at"],
        )
