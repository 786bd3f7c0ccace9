from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from renewal_worker.database.connection import get_connection
from renewal_worker.database.models import OBJECT_FINALIZED, PipelineEventRecord


class EventRepository:
    """Database operations for the pipeline_events table.

    Each event is attempted once: a claimed event ends as 'done' or 'failed'
    and is never returned to 'pending'.
    """

    def claim_next_event(self, conn: psycopg.Connection[Any]) -> PipelineEventRecord | None:
        """Claim the next pending event using SELECT FOR UPDATE SKIP LOCKED."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                SELECT id, event_type, bucket, object_name, payload
                FROM pipeline_events
                WHERE status = 'pending'
                ORDER BY created_at, id
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """
            )
            row = cur.fetchone()

        if row is None:
            conn.commit()
            return None

        conn.execute(
            """
            UPDATE pipeline_events
            SET status = 'processing', locked_at = NOW(), updated_at = NOW()
            WHERE id = %s
            """,
            (row["id"],),
        )
        conn.commit()

        return PipelineEventRecord(
            id=row["id"],
            event_type=row["event_type"],
            bucket=row["bucket"],
            object_name=row["object_name"],
            payload=row["payload"] or {},
            status="processing",
        )

    def enqueue(
        self,
        *,
        bucket: str = "",
        object_name: str = "",
        event_type: str = OBJECT_FINALIZED,
        payload: dict[str, Any] | None = None,
    ) -> int:
        """Insert a pending event and return its ID."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO pipeline_events (event_type, bucket, object_name, payload)
                    VALUES (%s, %s, %s, %s)
                    RETURNING id
                    """,
                    (event_type, bucket, object_name, Jsonb(payload or {})),
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            raise RuntimeError("INSERT INTO pipeline_events returned no id")
        return int(row[0])

    def mark_done(self, event_id: int) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE pipeline_events
                SET status = 'done', updated_at = NOW()
                WHERE id = %s
                """,
                (event_id,),
            )
            conn.commit()

    def mark_failed(self, event_id: int, error: str) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE pipeline_events
                SET status = 'failed', error_message = %s, updated_at = NOW()
                WHERE id = %s
                """,
                (error, event_id),
            )
            conn.commit()

    def find_by_id(self, event_id: int) -> PipelineEventRecord | None:
        """Find an event by ID. Useful for tests."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, event_type, bucket, object_name, payload, status,
                           error_message, locked_at, created_at, updated_at
                    FROM pipeline_events
                    WHERE id = %s
                    """,
                    (event_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return PipelineEventRecord(**row)
