from collections.abc import Mapping
from enum import Enum
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from renewal_worker.database.connection import get_connection
from renewal_worker.progress.exceptions import ProcessingLogNotFoundError
from renewal_worker.progress.models import (
    LOG_COLUMNS,
    UPDATABLE_COLUMNS,
    LogStatus,
    LogType,
    ProcessingLogEntry,
    Stage,
)

NOTIFY_CHANNEL = "processing_logs"


class ProcessingLogRepository:
    """Database operations for the processing_logs table.

    Every write notifies NOTIFY_CHANNEL with the log id in the same
    transaction, so observers only ever see committed state.
    """

    def create(self, entry: ProcessingLogEntry) -> None:
        """Insert *entry*, replacing any previous log with the same id."""
        values = [self._to_db(name, getattr(entry, name)) for name in LOG_COLUMNS]
        columns = sql.SQL(", ").join(sql.Identifier(name) for name in LOG_COLUMNS)
        placeholders = sql.SQL(", ").join(sql.Placeholder() for _ in LOG_COLUMNS)
        overwrite = sql.SQL(", ").join(
            sql.SQL("{col} = EXCLUDED.{col}").format(col=sql.Identifier(name))
            for name in LOG_COLUMNS
            if name != "id"
        )
        query = sql.SQL(
            "INSERT INTO processing_logs ({columns}) VALUES ({placeholders}) "
            "ON CONFLICT (id) DO UPDATE SET {overwrite}"
        ).format(columns=columns, placeholders=placeholders, overwrite=overwrite)

        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, values)
                self._notify(cur, entry.id)
            conn.commit()

    def update(self, log_id: str, changes: Mapping[str, Any]) -> None:
        """Apply *changes* (ProcessingLogEntry field names) to a log.

        Raises:
            ValueError: if a field name is unknown or immutable.
            ProcessingLogNotFoundError: if no log with this ID exists.
        """
        unknown = set(changes) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update processing log fields: {sorted(unknown)}")
        if not changes:
            return

        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(name)) for name in changes
        )
        query = sql.SQL("UPDATE processing_logs SET {} WHERE id = %s").format(assignments)
        params = [self._to_db(name, value) for name, value in changes.items()]
        params.append(log_id)

        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                if cur.rowcount == 0:
                    raise ProcessingLogNotFoundError(f"Processing log {log_id} not found")
                self._notify(cur, log_id)
            conn.commit()

    def find_by_id(self, log_id: str) -> ProcessingLogEntry | None:
        query = sql.SQL("SELECT {} FROM processing_logs WHERE id = %s").format(
            sql.SQL(", ").join(sql.Identifier(name) for name in LOG_COLUMNS)
        )
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, (log_id,))
                row = cur.fetchone()

        if row is None:
            return None
        return self._to_entry(row)

    def delete_for_policy(self, policy_id: str) -> int:
        """Delete every processing log that belongs to *policy_id*.

        Returns:
            Number of deleted logs.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "DELETE FROM processing_logs WHERE policy_id = %s OR id = %s",
                    (policy_id, policy_id),
                )
                deleted = cur.rowcount
            conn.commit()
        return deleted

    @staticmethod
    def _notify(cur: psycopg.Cursor[Any], log_id: str) -> None:
        cur.execute("SELECT pg_notify(%s, %s)", (NOTIFY_CHANNEL, log_id))

    @staticmethod
    def _to_db(name: str, value: Any) -> Any:
        if isinstance(value, Enum):
            return value.value
        if name == "failure_reasons" and value is not None:
            return Jsonb(list(value))
        return value

    @staticmethod
    def _to_entry(row: dict[str, Any]) -> ProcessingLogEntry:
        data = dict(row)
        data["type"] = LogType(data["type"])
        data["stage"] = Stage(data["stage"])
        data["status"] = LogStatus(data["status"])
        return ProcessingLogEntry(**data)
