import time
from collections.abc import Iterator
from typing import Any

from psycopg import sql

from renewal_worker.config.settings import Settings
from renewal_worker.database.connection import connect_listener
from renewal_worker.database.repositories.processing_log_repository import (
    NOTIFY_CHANNEL,
    ProcessingLogRepository,
)
from renewal_worker.logging.logger import Log


class ProgressWatcher:
    """Read-only observer of one processing log.

    Any number of watchers may follow the same log id; each holds its own
    LISTEN connection and never writes.
    """

    def __init__(self, settings: Settings, log_repo: ProcessingLogRepository) -> None:
        self._settings = settings
        self._log_repo = log_repo

    def watch(
        self,
        log_id: str,
        timeout_seconds: float | None = None,
    ) -> Iterator[dict[str, Any]]:
        """Yield the log document now and after every change, until terminal.

        Stops early when *timeout_seconds* elapse without reaching a terminal
        stage. LISTEN is issued before the first read so no change between
        the read and the subscription is lost.
        """
        deadline = None if timeout_seconds is None else time.monotonic() + timeout_seconds
        with connect_listener(self._settings) as conn:
            conn.execute(sql.SQL("LISTEN {}").format(sql.Identifier(NOTIFY_CHANNEL)))

            entry = self._log_repo.find_by_id(log_id)
            if entry is not None:
                yield entry.to_document()
                if entry.stage.is_terminal:
                    return

            while True:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    Log.debug(f"Stopped watching processing log {log_id}: timeout")
                    return
                for notify in conn.notifies(timeout=remaining, stop_after=1):
                    if notify.payload != log_id:
                        continue
                    entry = self._log_repo.find_by_id(log_id)
                    if entry is None:
                        continue
                    yield entry.to_document()
                    if entry.stage.is_terminal:
                        return
