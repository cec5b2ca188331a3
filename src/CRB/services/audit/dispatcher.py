"""
Best-effort background dispatch of audit records.

The claim response must never wait on, or fail because of, an audit write.
BackgroundAuditDispatcher accepts records without blocking, keeps them in a
bounded in-memory queue and writes them through the sink from a single
daemon worker thread.

Drop policy:
    When the queue is full the OLDEST pending record is discarded with a
    warning so that the newest decisions are the ones that get persisted.

Failure policy:
    One attempt per record. StorageError (or anything unexpected raised by a
    sink) is logged and counted; the worker keeps running.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Optional

from CRB.core.exceptions import StorageError
from CRB.core.logging_config import get_logger
from CRB.core.models import AuditRecord

logger = get_logger(__name__)


class BackgroundAuditDispatcher:
    """
    Bounded fire-and-forget queue in front of an audit sink.

    Attributes:
        sink: Object with record(AuditRecord) raising StorageError on failure
        max_queue_size (int): Pending records kept before oldest-first drops
    """

    def __init__(self, sink, max_queue_size: int = 1000, start: bool = True):
        if max_queue_size < 1:
            raise ValueError("max_queue_size must be >= 1")
        self.sink = sink
        self.max_queue_size = max_queue_size
        self._queue: deque[AuditRecord] = deque()
        self._cond = threading.Condition()
        self._in_flight = 0
        self._closed = False
        self._counters = {"submitted": 0, "written": 0, "failed": 0, "dropped": 0}
        self._worker = threading.Thread(target=self._run, name="audit-dispatcher", daemon=True)
        if start:
            self.start()

    def start(self) -> None:
        if not self._worker.is_alive():
            self._worker.start()
            logger.info(f"Audit dispatcher started (queue size {self.max_queue_size})")

    def submit(self, record: AuditRecord) -> bool:
        """
        Enqueue a record without blocking.

        Returns:
            bool: False if the dispatcher is closed and the record was discarded
        """
        with self._cond:
            if self._closed:
                self._counters["dropped"] += 1
                logger.warning(f"Audit dispatcher closed, discarding record for claim {record.claim_id}")
                return False

            if len(self._queue) >= self.max_queue_size:
                dropped = self._queue.popleft()
                self._counters["dropped"] += 1
                logger.warning(
                    f"Audit queue full ({self.max_queue_size}); dropped oldest record "
                    f"for claim {dropped.claim_id}"
                )

            self._queue.append(record)
            self._counters["submitted"] += 1
            self._cond.notify_all()
        return True

    def _run(self) -> None:
        while True:
            with self._cond:
                while not self._queue and not self._closed:
                    self._cond.wait()
                if not self._queue:
                    return
                record = self._queue.popleft()
                self._in_flight += 1

            outcome = "written"
            try:
                self.sink.record(record)
            except StorageError as e:
                outcome = "failed"
                logger.error(
                    f"Audit write failed for claim {record.claim_id}: {e.message}",
                    extra={"details": e.details}
                )
            except Exception as e:
                outcome = "failed"
                logger.exception(f"Unexpected audit sink error for claim {record.claim_id}: {e}")

            with self._cond:
                self._in_flight -= 1
                self._counters[outcome] += 1
                self._cond.notify_all()

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every queued record has been attempted.

        Returns:
            bool: True if the queue drained before the timeout
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while self._queue or self._in_flight:
                if not self._worker.is_alive():
                    return False
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    return False
                self._cond.wait(remaining)
        return True

    def close(self, timeout: Optional[float] = 5.0) -> bool:
        """
        Stop accepting records, drain what is queued and stop the worker.

        Returns:
            bool: True if the worker finished within the timeout
        """
        with self._cond:
            self._closed = True
            self._cond.notify_all()
        if self._worker.is_alive():
            self._worker.join(timeout)
        finished = not self._worker.is_alive()
        logger.info(f"Audit dispatcher closed (drained={finished}, stats={self.stats()})")
        return finished

    def stats(self) -> dict[str, int]:
        with self._cond:
            return {**self._counters, "pending": len(self._queue) + self._in_flight}
