"""In-process audit sink for local runs without AWS."""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Optional

from CRB.core.exceptions import StorageError
from CRB.core.logging_config import get_logger
from CRB.core.models import AuditRecord

logger = get_logger(__name__)


def _utc(ts: datetime) -> datetime:
    return ts.replace(tzinfo=timezone.utc) if ts.tzinfo is None else ts


class InMemoryAuditSink:
    """Keeps audit records in a dict keyed by (claim_id, timestamp)."""

    def __init__(self):
        self._records: dict[tuple[str, datetime], AuditRecord] = {}
        self._lock = threading.Lock()

    def record(self, entry: AuditRecord) -> None:
        key = (entry.claim_id, _utc(entry.timestamp))
        with self._lock:
            if key in self._records:
                raise StorageError(
                    "Audit record already exists",
                    details={"claim_id": entry.claim_id, "timestamp": entry.timestamp.isoformat()}
                )
            self._records[key] = entry
        logger.debug(f"Audit record stored in memory for claim {entry.claim_id}")

    def history(
        self,
        claim_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> list[AuditRecord]:
        with self._lock:
            matches = [
                record for (cid, ts), record in self._records.items()
                if cid == claim_id
                and (start is None or ts >= _utc(start))
                and (end is None or ts <= _utc(end))
            ]
        return sorted(matches, key=lambda r: _utc(r.timestamp))

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
