"""Audit records for mutations and sensitive reads.

Every logical operation produces exactly one record. The record is opened
before any validation so rejected requests are audited too; its status stays
``fail`` until the operation calls ``success()``.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Protocol

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("audit")

LEVEL_READ = "read"
LEVEL_MODIFY = "modify"

STATUS_FAIL = "fail"
STATUS_SUCCESS = "success"


@dataclass
class AuditRecord:
    operation: str
    actor_id: str
    level: str = LEVEL_MODIFY
    request_id: str = ""
    meta: Dict[str, Any] = field(default_factory=dict)
    status: str = STATUS_FAIL

    def add_meta(self, key: str, value: Any) -> None:
        self.meta[key] = value

    def add_target_ids(self, ids: Iterable[str]) -> None:
        targets = self.meta.setdefault("targetIds", [])
        targets.extend(ids)

    def success(self) -> None:
        self.status = STATUS_SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "actorId": self.actor_id,
            "level": self.level,
            "requestId": self.request_id,
            "status": self.status,
            "meta": self.meta,
        }


class AuditSink(Protocol):
    def log(self, record: AuditRecord) -> None:
        ...


class LoggingAuditSink:
    """Writes one JSON line per record to the ``audit`` logger."""

    def log(self, record: AuditRecord) -> None:
        audit_logger.info(json.dumps(record.to_dict(), sort_keys=True, default=str))


class BufferedAuditSink:
    """Keeps records in memory; used by tests and when audit logging is off."""

    def __init__(self) -> None:
        self.records: List[AuditRecord] = []

    def log(self, record: AuditRecord) -> None:
        self.records.append(record)

    def drain(self) -> List[AuditRecord]:
        records = list(self.records)
        self.records.clear()
        return records


@contextmanager
def audit_operation(
    sink: AuditSink,
    operation: str,
    actor_id: str,
    level: str = LEVEL_MODIFY,
    request_id: str = "",
) -> Iterator[AuditRecord]:
    """Yield a record and hand it to ``sink`` when the block exits.

    The record is delivered even when the block raises; the exception then
    continues to propagate.
    """
    record = AuditRecord(operation=operation, actor_id=actor_id, level=level, request_id=request_id)
    try:
        yield record
    finally:
        try:
            sink.log(record)
        except Exception:
            logger.error("audit sink failed operation=%s", operation, exc_info=True)


__all__ = [
    "LEVEL_READ",
    "LEVEL_MODIFY",
    "STATUS_FAIL",
    "STATUS_SUCCESS",
    "AuditRecord",
    "AuditSink",
    "LoggingAuditSink",
    "BufferedAuditSink",
    "audit_operation",
]
