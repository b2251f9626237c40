"""
Audit trail for member mutations.

Each create, update and delete is written as an ``AUDIT:`` JSON log line
and, when a connection is supplied, as a row in ``audit_log``.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import BaseModel, Field

from gym_manager.logger import StructuredLogger

__all__ = ["AuditEvent", "log_audit_event", "persist_audit_event"]

# Flat scalars only.
DetailValue = Union[str, int, float, bool, None]

_INSERT_SQL = (
    "INSERT INTO audit_log (timestamp, action, entity_type, entity_id, actor, details) "
    "VALUES (:timestamp, :action, :entity_type, :entity_id, :actor, :details)"
)


class AuditEvent(BaseModel):
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    action: str
    entity_type: str
    entity_id: str
    actor: str
    details: dict[str, DetailValue] = Field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(self.model_dump(), default=str)


def log_audit_event(
    logger: StructuredLogger,
    action: str,
    entity_type: str,
    entity_id: str,
    actor: str,
    details: Optional[dict[str, DetailValue]] = None,
    conn: Optional[sqlite3.Connection] = None,
) -> AuditEvent:
    """Record that *actor* performed *action* on ``entity_type/entity_id``.

    The log line is always written.  A failed ``audit_log`` insert is
    logged as a warning; the mutation that triggered it has already
    happened and is not undone.
    """
    event = AuditEvent(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        actor=actor,
        details=details or {},
    )
    logger.info("AUDIT: %s", event.to_json())

    if conn is not None:
        try:
            persist_audit_event(conn, event)
        except sqlite3.Error as exc:
            logger.warning("Audit event %s %s/%s not persisted: %s",
                           action, entity_type, entity_id, exc)
    return event


def persist_audit_event(conn: sqlite3.Connection, event: AuditEvent) -> None:
    row = event.model_dump()
    row["details"] = json.dumps(event.details, default=str)
    conn.execute(_INSERT_SQL, row)
    conn.commit()
