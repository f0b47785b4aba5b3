"""Audit logging service.

Writes audit log entries for state-changing operations. Services pass their
own session so the entry commits with the change it records; callers without
a session get a short-lived one.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from stockroom.db.session import SessionLocal
from stockroom.models.operations import AuditLogEntry

logger = logging.getLogger("audit")


def log_action(
    action: str,
    entity_type: str = "",
    entity_id: Any = "",
    user_name: str = "",
    details: Optional[dict[str, Any]] = None,
    db: Optional[Session] = None,
) -> None:
    """Write an audit log entry.

    Args:
        action: The action performed (create, update, prepare, fulfil, import, ...)
        entity_type: Type of entity affected (order, product, backorder, ...)
        entity_id: ID of the affected entity
        user_name: Who performed the action
        details: Additional details (quantities, old/new status, ...)
        db: Optional existing DB session. If None, creates a new one.
    """
    own_session = db is None
    if own_session:
        db = SessionLocal()

    try:
        entry = AuditLogEntry(
            user_name=(user_name or "")[:200],
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id not in (None, "") else "",
            details=details or {},
            created_at=datetime.now(timezone.utc),
        )
        db.add(entry)
        if own_session:
            db.commit()
        else:
            # The caller commits; flush so the entry is visible in its transaction
            db.flush()
    except Exception:
        logger.exception("Failed to write audit log entry")
        if own_session:
            db.rollback()
    finally:
        if own_session:
            db.close()
