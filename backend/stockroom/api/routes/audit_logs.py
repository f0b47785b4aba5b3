"""Audit log routes."""

from typing import Optional

from fastapi import APIRouter, Query, Request

from stockroom.core.rate_limit import limiter
from stockroom.db.session import DbSession
from stockroom.models.operations import AuditLogEntry
from stockroom.schemas.operations import AuditLogResponse

router = APIRouter()


@router.get("/", response_model=list[AuditLogResponse])
@limiter.limit("60/minute")
def list_audit_logs(
    request: Request,
    db: DbSession,
    action: Optional[str] = Query(None),
    entity_type: Optional[str] = Query(None),
    entity_id: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    """List audit log entries, newest first."""
    query = db.query(AuditLogEntry)
    if action:
        query = query.filter(AuditLogEntry.action == action)
    if entity_type:
        query = query.filter(AuditLogEntry.entity_type == entity_type)
    if entity_id:
        query = query.filter(AuditLogEntry.entity_id == entity_id)
    return (
        query.order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
