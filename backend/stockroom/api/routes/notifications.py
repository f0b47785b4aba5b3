"""Notification routes."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, status

from stockroom.core.rate_limit import limiter
from stockroom.db.session import DbSession
from stockroom.models.operations import Notification
from stockroom.schemas.operations import NotificationResponse

router = APIRouter()


@router.get("/", response_model=list[NotificationResponse])
@limiter.limit("60/minute")
def list_notifications(
    request: Request,
    db: DbSession,
    unread_only: bool = Query(False),
    category: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
):
    """List notifications, newest first."""
    query = db.query(Notification)
    if unread_only:
        query = query.filter(Notification.read.is_(False))
    if category:
        query = query.filter(Notification.category == category)
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


@router.put("/{notification_id}/read", response_model=NotificationResponse)
@limiter.limit("60/minute")
def mark_read(request: Request, notification_id: int, db: DbSession):
    """Mark a notification as read."""
    notification = db.get(Notification, notification_id)
    if not notification:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    notification.read = True
    db.commit()
    db.refresh(notification)
    return notification


@router.put("/read-all")
@limiter.limit("30/minute")
def mark_all_read(request: Request, db: DbSession):
    """Mark every notification as read."""
    updated = db.query(Notification).filter(Notification.read.is_(False)).update({"read": True})
    db.commit()
    return {"updated": updated}
