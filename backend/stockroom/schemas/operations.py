"""Notification and audit log schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class NotificationResponse(BaseModel):
    """Notification response schema."""

    id: int
    key: Optional[str] = None
    title: str
    message: Optional[str] = None
    type: str
    category: Optional[str] = None
    priority: str
    read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class AuditLogResponse(BaseModel):
    """Audit log entry response schema."""

    id: int
    user_name: Optional[str] = None
    action: str
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    details: Optional[dict[str, Any]] = None
    created_at: datetime

    model_config = {"from_attributes": True}
