"""Operational models: notifications and the audit log."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text

from stockroom.db.base import Base


class Notification(Base):
    """In-app notification raised by inventory alerts and automation."""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(200), nullable=True, unique=True, index=True)  # e.g. low_stock:12
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=True)
    type = Column(String(50), default="info")  # info, warning, error, success
    category = Column(String(50), nullable=True)  # inventory, automation
    priority = Column(String(20), default="medium")
    read = Column(Boolean, default=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))


class AuditLogEntry(Base):
    """Audit log entry."""
    __tablename__ = "audit_log_entries"

    id = Column(Integer, primary_key=True, index=True)
    user_name = Column(String(200), nullable=True)
    action = Column(String(50), nullable=False, index=True)
    entity_type = Column(String(50), nullable=True, index=True)
    entity_id = Column(String(50), nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), index=True)
