# app/models/mixins.py
from datetime import datetime, timezone
import uuid
from sqlalchemy import Column, DateTime


def generate_uuid():
    """Generate a UUID string for use as a primary key"""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, stored the same way on SQLite and Postgres"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class CreatedAtMixin:
    """Mixin to add a created_at column to models"""
    created_at = Column(DateTime, default=utcnow, nullable=False)


class TimestampMixin(CreatedAtMixin):
    """Mixin to add created_at and updated_at columns to models"""
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
