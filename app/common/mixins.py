"""
Common mixins for catalog models
"""
from datetime import datetime, timedelta, timezone
from sqlalchemy import Column, DateTime


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimestampMixin:
    """Mixin for models that track creation and last modification"""

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True)

    def touch(self) -> datetime:
        """Set updated_at to now, strictly later than any previous timestamp."""
        now = utcnow()
        previous = [t for t in (self.created_at, self.updated_at) if t is not None]
        if previous and now <= max(previous):
            now = max(previous) + timedelta(microseconds=1)
        self.updated_at = now
        return now
