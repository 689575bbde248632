"""Time helpers. All persisted timestamps are naive UTC."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time without tzinfo, matching what the database stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
