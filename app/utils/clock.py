"""
Time helpers shared by sessions, analytics and reports
"""
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from databases that drop tzinfo"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_duration(seconds: int) -> str:
    """Format seconds as m:ss"""
    seconds = max(int(seconds or 0), 0)
    minutes, remaining = divmod(seconds, 60)
    return f"{minutes}:{remaining:02d}"
