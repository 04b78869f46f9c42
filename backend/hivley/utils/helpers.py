"""Helper utilities."""
import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple


def utcnow() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from the database."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def pair_key(user1_id: str, user2_id: str) -> str:
    """Order-independent key for a direct conversation."""
    low, high = sorted([user1_id, user2_id])
    return f"{low}:{high}"


def dedupe(values: Iterable[str], exclude: Tuple[str, ...] = ()) -> List[str]:
    """Remove duplicates and excluded values, keeping first-seen order."""
    seen = set(exclude)
    result = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result
