"""Presence DTOs."""
from datetime import datetime
from typing import Any, Dict, Literal

from pydantic import BaseModel, Field

PresenceStatus = Literal["online", "away", "offline"]
# "stale" is inferred by viewers, never stored
EffectivePresence = Literal["online", "away", "offline", "stale"]


class PresenceOut(BaseModel):
    profile_id: str
    status: PresenceStatus
    last_seen_at: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)


class HeartbeatIn(BaseModel):
    status: PresenceStatus = "online"
