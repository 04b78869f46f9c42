"""Profile and identity DTOs."""
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ProfileOut(BaseModel):
    id: str
    full_name: Optional[str] = None
    role: str = "client"
    avatar_url: Optional[str] = None


class ProfileSummary(BaseModel):
    full_name: Optional[str] = None
    role: str = "client"


class CurrentUser(BaseModel):
    """Actor identity for every write."""

    id: str
    email: str
    profile: Optional[ProfileSummary] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class SignUpIn(BaseModel):
    email: str = ""
    password: str = ""
    full_name: str = ""
    role: str = ""
