"""Identity provider.

Sign-in itself happens outside this service; callers present an HS256 JWT
whose ``sub`` is the profile id. The provider only answers "who is this".
"""
from datetime import timedelta
from typing import Any, Dict, Optional

import jwt
from jwt import PyJWTError

from hivley.config import Settings
from hivley.gateway import PersistenceGateway
from hivley.schemas import CurrentUser, ProfileSummary
from hivley.utils.helpers import utcnow
from hivley.utils.logger import setup_logger

logger = setup_logger(__name__)

TOKEN_TTL = timedelta(hours=24)


class IdentityProvider:
    def __init__(self, settings: Settings, gateway: PersistenceGateway):
        self.settings = settings
        self.gateway = gateway

    def issue_token(
        self,
        user_id: str,
        email: str,
        metadata: Optional[Dict[str, Any]] = None,
        expires_in: Optional[timedelta] = TOKEN_TTL
    ) -> str:
        to_encode = {"sub": user_id, "email": email, "metadata": metadata or {}}
        if expires_in is not None:
            to_encode["exp"] = utcnow() + expires_in
        return jwt.encode(to_encode, self.settings.SECRET_KEY, algorithm=self.settings.ALGORITHM)

    async def get_current_user(self, token: Optional[str]) -> Optional[CurrentUser]:
        """Resolve a token to the current user, or None when there is no valid session."""
        if not token:
            return None
        try:
            payload = jwt.decode(token, self.settings.SECRET_KEY, algorithms=[self.settings.ALGORITHM])
        except PyJWTError as e:
            logger.debug(f"Rejected token: {e}")
            return None

        user_id = payload.get("sub")
        if not user_id:
            return None

        profile = await self.gateway.get_profile(str(user_id))
        return CurrentUser(
            id=str(user_id),
            email=payload.get("email") or "",
            profile=ProfileSummary(full_name=profile.full_name, role=profile.role) if profile else None,
            metadata=payload.get("metadata") or {}
        )
