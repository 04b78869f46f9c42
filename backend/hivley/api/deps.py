"""Request dependencies."""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from hivley.container import Services
from hivley.errors import AuthenticationError
from hivley.schemas import CurrentUser

security = HTTPBearer(auto_error=False)


def get_services(request: Request) -> Services:
    return request.app.state.services


async def current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    services: Services = Depends(get_services)
) -> CurrentUser:
    token = credentials.credentials if credentials else None
    user = await services.identity.get_current_user(token)
    if user is None:
        raise AuthenticationError("Not authenticated", code="NOT_AUTHENTICATED")
    return user
