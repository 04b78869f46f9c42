"""Identity routes."""
from fastapi import APIRouter, Depends

from hivley.api.deps import current_user, get_services
from hivley.container import Services
from hivley.schemas import CurrentUser, SignUpIn
from hivley.utils.validators import validate_signup

router = APIRouter()


@router.post("/auth/validate-signup")
async def validate_signup_form(body: SignUpIn, services: Services = Depends(get_services)):
    """Check a signup form before it is handed to the identity service."""
    validate_signup(
        body.email,
        body.password,
        body.full_name,
        body.role,
        services.settings.ALLOWED_EMAIL_DOMAINS
    )
    return {"valid": True}


@router.get("/auth/me", response_model=CurrentUser)
async def me(user: CurrentUser = Depends(current_user)):
    return user
