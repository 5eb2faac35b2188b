from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel
from typing import Optional
import logging
import httpx

from wellspend.config import Settings

router = APIRouter()
security = HTTPBearer(auto_error=False)
logger = logging.getLogger(__name__)


class UserDep(BaseModel):
    user_id: str
    email: str


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_app_settings),
) -> UserDep:
    """Resolve the calling principal from a Supabase access token"""
    if settings.auth_disabled:
        return UserDep(user_id=settings.dev_user_id, email=settings.dev_user_email)

    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = credentials.credentials

    if not settings.supabase_key:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Supabase API key not configured"
        )

    # Validate with Supabase - use apikey header (anon key) required by Supabase
    try:
        async with httpx.AsyncClient(timeout=settings.auth_timeout) as client:
            headers = {
                "Authorization": f"Bearer {access_token}",
                "apikey": settings.supabase_key,
                "Content-Type": "application/json"
            }
            response = await client.get(
                f"{settings.supabase_url}/auth/v1/user",
                headers=headers
            )
    except httpx.RequestError as e:
        logger.error(f"Supabase connection error: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to connect to identity provider"
        )

    if response.status_code != 200:
        logger.info(f"Rejected access token: identity provider returned {response.status_code}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_data = response.json()
    user_id = user_data.get("id") or user_data.get("sub")
    email = user_data.get("email")

    if not user_id or not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user data from identity provider"
        )

    return UserDep(user_id=str(user_id), email=str(email))


@router.get("/verify")
async def verify_token(current_user: UserDep = Depends(get_current_user)):
    """Verify the bearer token and echo the resolved principal"""
    return {"valid": True, "user": current_user}
