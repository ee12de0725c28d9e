"""
Authentication status endpoint.
"""
from fastapi import APIRouter, Depends

from openai_oauth import CredentialStore
from ..dependencies import get_credentials

router = APIRouter()


@router.get("/auth/status")
async def auth_status(credentials: CredentialStore = Depends(get_credentials)):
    """Get token status without exposing secrets"""
    return credentials.status()
