from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .auth import owner_id_from_token
from .gemini_client import GeminiClient, build_client


bearer_scheme = HTTPBearer()


def get_current_owner(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)) -> str:
    owner_id = owner_id_from_token(credentials.credentials)
    if not owner_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return owner_id


def get_ai_client() -> GeminiClient:
    """A fresh client per request; overridden in tests."""
    return build_client()
