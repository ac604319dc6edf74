"""
dependencies.py
---------------
FastAPI dependency injection functions for caller identity and services.

Flow:
  1. OAuth2PasswordBearer (auto_error=False) extracts an optional Bearer token.
  2. A token is decoded and its 'sub' claim becomes the user id.
  3. Without a token the caller is the configured guest identity, unless
     ALLOW_GUEST is off, in which case the request is rejected with 401.

Every store operation receives this user id explicitly.
"""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from cost_assistant.core.config import settings
from cost_assistant.core.logging import get_logger
from cost_assistant.core.security import decode_access_token
from cost_assistant.services.chat_service import ChatService
from cost_assistant.services.llm_service import LLMService, get_llm_service

logger = get_logger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/token", auto_error=False)

_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_user_id(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
) -> str:
    """Resolve the caller's user id from the bearer token or the guest fallback."""
    if token is None:
        if settings.ALLOW_GUEST:
            return settings.GUEST_USER_ID
        raise _CREDENTIALS_EXCEPTION

    try:
        payload = decode_access_token(token)
    except JWTError as exc:
        logger.warning("JWT decode failed", error=str(exc))
        raise _CREDENTIALS_EXCEPTION

    user_id = payload.get("sub")
    if not user_id:
        raise _CREDENTIALS_EXCEPTION
    return user_id


def get_chat_service(
    llm: Annotated[LLMService, Depends(get_llm_service)],
) -> ChatService:
    return ChatService(llm)
