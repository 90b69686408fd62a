from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from quote_engine.config import settings
from quote_engine.core.security import decode_access_token_subject
from quote_engine.database import get_db


def _token_url() -> str:
    if settings.api_prefix:
        prefix = settings.api_prefix.rstrip("/")
        return f"{prefix}/auth/token"
    return "/auth/token"


oauth2_optional = OAuth2PasswordBearer(tokenUrl=_token_url(), auto_error=False)

_TOKEN_OPT_DEP = Depends(oauth2_optional)


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated caller; `id` is recorded as the quote owner."""

    id: str


def _extract_bearer_from_headers(request: Request) -> Optional[str]:
    # Some hosting layers may strip/override the standard Authorization header.
    raw = request.headers.get("authorization") or request.headers.get("x-authorization")
    if not raw:
        return None
    s = str(raw).strip()
    if not s:
        return None
    if s.lower().startswith("bearer "):
        return s.split(" ", 1)[1].strip()
    return s


def get_current_user(
    request: Request,
    token: Optional[str] = _TOKEN_OPT_DEP,
) -> CurrentUser:
    if not token:
        token = _extract_bearer_from_headers(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    subject = decode_access_token_subject(token)
    if not subject:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return CurrentUser(id=subject)


__all__ = ["CurrentUser", "get_current_user", "get_db"]
