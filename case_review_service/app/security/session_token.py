# Short-lived admin session tokens (HS256 JWT)
import datetime
import logging
from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel

from case_review_service.app.config import AppSettings, settings as app_settings
from case_review_service.app.models import CamelModel

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


class AdminSessionPayload(BaseModel):
    uid: str
    email: str


class SessionToken(CamelModel):
    token: str
    expires_at: datetime.datetime


def create_admin_session_token(
    payload: AdminSessionPayload,
    settings: AppSettings = app_settings,
    now: Optional[datetime.datetime] = None,
) -> SessionToken:
    issued_at = now or datetime.datetime.now(datetime.UTC)
    expires_at = issued_at + datetime.timedelta(seconds=settings.SESSION_TTL_SECONDS)
    claims = {
        "uid": payload.uid,
        "email": payload.email,
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    token = jwt.encode(claims, settings.ADMIN_SECRET_TOKEN, algorithm=ALGORITHM)
    return SessionToken(token=token, expires_at=expires_at)


def verify_admin_session_token(token: str, settings: AppSettings = app_settings) -> Optional[AdminSessionPayload]:
    """Returns the payload of a valid, unexpired token, else None."""
    try:
        claims = jwt.decode(token, settings.ADMIN_SECRET_TOKEN, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.info(f"Rejected admin session token: {e}")
        return None
    if not claims.get("uid") or not claims.get("email"):
        return None
    return AdminSessionPayload(uid=claims["uid"], email=claims["email"])
