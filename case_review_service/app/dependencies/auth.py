import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from case_review_service.app.config import settings
from case_review_service.app.security.session_token import AdminSessionPayload, verify_admin_session_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def is_allow_listed(email: Optional[str]) -> bool:
    return bool(email) and bool(settings.ADMIN_EMAIL) and email.lower() == settings.ADMIN_EMAIL.lower()


async def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AdminSessionPayload:
    """Resolves the admin session from the bearer token, or fails with 401/403."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    admin = verify_admin_session_token(credentials.credentials)
    if admin is None:
        raise HTTPException(status_code=401, detail="Invalid or expired admin token")
    if not is_allow_listed(admin.email):
        logger.warning(f"Session token for non-admin identity {admin.email} rejected.")
        raise HTTPException(status_code=403, detail="Forbidden")
    return admin
