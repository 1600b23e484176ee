# API Router for admin sign-in
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from case_review_service.app.dependencies.auth import bearer_scheme, is_allow_listed
from case_review_service.app.security.session_token import (
    AdminSessionPayload,
    SessionToken,
    create_admin_session_token,
)
from case_review_service.app.service.exceptions import AuthenticationError
from case_review_service.infrastructure.identity import GoogleIdentityVerifier, get_identity_verifier

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/session", response_model=SessionToken, tags=["Session"])
async def create_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    verifier: GoogleIdentityVerifier = Depends(get_identity_verifier),
):
    """
    Exchanges a Google ID token for a short-lived admin session token.

    Only the single allow-listed admin address receives a session.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Missing Google ID token")
    try:
        identity = await verifier.verify(credentials.credentials)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))

    if not identity.email or not identity.email_verified or not is_allow_listed(identity.email):
        logger.warning(f"Sign-in refused for identity {identity.uid} ({identity.email}).")
        raise HTTPException(status_code=403, detail="Unauthorized admin email")

    logger.info(f"Admin session issued for {identity.email}.")
    return create_admin_session_token(AdminSessionPayload(uid=identity.uid, email=identity.email))
