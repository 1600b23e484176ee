# Verification of Google ID tokens presented at sign-in
import logging
from typing import Optional

import httpx
from fastapi import Depends
from pydantic import BaseModel

from case_review_service.app.config import AppSettings, settings as app_settings
from case_review_service.app.dependencies.http_client import get_http_client
from case_review_service.app.service.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

TRUSTED_ISSUERS = {"accounts.google.com", "https://accounts.google.com"}


class VerifiedIdentity(BaseModel):
    uid: str
    email: Optional[str] = None
    email_verified: bool = False


class GoogleIdentityVerifier:
    def __init__(self, http_client: httpx.AsyncClient, settings: AppSettings = app_settings):
        self.http_client = http_client
        self.settings = settings

    async def verify(self, id_token: str) -> VerifiedIdentity:
        try:
            response = await self.http_client.get(self.settings.GOOGLE_TOKENINFO_URL, params={"id_token": id_token})
        except httpx.RequestError as e:
            logger.error(f"Request error calling Google tokeninfo: {e}", exc_info=True)
            raise AuthenticationError("Identity provider unavailable")
        if response.status_code != 200:
            logger.info(f"Google tokeninfo rejected ID token with status {response.status_code}.")
            raise AuthenticationError("Invalid Google ID token")

        claims = response.json()
        if claims.get("iss") not in TRUSTED_ISSUERS:
            raise AuthenticationError("Untrusted token issuer")
        if self.settings.GOOGLE_CLIENT_ID and claims.get("aud") != self.settings.GOOGLE_CLIENT_ID:
            raise AuthenticationError("Token audience mismatch")
        if not claims.get("sub"):
            raise AuthenticationError("Token has no subject")

        return VerifiedIdentity(
            uid=claims["sub"],
            email=claims.get("email"),
            email_verified=str(claims.get("email_verified", "")).lower() == "true",
        )


def get_identity_verifier(http_client: httpx.AsyncClient = Depends(get_http_client)) -> GoogleIdentityVerifier:
    return GoogleIdentityVerifier(http_client=http_client)
