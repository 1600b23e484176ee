# Client for the Gmail REST API (users.messages.send, users.threads.get)
import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

import httpx
from fastapi import Request

from case_review_service.app.config import AppSettings, settings as app_settings
from case_review_service.app.service.exceptions import MailProviderError
from case_review_service.app.service.mail.compose import MailAttachment, build_mime_message, encode_raw_message

logger = logging.getLogger(__name__)

# Refresh the access token this many seconds before Google says it expires.
TOKEN_EXPIRY_MARGIN_SECONDS = 60


class GmailClient:
    def __init__(self, http_client: httpx.AsyncClient, settings: AppSettings = app_settings):
        self.http_client = http_client
        self.settings = settings
        self._access_token: Optional[str] = None
        self._token_expires_at: float = 0.0
        self._token_lock = asyncio.Lock()

    @property
    def sender(self) -> str:
        return self.settings.GMAIL_USER or ""

    def _missing_config(self) -> List[str]:
        missing = []
        if not self.settings.GMAIL_CLIENT_ID:
            missing.append("GMAIL_CLIENT_ID")
        if not self.settings.GMAIL_CLIENT_SECRET:
            missing.append("GMAIL_CLIENT_SECRET")
        if not self.settings.GMAIL_REFRESH_TOKEN:
            missing.append("GMAIL_REFRESH_TOKEN")
        if not self.settings.GMAIL_USER:
            missing.append("GMAIL_USER")
        return missing

    async def _get_access_token(self) -> str:
        missing = self._missing_config()
        if missing:
            raise MailProviderError(f"Gmail OAuth is not configured. Missing: {', '.join(missing)}")

        async with self._token_lock:
            if self._access_token and time.monotonic() < self._token_expires_at:
                return self._access_token
            try:
                response = await self.http_client.post(
                    self.settings.GOOGLE_OAUTH_TOKEN_URL,
                    data={
                        "client_id": self.settings.GMAIL_CLIENT_ID,
                        "client_secret": self.settings.GMAIL_CLIENT_SECRET,
                        "refresh_token": self.settings.GMAIL_REFRESH_TOKEN,
                        "grant_type": "refresh_token",
                    },
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(f"Gmail token refresh failed: {e.response.status_code} - {e.response.text}")
                raise MailProviderError(f"Gmail token refresh failed with status {e.response.status_code}")
            except httpx.RequestError as e:
                logger.error(f"Gmail token refresh request error: {e}", exc_info=True)
                raise MailProviderError(f"Gmail token refresh failed: {e}")

            try:
                token_data = response.json()
                access_token = token_data["access_token"]
                expires_in = int(token_data.get("expires_in", 3600))
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                logger.error(f"Gmail token refresh returned an unusable response: {e!r}")
                raise MailProviderError("Gmail token refresh returned no access token")
            self._access_token = access_token
            self._token_expires_at = time.monotonic() + max(expires_in - TOKEN_EXPIRY_MARGIN_SECONDS, 0)
            logger.debug("Gmail access token refreshed.")
            return self._access_token

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        token = await self._get_access_token()
        url = f"{self.settings.GMAIL_API_BASE_URL}{path}"
        try:
            response = await self.http_client.request(
                method, url, headers={"Authorization": f"Bearer {token}"}, **kwargs
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Gmail API error on {method} {path}: {e.response.status_code} - {e.response.text}")
            raise MailProviderError(f"Gmail API returned {e.response.status_code}: {_error_message(e.response)}")
        except httpx.RequestError as e:
            logger.error(f"Gmail API request error on {method} {path}: {e}", exc_info=True)
            raise MailProviderError(f"Gmail API request failed: {e}")
        return response.json()

    async def send_message(
        self,
        to: str,
        subject: str,
        body: str,
        attachments: Optional[List[MailAttachment]] = None,
        thread_id: Optional[str] = None,
        in_reply_to: Optional[str] = None,
        references: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Sends a message, inside `thread_id` when given. Returns Gmail's {id, threadId, labelIds}."""
        message = build_mime_message(
            sender=self.sender,
            to=to,
            subject=subject,
            body=body,
            attachments=attachments,
            in_reply_to=in_reply_to,
            references=references,
        )
        payload: Dict[str, Any] = {"raw": encode_raw_message(message)}
        if thread_id:
            payload["threadId"] = thread_id
        result = await self._request("POST", "/messages/send", json=payload)
        logger.info(f"Gmail message {result.get('id')} sent in thread {result.get('threadId')}.")
        return result

    async def get_thread(self, thread_id: str, format: str = "full") -> Dict[str, Any]:
        params: Dict[str, Any] = {"format": format}
        if format == "metadata":
            params["metadataHeaders"] = ["Message-ID", "References", "Subject", "From"]
        return await self._request("GET", f"/threads/{thread_id}", params=params)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    return response.text


def get_gmail_client(request: Request) -> GmailClient:
    """FastAPI dependency returning the process-wide GmailClient created at startup."""
    return request.app.state.gmail_client
