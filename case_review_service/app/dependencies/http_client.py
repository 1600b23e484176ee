import httpx
from fastapi import Request

from case_review_service.app.config import settings


def create_http_client() -> httpx.AsyncClient:
    """Shared client for Google, Gmail and Cloudinary calls; closed at shutdown."""
    return httpx.AsyncClient(timeout=settings.DEFAULT_HTTP_TIMEOUT)


async def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client
