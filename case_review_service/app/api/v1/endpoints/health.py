# API Router for Health Checks
from fastapi import APIRouter, Request
import logging

from case_review_service.app.config import settings

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/health", tags=["Monitoring"])
async def health_check(request: Request):
    mongodb_status = "disconnected"
    connection = getattr(request.app.state, "mongo", None)
    if connection is not None and connection.db is not None:
        try:
            await connection.db.command('ping')
            mongodb_status = "connected"
        except Exception as e:
            logger.error(f"MongoDB health check ping failed: {e}")
    return {"status": "ok", "components": {"mongodb": mongodb_status}, "service_name": settings.SERVICE_NAME_API}
