# API Router for Cases
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from case_review_service.app.api.v1.endpoints.errors import to_http_exception
from case_review_service.app.dependencies.auth import require_admin
from case_review_service.app.dependencies.services import get_status_notifier
from case_review_service.app.models import CaseListResult, CaseRecord
from case_review_service.app.security.session_token import AdminSessionPayload
from case_review_service.app.service.commands import handlers
from case_review_service.app.service.commands.models import (
    ApproveCaseCommand,
    DeleteCaseCommand,
    DeleteCaseResult,
    PromptResult,
    RejectCaseCommand,
    RequestInfoCommand,
    SaveAnalysisCommand,
)
from case_review_service.app.service.exceptions import CaseReviewError
from case_review_service.app.service.notifications import StatusNotifier
from case_review_service.infrastructure.cloudinary_client import CloudinaryClient, get_cloudinary_client
from case_review_service.infrastructure.database.connection import get_db

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Cases"], dependencies=[Depends(require_admin)])


@router.get("/cases", response_model=CaseListResult)
async def list_cases(
    status: Optional[str] = None,
    q: Optional[str] = None,
    limit: int = Query(20, ge=1, le=100),
    skip: int = Query(0, ge=0),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    try:
        return await handlers.handle_list_cases(db, status=status, q=q, limit=limit, skip=skip)
    except Exception as e:
        logger.error(f"Error listing cases: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to list cases")


@router.get("/cases/{case_id}", response_model=CaseRecord)
async def get_case(case_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    try:
        return await handlers.handle_get_case(db, case_id)
    except CaseReviewError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error retrieving case {case_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to retrieve case {case_id}")


@router.delete("/cases/{case_id}", response_model=DeleteCaseResult)
async def delete_case(
    case_id: str,
    command: Optional[DeleteCaseCommand] = Body(default=None),
    db: AsyncIOMotorDatabase = Depends(get_db),
    cloudinary: CloudinaryClient = Depends(get_cloudinary_client),
):
    try:
        return await handlers.handle_delete_case(db, case_id, command or DeleteCaseCommand(), cloudinary)
    except CaseReviewError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error deleting case {case_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="An unexpected error occurred while deleting the case.")


@router.post("/cases/{case_id}/analysis", response_model=CaseRecord)
async def save_analysis(
    case_id: str,
    command: SaveAnalysisCommand = Body(...),
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: AdminSessionPayload = Depends(require_admin),
    notifier: StatusNotifier = Depends(get_status_notifier),
):
    try:
        return await handlers.handle_save_analysis(db, case_id, command, admin.email, notifier)
    except CaseReviewError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error saving analysis for case {case_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="An unexpected error occurred while saving the analysis.")


@router.post("/cases/{case_id}/request-info", response_model=CaseRecord)
async def request_info(
    case_id: str,
    command: RequestInfoCommand = Body(...),
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: AdminSessionPayload = Depends(require_admin),
    notifier: StatusNotifier = Depends(get_status_notifier),
):
    try:
        return await handlers.handle_request_info(db, case_id, command, admin.email, notifier)
    except CaseReviewError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error requesting info for case {case_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="An unexpected error occurred while requesting information.")


@router.post("/cases/{case_id}/approve", response_model=CaseRecord)
async def approve_case(
    case_id: str,
    command: ApproveCaseCommand = Body(...),
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: AdminSessionPayload = Depends(require_admin),
    notifier: StatusNotifier = Depends(get_status_notifier),
):
    try:
        return await handlers.handle_approve_case(db, case_id, command, admin.email, notifier)
    except CaseReviewError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error approving case {case_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="An unexpected error occurred while approving the case.")


@router.post("/cases/{case_id}/reject", response_model=CaseRecord)
async def reject_case(
    case_id: str,
    command: RejectCaseCommand = Body(default=RejectCaseCommand()),
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: AdminSessionPayload = Depends(require_admin),
    notifier: StatusNotifier = Depends(get_status_notifier),
):
    try:
        return await handlers.handle_reject_case(db, case_id, command, admin.email, notifier)
    except CaseReviewError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error rejecting case {case_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="An unexpected error occurred while rejecting the case.")


@router.post("/cases/{case_id}/prompt", response_model=PromptResult)
async def generate_prompt(case_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    try:
        return await handlers.handle_build_prompt(db, case_id)
    except CaseReviewError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error building prompt for case {case_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to build case prompt")
