# API Router for store branding configuration
import logging

from fastapi import APIRouter, Body, Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from case_review_service.app.api.v1.endpoints.errors import to_http_exception
from case_review_service.app.dependencies.auth import require_admin
from case_review_service.app.models import StoreCreate, StoreListResult, StoreRecord, StoreUpdate
from case_review_service.app.service.exceptions import CaseReviewError
from case_review_service.infrastructure.database import store_config_store
from case_review_service.infrastructure.database.connection import get_db

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Stores"], dependencies=[Depends(require_admin)])


@router.get("/stores", response_model=StoreListResult)
async def list_stores(db: AsyncIOMotorDatabase = Depends(get_db)):
    try:
        return StoreListResult(items=await store_config_store.list_stores(db))
    except Exception as e:
        logger.error(f"Error listing stores: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to list stores")


@router.post("/stores", response_model=StoreRecord, status_code=201)
async def create_store(data: StoreCreate = Body(...), db: AsyncIOMotorDatabase = Depends(get_db)):
    try:
        return await store_config_store.create_store(db, data)
    except CaseReviewError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error creating store {data.store_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="An unexpected error occurred while creating the store.")


@router.put("/stores/{store_id}", response_model=StoreRecord)
async def update_store(
    store_id: str,
    changes: StoreUpdate = Body(...),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    try:
        return await store_config_store.update_store(db, store_id, changes)
    except CaseReviewError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error updating store {store_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="An unexpected error occurred while updating the store.")
