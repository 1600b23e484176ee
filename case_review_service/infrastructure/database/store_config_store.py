# Operations for the stores configuration collection
import logging
import uuid
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from case_review_service.app.config import settings
from case_review_service.app.models import StoreCreate, StoreRecord, StoreUpdate, utc_now
from case_review_service.app.service.exceptions import StoreAlreadyExistsError, StoreNotFoundError

logger = logging.getLogger(__name__)


def _stores(db: AsyncIOMotorDatabase):
    return db[settings.STORES_COLLECTION]


def _to_record(doc: Dict[str, Any]) -> StoreRecord:
    data = {k: v for k, v in doc.items() if k != "_id"}
    return StoreRecord.model_validate(data)


async def ensure_indexes(db: AsyncIOMotorDatabase):
    await _stores(db).create_index("storeId", unique=True)


async def list_stores(db: AsyncIOMotorDatabase) -> List[StoreRecord]:
    docs = await _stores(db).find().sort("name", 1).to_list(length=None)
    return [_to_record(doc) for doc in docs]


async def get_store(db: AsyncIOMotorDatabase, store_id: str) -> Optional[StoreRecord]:
    doc = await _stores(db).find_one({"storeId": store_id})
    return _to_record(doc) if doc else None


async def create_store(db: AsyncIOMotorDatabase, data: StoreCreate) -> StoreRecord:
    if await _stores(db).find_one({"storeId": data.store_id}):
        raise StoreAlreadyExistsError(data.store_id)
    now = utc_now()
    record = StoreRecord(id=uuid.uuid4().hex, created_at=now, updated_at=now, **data.model_dump())
    try:
        await _stores(db).insert_one(record.model_dump(by_alias=True))
    except DuplicateKeyError:
        raise StoreAlreadyExistsError(data.store_id)
    logger.info(f"Store {record.store_id} created.")
    return record


async def update_store(db: AsyncIOMotorDatabase, store_id: str, changes: StoreUpdate) -> StoreRecord:
    set_operations = changes.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
    set_operations["updatedAt"] = utc_now()
    doc = await _stores(db).find_one_and_update(
        {"storeId": store_id},
        {"$set": set_operations},
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        raise StoreNotFoundError(store_id)
    logger.info(f"Store {store_id} updated.")
    return _to_record(doc)
