# Functions for reading and updating the cases collection
import logging
import re
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from case_review_service.app.config import settings
from case_review_service.app.models import (
    CaseEmail,
    CaseListResult,
    CaseRecord,
    InfoExchange,
    InfoRequest,
    InfoRequestStatus,
    InfoResponse,
    StatusHistoryEntry,
    utc_now,
)
from case_review_service.app.service.status import normalize_status, stored_status_values

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ("storeName", "productName", "userEmail")


def _cases(db: AsyncIOMotorDatabase):
    return db[settings.CASES_COLLECTION]


def _object_id(case_id: str) -> Optional[ObjectId]:
    if not ObjectId.is_valid(case_id):
        return None
    return ObjectId(case_id)


def join_info_exchanges(requests: List[InfoRequest], responses: List[InfoResponse]) -> List[InfoExchange]:
    """Pairs each request with the first response that references it, oldest request first."""
    by_request: Dict[str, InfoResponse] = {}
    for response in responses:
        by_request.setdefault(response.request_id, response)
    ordered = sorted(requests, key=lambda r: r.requested_at)
    return [InfoExchange(request=r, response=by_request.get(r.id)) for r in ordered]


def map_case_document(doc: Dict[str, Any]) -> CaseRecord:
    data = {k: v for k, v in doc.items() if k != "_id" and v is not None}
    data["id"] = str(doc["_id"])
    data["status"] = normalize_status(doc.get("status"))
    data["statusHistory"] = [
        {**entry, "status": normalize_status(entry.get("status")), "by": entry.get("by") or "unknown"}
        for entry in doc.get("statusHistory") or []
    ]
    data["emails"] = [
        {k: v for k, v in email.items() if v is not None} for email in doc.get("emails") or []
    ]
    record = CaseRecord.model_validate(data)
    record.info_exchanges = join_info_exchanges(record.info_request_history, record.info_response_history)
    return record


def history_entry(status: str, by: str, note: Optional[str] = None) -> Dict[str, Any]:
    return StatusHistoryEntry(status=status, by=by, at=utc_now(), note=note).model_dump(by_alias=True)


def build_search_filter(status: Optional[str] = None, q: Optional[str] = None) -> Dict[str, Any]:
    query_filter: Dict[str, Any] = {}
    if status:
        query_filter["status"] = {"$in": stored_status_values(status)}
    if q and q.strip():
        pattern = re.escape(q.strip())
        query_filter["$or"] = [{field: {"$regex": pattern, "$options": "i"}} for field in SEARCH_FIELDS]
    return query_filter


async def list_cases(
    db: AsyncIOMotorDatabase,
    status: Optional[str] = None,
    q: Optional[str] = None,
    limit: int = 20,
    skip: int = 0,
) -> CaseListResult:
    query_filter = build_search_filter(status, q)
    cursor = _cases(db).find(query_filter).sort("createdAt", -1).skip(skip).limit(limit)
    docs = await cursor.to_list(length=limit)
    total = await _cases(db).count_documents(query_filter)
    return CaseListResult(items=[map_case_document(doc) for doc in docs], total=total)


async def get_case_by_id(db: AsyncIOMotorDatabase, case_id: str) -> Optional[CaseRecord]:
    oid = _object_id(case_id)
    if oid is None:
        return None
    doc = await _cases(db).find_one({"_id": oid})
    return map_case_document(doc) if doc else None


async def _update_case(db: AsyncIOMotorDatabase, case_id: str, update: Any, **kwargs) -> Optional[CaseRecord]:
    oid = _object_id(case_id)
    if oid is None:
        return None
    doc = await _cases(db).find_one_and_update(
        {"_id": oid},
        update,
        return_document=ReturnDocument.AFTER,
        **kwargs,
    )
    if not doc:
        logger.warning(f"Case {case_id} not found for update.")
        return None
    return map_case_document(doc)


async def set_status(
    db: AsyncIOMotorDatabase,
    case_id: str,
    status: str,
    by: str,
    note: Optional[str] = None,
    extra_fields: Optional[Dict[str, Any]] = None,
) -> Optional[CaseRecord]:
    """Sets status (plus any extra fields) and appends one history entry in a single update."""
    set_operations: Dict[str, Any] = {"status": status, **(extra_fields or {})}
    update = {
        "$set": set_operations,
        "$push": {"statusHistory": history_entry(status, by, note)},
    }
    return await _update_case(db, case_id, update)


async def append_history(
    db: AsyncIOMotorDatabase, case_id: str, status: str, by: str, note: Optional[str] = None
) -> Optional[CaseRecord]:
    """Appends a history entry without touching the live status."""
    return await _update_case(db, case_id, {"$push": {"statusHistory": history_entry(status, by, note)}})


async def push_email(
    db: AsyncIOMotorDatabase, case_id: str, email: CaseEmail, status: str, by: str, note: str
) -> Optional[CaseRecord]:
    update = {
        "$set": {"status": status},
        "$push": {
            "emails": email.model_dump(by_alias=True),
            "statusHistory": history_entry(status, by, note),
        },
    }
    return await _update_case(db, case_id, update)


async def replace_emails(db: AsyncIOMotorDatabase, case_id: str, emails: List[CaseEmail]) -> Optional[CaseRecord]:
    return await _update_case(
        db, case_id, {"$set": {"emails": [email.model_dump(by_alias=True) for email in emails]}}
    )


async def add_info_request(
    db: AsyncIOMotorDatabase,
    case_id: str,
    request: InfoRequest,
    status: str,
    by: str,
    supersede_previous: bool = False,
) -> Optional[CaseRecord]:
    request_doc = request.model_dump(mode="python", by_alias=True)
    request_doc["status"] = request.status.value
    entry = history_entry(status, by, request.message)

    if not supersede_previous:
        update: Any = {
            "$set": {"status": status},
            "$push": {"infoRequestHistory": request_doc, "statusHistory": entry},
        }
        return await _update_case(db, case_id, update)

    # Marking older requests and appending the new one touch the same array, which a
    # classic update cannot do in one operation; an aggregation pipeline update can.
    pending = InfoRequestStatus.PENDING.value
    superseded = InfoRequestStatus.SUPERSEDED.value
    pipeline = [
        {
            "$set": {
                "status": {"$literal": status},
                "infoRequestHistory": {
                    "$concatArrays": [
                        {
                            "$map": {
                                "input": {"$ifNull": ["$infoRequestHistory", []]},
                                "as": "req",
                                "in": {
                                    "$cond": [
                                        {"$eq": ["$$req.status", pending]},
                                        {"$mergeObjects": ["$$req", {"status": superseded}]},
                                        "$$req",
                                    ]
                                },
                            }
                        },
                        {"$literal": [request_doc]},
                    ]
                },
                "statusHistory": {
                    "$concatArrays": [{"$ifNull": ["$statusHistory", []]}, {"$literal": [entry]}]
                },
            }
        }
    ]
    return await _update_case(db, case_id, pipeline)


async def delete_case(db: AsyncIOMotorDatabase, case_id: str) -> Optional[CaseRecord]:
    """Removes the case document and returns what was deleted."""
    oid = _object_id(case_id)
    if oid is None:
        return None
    doc = await _cases(db).find_one_and_delete({"_id": oid})
    if not doc:
        return None
    logger.info(f"Case {case_id} deleted.")
    return map_case_document(doc)
