# Unit Tests for the cases collection operations
import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from pymongo import ReturnDocument

from case_review_service.app.models import CaseEmail, InfoRequest, InfoRequestStatus, InfoResponse
from case_review_service.infrastructure.database import case_store

CASE_ID = "65f0c0ffee0000000000abcd"
UTC = datetime.timezone.utc


def case_document(**overrides):
    doc = {
        "_id": ObjectId(CASE_ID),
        "userId": "user-1",
        "userEmail": "claimant@example.com",
        "storeName": "Kettle Shop",
        "productName": "Kettle",
        "createdAt": datetime.datetime(2024, 3, 1, tzinfo=UTC),
        "status": "waitingReply",
        "statusHistory": [{"status": "new", "by": "system", "at": datetime.datetime(2024, 3, 1, tzinfo=UTC)}],
        "emails": [],
        "resolution": None,
    }
    doc.update(overrides)
    return doc


@pytest.fixture
def collection():
    coll = MagicMock()
    coll.find_one = AsyncMock()
    coll.find_one_and_update = AsyncMock()
    coll.find_one_and_delete = AsyncMock()
    coll.count_documents = AsyncMock()
    return coll


@pytest.fixture
def mock_db(collection):
    db = MagicMock()
    db.__getitem__.return_value = collection
    return db


# --- Mapping ---

def test_map_case_document_normalizes_status_and_history():
    record = case_store.map_case_document(case_document())

    assert record.id == CASE_ID
    assert record.status == "IN_REVIEW"
    assert record.status_history[0].status == "PENDING"
    assert record.resolution is None


def test_map_case_document_drops_null_email_fields():
    doc = case_document(emails=[{
        "subject": "Hi", "body": "x", "to": "shop@example.com", "from": "admin@claimy.test",
        "sentAt": datetime.datetime(2024, 3, 2, tzinfo=UTC), "threadId": None,
    }])
    record = case_store.map_case_document(doc)
    assert record.emails[0].from_ == "admin@claimy.test"
    assert record.emails[0].thread_id is None


def test_join_info_exchanges_pairs_first_response_per_request():
    early = datetime.datetime(2024, 3, 1, tzinfo=UTC)
    late = datetime.datetime(2024, 3, 5, tzinfo=UTC)
    requests = [
        InfoRequest(id="r2", message="Receipt?", requested_at=late),
        InfoRequest(id="r1", message="Photo?", requested_at=early),
    ]
    responses = [
        InfoResponse(id="a", request_id="r1", answer="first"),
        InfoResponse(id="b", request_id="r1", answer="second"),
    ]

    exchanges = case_store.join_info_exchanges(requests, responses)

    assert [e.request.id for e in exchanges] == ["r1", "r2"]
    assert exchanges[0].response.answer == "first"
    assert exchanges[1].response is None


# --- Queries ---

def test_build_search_filter_status_and_escaped_query():
    query_filter = case_store.build_search_filter(status="needInfo", q=" a.b+ ")

    assert query_filter["status"] == {"$in": ["NEED_INFO", "needMoreInfo"]}
    assert query_filter["$or"] == [
        {"storeName": {"$regex": r"a\.b\+", "$options": "i"}},
        {"productName": {"$regex": r"a\.b\+", "$options": "i"}},
        {"userEmail": {"$regex": r"a\.b\+", "$options": "i"}},
    ]


def test_build_search_filter_empty():
    assert case_store.build_search_filter(None, "  ") == {}


async def test_list_cases_sorts_pages_and_counts(mock_db, collection):
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.skip.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=[case_document()])
    collection.find.return_value = cursor
    collection.count_documents.return_value = 42

    result = await case_store.list_cases(mock_db, status="APPROVED", limit=10, skip=30)

    expected_filter = {"status": {"$in": ["APPROVED", "approved"]}}
    collection.find.assert_called_once_with(expected_filter)
    cursor.sort.assert_called_once_with("createdAt", -1)
    cursor.skip.assert_called_once_with(30)
    cursor.limit.assert_called_once_with(10)
    collection.count_documents.assert_awaited_once_with(expected_filter)
    assert result.total == 42
    assert result.items[0].id == CASE_ID


async def test_get_case_by_id_invalid_object_id_skips_query(mock_db, collection):
    assert await case_store.get_case_by_id(mock_db, "not-an-id") is None
    collection.find_one.assert_not_called()


async def test_get_case_by_id_not_found(mock_db, collection):
    collection.find_one.return_value = None
    assert await case_store.get_case_by_id(mock_db, CASE_ID) is None
    collection.find_one.assert_awaited_once_with({"_id": ObjectId(CASE_ID)})


# --- Updates ---

async def test_set_status_pushes_history_in_same_update(mock_db, collection):
    collection.find_one_and_update.return_value = case_document(status="REJECTED")

    record = await case_store.set_status(mock_db, CASE_ID, "REJECTED", "admin@claimy.test", note="No proof")

    args, kwargs = collection.find_one_and_update.call_args
    assert args[0] == {"_id": ObjectId(CASE_ID)}
    update = args[1]
    assert update["$set"] == {"status": "REJECTED"}
    pushed = update["$push"]["statusHistory"]
    assert pushed["status"] == "REJECTED"
    assert pushed["by"] == "admin@claimy.test"
    assert pushed["note"] == "No proof"
    assert kwargs["return_document"] == ReturnDocument.AFTER
    assert record.status == "REJECTED"


async def test_set_status_missing_case_returns_none(mock_db, collection):
    collection.find_one_and_update.return_value = None
    assert await case_store.set_status(mock_db, CASE_ID, "APPROVED", "admin") is None


async def test_add_info_request_without_supersede_uses_push(mock_db, collection):
    collection.find_one_and_update.return_value = case_document(status="NEED_INFO")
    request = InfoRequest(id="r1", message="Send a photo", requires_file=True)

    await case_store.add_info_request(mock_db, CASE_ID, request, "NEED_INFO", "admin")

    update = collection.find_one_and_update.call_args.args[1]
    assert update["$set"] == {"status": "NEED_INFO"}
    assert update["$push"]["infoRequestHistory"]["id"] == "r1"
    assert update["$push"]["infoRequestHistory"]["requiresFile"] is True
    assert update["$push"]["statusHistory"]["note"] == "Send a photo"


async def test_add_info_request_supersede_uses_pipeline_update(mock_db, collection):
    collection.find_one_and_update.return_value = case_document(status="NEED_INFO")
    request = InfoRequest(id="r2", message="$where is the receipt?")

    await case_store.add_info_request(mock_db, CASE_ID, request, "NEED_INFO", "admin", supersede_previous=True)

    pipeline = collection.find_one_and_update.call_args.args[1]
    assert isinstance(pipeline, list)
    stage = pipeline[0]["$set"]
    history = stage["infoRequestHistory"]["$concatArrays"]
    mapper = history[0]["$map"]["in"]["$cond"]
    assert mapper[0] == {"$eq": ["$$req.status", InfoRequestStatus.PENDING.value]}
    assert mapper[1]["$mergeObjects"][1] == {"status": InfoRequestStatus.SUPERSEDED.value}
    appended = history[1]["$literal"][0]
    assert appended["id"] == "r2"
    assert appended["message"] == "$where is the receipt?"
    assert appended["status"] == "PENDING"


def _field_path(value, path):
    for key in path:
        value = value.get(key) if isinstance(value, dict) else None
    return value


def evaluate_expression(expr, doc, variables):
    """Evaluates the aggregation operators the case store writes, against a plain dict."""
    if isinstance(expr, str):
        if expr.startswith("$$"):
            name, *path = expr[2:].split(".")
            return _field_path(variables[name], path)
        if expr.startswith("$"):
            return _field_path(doc, expr[1:].split("."))
        return expr
    if isinstance(expr, list):
        return [evaluate_expression(item, doc, variables) for item in expr]
    if not isinstance(expr, dict):
        return expr
    if len(expr) == 1 and next(iter(expr)).startswith("$"):
        op, arg = next(iter(expr.items()))
        if op == "$literal":
            return arg
        if op == "$ifNull":
            first = evaluate_expression(arg[0], doc, variables)
            return first if first is not None else evaluate_expression(arg[1], doc, variables)
        if op == "$concatArrays":
            return [item for part in arg for item in evaluate_expression(part, doc, variables)]
        if op == "$map":
            items = evaluate_expression(arg["input"], doc, variables)
            return [evaluate_expression(arg["in"], doc, {**variables, arg["as"]: item}) for item in items]
        if op == "$cond":
            branch = arg[1] if evaluate_expression(arg[0], doc, variables) else arg[2]
            return evaluate_expression(branch, doc, variables)
        if op == "$eq":
            left, right = (evaluate_expression(a, doc, variables) for a in arg)
            return left == right
        if op == "$mergeObjects":
            merged = {}
            for part in arg:
                merged.update(evaluate_expression(part, doc, variables) or {})
            return merged
        raise NotImplementedError(op)
    return {key: evaluate_expression(value, doc, variables) for key, value in expr.items()}


def apply_pipeline(doc, pipeline):
    for stage in pipeline:
        assert set(stage) == {"$set"}
        doc = {**doc, **{field: evaluate_expression(expr, doc, {}) for field, expr in stage["$set"].items()}}
    return doc


async def test_add_info_request_supersede_leaves_only_new_request_pending(mock_db, collection):
    stored = case_document(
        status="NEED_INFO",
        infoRequestHistory=[
            {"id": "r0", "message": "Send the receipt", "status": "PENDING"},
            {"id": "r1", "message": "Send a photo", "status": "ANSWERED"},
            {"id": "r2", "message": "Which model?", "status": "PENDING"},
        ],
    )
    collection.find_one_and_update.return_value = stored
    request = InfoRequest(id="r3", message="$where is the serial number?")

    await case_store.add_info_request(mock_db, CASE_ID, request, "NEED_INFO", "admin", supersede_previous=True)

    updated = apply_pipeline(stored, collection.find_one_and_update.call_args.args[1])
    statuses = {req["id"]: req["status"] for req in updated["infoRequestHistory"]}
    assert statuses == {"r0": "SUPERSEDED", "r1": "ANSWERED", "r2": "SUPERSEDED", "r3": "PENDING"}
    assert [req["id"] for req in updated["infoRequestHistory"] if req["status"] == "PENDING"] == ["r3"]
    assert updated["infoRequestHistory"][-1]["message"] == "$where is the serial number?"
    assert updated["status"] == "NEED_INFO"
    assert len(updated["statusHistory"]) == 2


async def test_add_info_request_supersede_on_case_without_history(mock_db, collection):
    stored = case_document(status="IN_REVIEW", statusHistory=None)
    collection.find_one_and_update.return_value = stored
    request = InfoRequest(id="r1", message="Send a photo")

    await case_store.add_info_request(mock_db, CASE_ID, request, "NEED_INFO", "admin", supersede_previous=True)

    updated = apply_pipeline(stored, collection.find_one_and_update.call_args.args[1])
    assert [(req["id"], req["status"]) for req in updated["infoRequestHistory"]] == [("r1", "PENDING")]
    assert [entry["status"] for entry in updated["statusHistory"]] == ["NEED_INFO"]


async def test_push_email_sets_status_and_appends(mock_db, collection):
    collection.find_one_and_update.return_value = case_document(status="IN_REVIEW")
    email = CaseEmail(subject="s", body="b", to="shop@example.com", from_="admin@claimy.test", thread_id="t1")

    await case_store.push_email(mock_db, CASE_ID, email, "IN_REVIEW", "admin", note="Email sent to shop@example.com")

    update = collection.find_one_and_update.call_args.args[1]
    assert update["$push"]["emails"]["from"] == "admin@claimy.test"
    assert update["$push"]["emails"]["threadId"] == "t1"
    assert update["$push"]["statusHistory"]["note"] == "Email sent to shop@example.com"


async def test_delete_case_returns_deleted_record(mock_db, collection):
    collection.find_one_and_delete.return_value = case_document(
        cloudinaryPublicIds={"product": "claims/p1", "receipt": "claims/r1"}
    )

    record = await case_store.delete_case(mock_db, CASE_ID)

    collection.find_one_and_delete.assert_awaited_once_with({"_id": ObjectId(CASE_ID)})
    assert record.cloudinary_public_ids.product == "claims/p1"


async def test_delete_case_not_found(mock_db, collection):
    collection.find_one_and_delete.return_value = None
    assert await case_store.delete_case(mock_db, CASE_ID) is None
