# Translation of service exceptions into HTTP errors
from fastapi import HTTPException

from case_review_service.app.service.exceptions import (
    AssetStorageError,
    AuthenticationError,
    CaseNotFoundError,
    CaseReviewError,
    MailProviderError,
    StoreAlreadyExistsError,
    StoreNotFoundError,
    ValidationFailedError,
)

STATUS_BY_ERROR = (
    (CaseNotFoundError, 404),
    (StoreNotFoundError, 404),
    (ValidationFailedError, 400),
    (StoreAlreadyExistsError, 409),
    (AuthenticationError, 401),
    (MailProviderError, 502),
    (AssetStorageError, 502),
)


def to_http_exception(error: CaseReviewError) -> HTTPException:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))
