"""
Custom exceptions for the Case Review service.
"""

class CaseReviewError(Exception):
    """Base class for exceptions in this module."""
    pass

class CaseNotFoundError(CaseReviewError):
    """Raised when a case id does not resolve to a document."""
    def __init__(self, case_id: str):
        self.case_id = case_id
        super().__init__("Case not found")

class ValidationFailedError(CaseReviewError):
    """Raised when an action payload is missing a required value."""
    pass

class MailProviderError(CaseReviewError):
    """Raised when the Gmail API rejects or fails a request."""
    pass

class AssetStorageError(CaseReviewError):
    """Raised when an asset cannot be fetched from or removed in Cloudinary."""
    pass

class StoreNotFoundError(CaseReviewError):
    def __init__(self, store_id: str):
        self.store_id = store_id
        super().__init__(f"Store '{store_id}' not found")

class StoreAlreadyExistsError(CaseReviewError):
    def __init__(self, store_id: str):
        self.store_id = store_id
        super().__init__(f"Store '{store_id}' already exists")

class AuthenticationError(CaseReviewError):
    """Missing, invalid or expired credentials."""
    pass
