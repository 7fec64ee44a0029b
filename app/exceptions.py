# app/exceptions.py
from typing import Optional


class ChatError(Exception):
    """Base class for errors surfaced by the chat endpoints"""
    status_code = 500
    default_detail = "Internal server error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class InvalidRequest(ChatError):
    """A required field is missing or empty"""
    status_code = 400
    default_detail = "Invalid request"


class NotFound(ChatError):
    status_code = 404
    default_detail = "Not found"


class MethodNotAllowed(ChatError):
    status_code = 405
    default_detail = "Method not allowed"


class SchemaMissing(ChatError):
    """
    The store reported a missing relation.
    Recoverable: SchemaGuard provisions the chat tables and retries once.
    """
    status_code = 500
    default_detail = "Chat schema is missing"


class StorageUnavailable(ChatError):
    """The store failed and could not be repaired"""
    status_code = 500
    default_detail = "Storage unavailable"


class UpstreamProviderError(ChatError):
    """A third-party provider (email, payments, ...) rejected or failed a call"""
    status_code = 502
    default_detail = "Upstream provider error"

    def __init__(self, provider: str, detail: Optional[str] = None):
        self.provider = provider
        super().__init__(f"{provider}: {detail or self.default_detail}")
