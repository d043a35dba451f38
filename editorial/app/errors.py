# editorial/app/errors.py
from __future__ import annotations

from typing import Any, Optional


class EditorialError(Exception):
    """Base class for every error the core raises on purpose."""


# ---------------------- Caller errors ----------------------

class InvalidInput(EditorialError):
    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class NotFound(EditorialError):
    def __init__(self, kind: str, ident: Any):
        super().__init__(f"{kind} not found: {ident}")
        self.kind = kind
        self.ident = ident


class DuplicateSourceError(EditorialError):
    """Submission blocked by a URL or keyword collision that was not overridden."""

    def __init__(self, reason: str, matches: Any):
        super().__init__(f"Duplicate source: {reason}")
        self.reason = reason
        self.matches = matches


# ---------------------- Operational errors ----------------------

class StoreError(EditorialError):
    pass


class ExternalServiceError(EditorialError):
    kind = "failed"

    def __init__(self, service: str, detail: str):
        super().__init__(f"{service} {self.kind}: {detail}")
        self.service = service
        self.detail = detail


class RequestFailed(ExternalServiceError):
    kind = "request_failed"


class ResponseUndecodable(ExternalServiceError):
    kind = "response_undecodable"


class ResponseMissingField(ExternalServiceError):
    kind = "response_missing_field"

    def __init__(self, service: str, field: str, detail: Optional[str] = None):
        super().__init__(service, detail or f"missing field {field!r}")
        self.field = field
