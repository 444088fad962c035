"""
core/exceptions.py
------------------
Typed error taxonomy raised by the inquiry store and lifecycle engine.

Each error carries the HTTP status and machine-readable code the API layer
returns, so routes never translate errors by hand:

  NotFoundError     404  missing property / inquiry id
  ForbiddenError    403  role or ownership mismatch
  ConflictError     409  duplicate active inquiry
  BadRequestError   400  missing / invalid required field, bad enum value
  UnavailableError  422  property not open for inquiries
  InternalError     500  storage failure
"""

from typing import Any, Dict, Optional

from fastapi import status


class InquiryError(Exception):
    """Base class for every failure the inquiry core reports to callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "internal"
    default_message: str = "Inquiry operation failed"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"detail": self.message, "code": self.error_code}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(InquiryError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "not_found"
    default_message = "Resource not found"


class ForbiddenError(InquiryError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "forbidden"
    default_message = "Not authorized to perform this action"


class ConflictError(InquiryError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "conflict"
    default_message = "You already have an active inquiry for this property"


class BadRequestError(InquiryError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "bad_request"
    default_message = "Invalid request"


class UnavailableError(InquiryError):
    status_code = 422
    error_code = "unavailable"
    default_message = "This property is not available"


class InternalError(InquiryError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "internal"
    default_message = "Storage failure while processing inquiry"
