"""
Exception hierarchy for contact discovery.

    CDSError (base)
    ├── ConfigurationError - invalid secret scalar or protocol parameters
    ├── EncodingError - a user ID cannot be mapped onto a curve point
    ├── DecodeError - a point is not the encoding of any user ID
    ├── MalformedPointError - a serialized point fails to parse
    └── InvalidRequestError - a request field is out of range

Messages never carry phone numbers, user IDs or scalars.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Machine-readable error codes."""
    CFG_INVALID = "CFG_INVALID"
    ENC_FAILED = "ENC_FAILED"
    DEC_FAILED = "DEC_FAILED"
    PT_MALFORMED = "PT_MALFORMED"
    REQ_INVALID = "REQ_INVALID"
    UNKNOWN = "UNKNOWN"


class CDSError(Exception):
    """
    Base exception for all contact discovery errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Optional additional context
        cause: Optional original exception
    """

    default_message = "Contact discovery error"
    default_code = ErrorCode.UNKNOWN

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to a dictionary for logs and API responses."""
        result: Dict[str, Any] = {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "detail": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class ConfigurationError(CDSError):
    """Zero or out-of-range secret scalar, or invalid protocol parameters. Fatal."""
    default_message = "Invalid configuration"
    default_code = ErrorCode.CFG_INVALID


class EncodingError(CDSError):
    """A user ID could not be encoded as a curve point."""
    default_message = "User ID cannot be encoded as a curve point"
    default_code = ErrorCode.ENC_FAILED


class DecodeError(CDSError):
    """A point does not correspond to a validly encoded user ID."""
    default_message = "Point does not decode to a user ID"
    default_code = ErrorCode.DEC_FAILED


class MalformedPointError(CDSError):
    """A serialized point fails to parse or is not on the curve."""
    default_message = "Malformed curve point"
    default_code = ErrorCode.PT_MALFORMED


class InvalidRequestError(CDSError):
    """A request field (e.g. the bucket prefix) is out of range."""
    default_message = "Invalid request"
    default_code = ErrorCode.REQ_INVALID
