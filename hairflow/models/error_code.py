from enum import Enum


class ErrorCode(str, Enum):
    """Machine-readable error codes returned in the ``error.code`` field."""

    UNAUTHORIZED = "UNAUTHORIZED"
    USAGE_LIMIT = "USAGE_LIMIT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_IMAGE = "MISSING_IMAGE"
    MISSING_FIELDS = "MISSING_FIELDS"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    INVALID_FORMAT = "INVALID_FORMAT"
    INVALID_TYPE = "INVALID_TYPE"
    NOT_FOUND = "NOT_FOUND"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    AI_NO_RESPONSE = "AI_NO_RESPONSE"
    AI_FAILED = "AI_FAILED"
    DB_ERROR = "DB_ERROR"
    AMOUNT_MISMATCH = "AMOUNT_MISMATCH"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    CONFIG_ERROR = "CONFIG_ERROR"
    TOO_MANY_REQUESTS = "TOO_MANY_REQUESTS"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
