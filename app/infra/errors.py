"""Deterministic application errors with stable codes."""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    """Categories of errors for better handling."""
    CONFIG = "config"  # Tenant missing or misconfigured
    AUTH = "auth"  # Credential resolution / token acquisition
    UPSTREAM = "upstream"  # Maximo returned an error or unusable response
    VALIDATION = "validation"  # Tool input rejected before any remote call


class AppError(Exception):
    """
    Base exception for recognized application errors.

    Every instance carries a stable code, a human message, optional
    structured details and a retryable flag. The JSON-RPC layer maps these
    to -32000 responses with `to_dict()` as the error data.
    """
    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        retryable: bool = False,
        category: ErrorCategory = ErrorCategory.VALIDATION,
    ):
        self.code = code
        self.message = message
        self.details = details
        self.retryable = retryable
        self.category = category
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": False,
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
        }


# ---- Tenant / config ----

class TenantNotFoundError(AppError):
    def __init__(self, tenant_id: str):
        super().__init__(
            "TENANT_NOT_FOUND",
            f"Tenant not found: {tenant_id}",
            details={"tenantId": tenant_id},
            category=ErrorCategory.CONFIG,
        )


class MissingCredentialError(AppError):
    """Credential for the configured auth mode is absent or resolved empty."""
    def __init__(self, code: str, message: str):
        super().__init__(code, message, category=ErrorCategory.CONFIG)


class TenantValidationError(AppError):
    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__("TENANT_INVALID", message, details=details, category=ErrorCategory.CONFIG)


class TenantStoreError(AppError):
    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(code, message, details=details, category=ErrorCategory.CONFIG)


# ---- Remote calls ----

class TokenRequestFailedError(AppError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, retryable: bool = False):
        super().__init__("OAUTH_TOKEN_FAILED", message, details=details, retryable=retryable, category=ErrorCategory.AUTH)


class TokenParseFailedError(AppError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("OAUTH_TOKEN_PARSE_FAILED", message, details=details, category=ErrorCategory.AUTH)


class TokenMissingError(AppError):
    def __init__(self):
        super().__init__(
            "OAUTH_TOKEN_MISSING",
            "OAuth token response missing access_token",
            category=ErrorCategory.AUTH,
        )


class RemoteQueryFailedError(AppError):
    def __init__(self, message: str, details: Dict[str, Any], retryable: bool = False):
        super().__init__("OSLC_QUERY_FAILED", message, details=details, retryable=retryable, category=ErrorCategory.UPSTREAM)


class RemoteResponseNotJsonError(AppError):
    def __init__(self, message: str, details: Dict[str, Any]):
        super().__init__("OSLC_QUERY_NON_JSON", message, details=details, category=ErrorCategory.UPSTREAM)


class RemoteOperationFailedError(AppError):
    def __init__(self, message: str, details: Dict[str, Any], retryable: bool = False):
        super().__init__("OSLC_OPERATION_FAILED", message, details=details, retryable=retryable, category=ErrorCategory.UPSTREAM)


# ---- Validation ----

class FieldNotAllowedError(AppError):
    def __init__(self, field: str):
        super().__init__("FIELD_NOT_ALLOWED", f"Select field not allowed: {field}", details={"field": field})


class FilterFieldNotAllowedError(AppError):
    def __init__(self, field: str):
        super().__init__("FILTER_FIELD_NOT_ALLOWED", f"Filter field not allowed: {field}", details={"field": field})


class InvalidInClauseError(AppError):
    def __init__(self, field: str):
        super().__init__("INVALID_IN", "in operator requires array", details={"field": field})


class InvalidInputError(AppError):
    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__("INVALID_INPUT", message, details=details)


def is_retryable_status(status_code: int) -> bool:
    """Server-side failures are worth retrying; client errors are not."""
    return status_code >= 500 or status_code == 429
