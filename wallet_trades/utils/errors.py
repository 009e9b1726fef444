"""
Error handling utilities for the Wallet Trades Analyzer.

This module defines the exception hierarchy shared by clients, services
and the HTTP layer, and the classifier used to detect provider throttling.
"""

from enum import Enum
from typing import Any, Dict, Optional

import httpx


class ErrorCode(str, Enum):
    """Error codes for the Wallet Trades API."""

    # General errors
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RATE_LIMITED = "RATE_LIMITED"

    # Provider errors
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    RPC_ERROR = "RPC_ERROR"

    # Data errors
    INVALID_ACCOUNT = "INVALID_ACCOUNT"
    DATA_PARSING_ERROR = "DATA_PARSING_ERROR"


class WalletTradesError(Exception):
    """Base exception for all Wallet Trades errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize a new error.

        Args:
            message: Error message
            code: Error code
            status_code: HTTP status code
            details: Additional error details
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the error to a dictionary.

        Returns:
            Dictionary representation of the error
        """
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details
        }


class ValidationError(WalletTradesError):
    """Exception for validation errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code=ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class InvalidPublicKeyError(ValidationError):
    """Exception raised when an invalid public key is provided."""

    def __init__(self, pubkey: str):
        super().__init__(
            f"Invalid public key: {pubkey}",
            details={"pubkey": pubkey}
        )
        self.code = ErrorCode.INVALID_ACCOUNT
        self.pubkey = pubkey


class DataParsingError(WalletTradesError):
    """Exception for data parsing errors."""

    def __init__(
        self,
        message: str,
        data_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        error_details = details or {}
        if data_type:
            error_details["data_type"] = data_type

        super().__init__(
            message=message,
            code=ErrorCode.DATA_PARSING_ERROR,
            status_code=400,
            details=error_details
        )


class ExternalServiceError(WalletTradesError):
    """Exception for errors from external services."""

    def __init__(
        self,
        message: str,
        service_name: str,
        upstream_status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        code: ErrorCode = ErrorCode.EXTERNAL_SERVICE_ERROR,
        status_code: int = 502
    ):
        error_details = details or {}
        error_details["service_name"] = service_name
        if upstream_status is not None:
            error_details["upstream_status"] = upstream_status

        super().__init__(
            message=message,
            code=code,
            status_code=status_code,
            details=error_details
        )
        self.service_name = service_name
        self.upstream_status = upstream_status


class RateLimitError(ExternalServiceError):
    """Exception raised when a provider rejects a request for exceeding its rate limit."""

    def __init__(
        self,
        message: str,
        service_name: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            service_name=service_name,
            upstream_status=429,
            details=details,
            code=ErrorCode.RATE_LIMITED,
            status_code=429
        )


def is_rate_limit_error(error: BaseException) -> bool:
    """Check whether an exception signals provider throttling.

    Recognizes HTTP 429 responses, the ``RATE_LIMITED`` error code and
    messages mentioning "rate limit" or "too many requests".

    Args:
        error: The exception raised by a task

    Returns:
        True if the exception is a throttling error
    """
    if isinstance(error, RateLimitError):
        return True

    if isinstance(error, httpx.HTTPStatusError) and error.response.status_code == 429:
        return True

    response = getattr(error, "response", None)
    if getattr(response, "status_code", None) == 429:
        return True

    if getattr(error, "upstream_status", None) == 429:
        return True

    code = getattr(error, "code", None)
    if code == ErrorCode.RATE_LIMITED or code == ErrorCode.RATE_LIMITED.value:
        return True

    message = str(error).lower()
    return "rate limit" in message or "too many requests" in message
