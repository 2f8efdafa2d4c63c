"""
Typed service errors for the wallet authentication pipeline.

Every error is terminal for the current authentication attempt; the client has to
start over from nonce issuance. The global error handler renders them as JSON.
"""

from typing import Any, Dict, Optional
from fastapi import status


class ServiceErrorCode:
    """Standard error codes for services"""

    # Validation
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_ADDRESS = "INVALID_ADDRESS"
    UNSUPPORTED_PROTOCOL = "UNSUPPORTED_PROTOCOL"

    # Authentication
    INVALID_NONCE = "INVALID_NONCE"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    NOT_ELIGIBLE = "NOT_ELIGIBLE"
    UNAUTHORIZED = "UNAUTHORIZED"

    # Rate Limiting
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Upstream
    PROVISIONING_FAILED = "PROVISIONING_FAILED"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    # System
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ServiceError(Exception):
    """
    Standardized service error for internal use.
    Gets converted to proper HTTP response by error handler.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.context = context or {}
        self.headers = headers or {}
        super().__init__(message)


class InvalidInputError(ServiceError):
    """Malformed address or missing fields. Nothing was mutated."""

    def __init__(self, message: str = "Invalid input", code: str = ServiceErrorCode.INVALID_INPUT, **kwargs):
        super().__init__(code=code, message=message, status_code=status.HTTP_400_BAD_REQUEST, **kwargs)


class InvalidOrExpiredNonceError(ServiceError):
    """Nonce absent, already consumed, stale, or issued to a different wallet."""

    def __init__(self, message: str = "Invalid or expired nonce", **kwargs):
        super().__init__(
            code=ServiceErrorCode.INVALID_NONCE,
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            **kwargs
        )


class SignatureMismatchError(ServiceError):
    """Signature did not verify. The nonce is already burned."""

    def __init__(self, message: str = "Invalid wallet signature", **kwargs):
        super().__init__(
            code=ServiceErrorCode.INVALID_SIGNATURE,
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            **kwargs
        )


class NotEligibleError(ServiceError):
    """No qualifying asset, or the wallet is not on the allow-list."""

    def __init__(self, message: str = "Wallet is not eligible for registration", **kwargs):
        super().__init__(
            code=ServiceErrorCode.NOT_ELIGIBLE,
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            **kwargs
        )


class RateLimitedError(ServiceError):
    def __init__(self, retry_after: int, limit: int, **kwargs):
        super().__init__(
            code=ServiceErrorCode.RATE_LIMIT_EXCEEDED,
            message="Too many authentication attempts, please try again later.",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            details={"retry_after": retry_after, "limit": limit},
            headers={"Retry-After": str(retry_after), "X-RateLimit-Limit": str(limit)},
            **kwargs
        )
        self.retry_after = retry_after
        self.limit = limit


class UpstreamUnavailableError(ServiceError):
    """Indexer or chat backend unreachable or erroring."""

    def __init__(self, message: str = "Upstream service unavailable", **kwargs):
        super().__init__(
            code=ServiceErrorCode.SERVICE_UNAVAILABLE,
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            **kwargs
        )


class ProvisioningFailureError(ServiceError):
    """The chat backend answered but refused to create the account."""

    def __init__(self, message: str = "Failed to create chat account", **kwargs):
        super().__init__(
            code=ServiceErrorCode.PROVISIONING_FAILED,
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            **kwargs
        )


class UnauthorizedError(ServiceError):
    def __init__(self, message: str = "Unauthorized", **kwargs):
        super().__init__(
            code=ServiceErrorCode.UNAUTHORIZED,
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            **kwargs
        )
