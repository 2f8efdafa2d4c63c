"""
Error response schemas, used to document error bodies in OpenAPI.
The bodies themselves are produced by GlobalErrorHandler.
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any


class ErrorDetail(BaseModel):
    """Detailed error information."""

    code: str = Field(..., description="Error code, e.g. INVALID_NONCE")
    message: str = Field(..., description="Human-readable error message")
    timestamp: str = Field(..., description="ISO-8601 UTC timestamp")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    request_id: Optional[str] = Field(None, description="Request ID for tracking")


class ErrorResponse(BaseModel):
    """Standard error response format."""

    success: bool = Field(False)
    error: ErrorDetail


AUTH_ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid input or invalid/expired nonce"},
    401: {"model": ErrorResponse, "description": "Signature does not match the wallet"},
    403: {"model": ErrorResponse, "description": "Wallet is not eligible"},
    429: {"model": ErrorResponse, "description": "Too many attempts; see Retry-After"},
    500: {"model": ErrorResponse, "description": "Chat account provisioning failed"},
    503: {"model": ErrorResponse, "description": "Asset indexer or chat homeserver unavailable"},
}

ADMIN_ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    401: {"model": ErrorResponse, "description": "Missing or invalid admin token"},
}
