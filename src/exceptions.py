"""Custom exceptions for CatRec.

Defines the error taxonomy shared by the recommendation API, the transport
layer and the aggregator. Exceptions carry an HTTP status code so the API can
turn them into responses without knowing where they were raised.
"""

from typing import Any, Dict, Optional, Tuple


class CatRecException(Exception):
    """Base exception for CatRec errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize exception.

        Args:
            message: Human-readable error message
            status_code: HTTP status code for API responses
            details: Additional error details for debugging
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class InvalidRequestError(CatRecException):
    """Raised when a recommendation request body cannot be understood."""

    def __init__(self, reason: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"Invalid JSON format: {reason}",
            status_code=400,
            details=details or {"reason": reason},
        )


class CatalogLoadError(CatRecException):
    """Raised when the product catalog cannot be loaded at startup."""

    def __init__(self, catalog_path: str, error: Exception):
        message = f"Failed to load catalog from '{catalog_path}': {error}"
        super().__init__(
            message=message,
            status_code=503,
            details={
                "catalog_path": catalog_path,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )


class ForwardingError(CatRecException):
    """Raised when a batch cannot be delivered to the aggregator."""

    def __init__(self, address: Tuple[str, int], error: Exception):
        host, port = address
        super().__init__(
            message=f"Error connecting to server: {error}",
            status_code=500,
            details={
                "address": f"{host}:{port}",
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )
        self.address = address


class BatchDecodeError(CatRecException):
    """Raised when an inbound batch is not a JSON array of products."""

    def __init__(self, reason: str, bytes_read: int = 0):
        super().__init__(
            message=f"Failed to decode batch: {reason}",
            status_code=400,
            details={"reason": reason, "bytes_read": bytes_read},
        )
        self.reason = reason
