"""
Cache Store Exceptions

Errors raised by cache store adapters. The read-through cache treats all of
them as recoverable; they never reach an HTTP caller from the read path.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException


class CacheStoreException(Exception):
    """Base exception for cache store errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class CacheStoreConnectionException(CacheStoreException):
    """Raised when the store cannot be reached or authentication fails."""

    def __init__(
        self,
        message: str = "Cache store connection failed",
        url: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        details = {}
        if url:
            details["url"] = url
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__

        super().__init__(
            message=message, error_code="CACHE_CONNECTION_ERROR", details=details
        )
        if original_error:
            self.__cause__ = original_error


class CacheStoreOperationException(CacheStoreException):
    """Raised when a single store command fails."""

    def __init__(
        self,
        operation: str,
        key: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        details: Dict[str, Any] = {"operation": operation}
        if key:
            details["key"] = key
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__

        super().__init__(
            message=f"Cache store operation '{operation}' failed",
            error_code="CACHE_OPERATION_ERROR",
            details=details,
        )
        if original_error:
            self.__cause__ = original_error


class CacheStoreConfigurationException(CacheStoreException):
    """Raised when the cache backend configuration is invalid."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        details = {"config_key": config_key} if config_key else {}
        super().__init__(
            message=message, error_code="CACHE_CONFIGURATION_ERROR", details=details
        )


# HTTP Exceptions for API layer
class CacheStoreHTTPException(HTTPException):
    """HTTP exception wrapper for cache store errors on admin endpoints."""

    def __init__(self, store_exception: CacheStoreException, status_code: int = 503):
        self.store_exception = store_exception
        super().__init__(
            status_code=status_code,
            detail={
                "error": store_exception.error_code,
                "message": store_exception.message,
                "details": store_exception.details,
            },
        )
