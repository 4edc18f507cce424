"""
Standardized exception hierarchy for the gamification engine
Provides rich context, consistent logging, and user-friendly error messages

Every failure carries a typed ``reason`` so callers can tell validation
problems from storage problems from missing records without parsing text.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

logger = logging.getLogger(__name__)


class GamificationError(Exception):
    """
    Base exception for all gamification errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-friendly messages
    - Structured context
    - Automatic logging

    Example:
        raise GamificationError(
            message="Failed to update streak",
            student_id="stu_123",
            operation="update_streak",
            context={"today": "2024-01-11"}
        )
    """

    reason: str = "internal"
    retryable: bool = False

    def __init__(
        self,
        message: str,
        student_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.student_id = student_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "An error occurred. Please try again."
        self.timestamp = datetime.now(timezone.utc)

        # Auto-log on creation
        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # Avoid conflict with logging's 'message' field
            "error_reason": self.reason,
            "request_id": self.request_id,
            "student_id": self.student_id,
            "operation": self.operation,
            "error_context": self.context,
            "timestamp": self.timestamp.isoformat()
        }

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data, exc_info=self.cause)
        else:
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for API responses"""
        return {
            "error": self.__class__.__name__,
            "reason": self.reason,
            "retryable": self.retryable,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Validation Errors (Caller Input)
# ==========================================

class ValidationError(GamificationError):
    """
    Raised when caller input fails validation

    Examples:
    - Zero or negative XP award
    - Malformed student identifier
    - Unknown XP reason

    Example:
        raise ValidationError(
            message="XP amount must be a positive integer",
            field="amount",
            value=0,
            student_id="stu_123"
        )
    """

    reason = "validation"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=message,
            user_message=f"Invalid {field}: {message}" if field else message,
            context={"field": field, "value": value},
            **kwargs
        )


# ==========================================
# Storage Errors
# ==========================================

class StorageError(GamificationError):
    """
    Base class for persistence failures

    Storage errors are retryable by the caller. The engine never retries on
    its own, since a retried write that partially succeeded could award XP
    twice.
    """

    reason = "storage"
    retryable = True

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault(
            "user_message",
            "We encountered an issue saving your progress. Please try again."
        )
        super().__init__(message=message, **kwargs)


class StorageUnavailableError(StorageError):
    """Backing store could not be reached"""

    def __init__(self, message: str = "Gamification store unavailable", **kwargs):
        super().__init__(
            message=message,
            user_message="We're having trouble reaching our servers. Please try again in a moment.",
            **kwargs
        )


class StorageConflictError(StorageError):
    """Concurrent write conflict (serialization failure, lock timeout)"""

    def __init__(self, message: str = "Concurrent update conflict", **kwargs):
        super().__init__(
            message=message,
            user_message="Your progress was updated elsewhere at the same time. Please try again.",
            **kwargs
        )


class RecordNotFoundError(GamificationError):
    """Requested gamification record does not exist"""

    reason = "not_found"

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs
    ):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(
            message=message,
            user_message=f"{record_type or 'Record'} not found.",
            context={"record_type": record_type, "record_id": record_id},
            **kwargs
        )


# ==========================================
# Configuration Errors
# ==========================================

class ConfigurationError(GamificationError):
    """System configuration is invalid or missing"""

    reason = "configuration"

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        self.config_key = config_key
        super().__init__(
            message=message,
            user_message="The system is not properly configured. Please contact support.",
            context={"config_key": config_key},
            **kwargs
        )


# ==========================================
# Helper Functions
# ==========================================

def wrap_storage_exception(
    error: Exception,
    operation: str,
    student_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> StorageError:
    """
    Wrap psycopg exceptions into our exception hierarchy

    Args:
        error: Original exception
        operation: What operation was being performed
        student_id: Student ID if applicable
        context: Additional context

    Returns:
        Appropriate StorageError subclass

    Example:
        try:
            await cur.execute(query)
        except psycopg.Error as e:
            raise wrap_storage_exception(e, operation="update_streak", student_id="stu_123")
    """
    import psycopg
    from psycopg import errors as pg_errors

    if isinstance(error, (pg_errors.SerializationFailure, pg_errors.LockNotAvailable, pg_errors.DeadlockDetected)):
        return StorageConflictError(
            message=f"Concurrent update conflict: {str(error)}",
            student_id=student_id,
            operation=operation,
            context=context,
            cause=error
        )
    if isinstance(error, psycopg.OperationalError):
        return StorageUnavailableError(
            message=f"Database connection failed: {str(error)}",
            student_id=student_id,
            operation=operation,
            context=context,
            cause=error
        )
    return StorageError(
        message=f"{operation} failed: {str(error)}",
        student_id=student_id,
        operation=operation,
        context=context,
        cause=error
    )
