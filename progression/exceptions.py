"""
Standardized exception hierarchy for the progression engine
Provides rich context, consistent logging, and user-friendly error messages
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

logger = logging.getLogger(__name__)


class ProgressionError(Exception):
    """
    Base exception for all progression engine errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-friendly messages
    - Structured context
    - Automatic logging

    Example:
        raise ProgressionError(
            message="Failed to persist progression state",
            operation="process_event",
            context={"event_type": "EXPERIENCE_CREATED"}
        )
    """

    log_level: int = logging.ERROR

    def __init__(
        self,
        message: str,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "Something went wrong. Please try again."
        self.timestamp = datetime.now(timezone.utc)

        # Auto-log on creation
        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # Avoid conflict with logging's 'message' field
            "request_id": self.request_id,
            "operation": self.operation,
            "error_context": self.context,
            "timestamp": self.timestamp.isoformat()
        }

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.log(self.log_level, f"{self.__class__.__name__}: {self.message}", extra=log_data, exc_info=self.cause)
        else:
            logger.log(self.log_level, f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for callers and notifications"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Validation Errors (precondition violations)
# ==========================================

class ValidationError(ProgressionError):
    """
    Raised when an operation's input violates a precondition

    Examples:
    - Negative XP amount
    - Unknown streak type

    Example:
        raise ValidationError(
            message="XP amount must not be negative",
            field="amount",
            value=-5
        )
    """

    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        kwargs.setdefault("user_message", f"Invalid {field}: {message}" if field else message)
        super().__init__(
            message=message,
            context={"field": field, "value": value},
            **kwargs
        )


class InvalidXPError(ValidationError):
    """XP amount or XP total is negative"""

    def __init__(self, message: str, value: Optional[Any] = None, **kwargs):
        super().__init__(message=message, field="xp", value=value, **kwargs)


class UnknownStreakTypeError(ValidationError):
    """Streak type name does not match any known streak"""

    def __init__(self, streak_type: Any, **kwargs):
        super().__init__(
            message=f"Unknown streak type: {streak_type!r}",
            field="streak_type",
            value=streak_type,
            **kwargs
        )


# ==========================================
# Quest Errors
# ==========================================

class QuestError(ProgressionError):
    """
    Base class for knowledge quest failures
    """

    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        quest_id: Optional[str] = None,
        **kwargs
    ):
        self.quest_id = quest_id
        context = kwargs.pop("context", {})
        context["quest_id"] = quest_id
        super().__init__(message=message, context=context, **kwargs)


class QuestNotFoundError(QuestError):
    """Quest id is not part of the catalog"""

    def __init__(self, quest_id: str, **kwargs):
        super().__init__(
            message=f"Quest '{quest_id}' not found",
            quest_id=quest_id,
            user_message="That quest does not exist.",
            **kwargs
        )


class QuestNotStartedError(QuestError):
    """Step completion attempted on a quest that was never started"""

    def __init__(self, quest_id: str, **kwargs):
        super().__init__(
            message=f"Quest '{quest_id}' has not been started",
            quest_id=quest_id,
            user_message="Start the quest before completing its steps.",
            **kwargs
        )


class QuestAlreadyStartedError(QuestError):
    """Quest has already been started"""

    def __init__(self, quest_id: str, **kwargs):
        super().__init__(
            message=f"Quest '{quest_id}' is already in progress or completed",
            quest_id=quest_id,
            user_message="You have already started this quest.",
            **kwargs
        )


class PrerequisiteNotMetError(QuestError):
    """One or more prerequisite quests are not completed yet"""

    def __init__(self, quest_id: str, missing: list[str], **kwargs):
        self.missing = missing
        super().__init__(
            message=f"Quest '{quest_id}' requires completed quests: {', '.join(missing)}",
            quest_id=quest_id,
            user_message="Complete the prerequisite quests first.",
            context={"missing_prerequisites": missing},
            **kwargs
        )


class QuestStepError(QuestError):
    """Step does not exist or is not the current step"""

    def __init__(self, message: str, quest_id: str, step_id: Optional[str] = None, **kwargs):
        self.step_id = step_id
        super().__init__(
            message=message,
            quest_id=quest_id,
            context={"step_id": step_id},
            **kwargs
        )


# ==========================================
# Challenge Errors
# ==========================================

class ChallengeError(ProgressionError):
    """Weekly challenge operation failed"""

    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        challenge_id: Optional[str] = None,
        **kwargs
    ):
        self.challenge_id = challenge_id
        super().__init__(
            message=message,
            context={"challenge_id": challenge_id},
            **kwargs
        )


# ==========================================
# Storage & Catalog Errors
# ==========================================

class PersistenceError(ProgressionError):
    """Key-value store read or write failed"""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        **kwargs
    ):
        self.key = key
        super().__init__(
            message=message,
            user_message="Your progress could not be saved. It will be retried automatically.",
            context={"key": key},
            **kwargs
        )


class CatalogError(ProgressionError):
    """Catalog file is missing or invalid"""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        **kwargs
    ):
        self.path = path
        super().__init__(
            message=message,
            user_message="The progression catalog could not be loaded.",
            context={"path": path},
            **kwargs
        )
