"""
Error Handling Module
---------------------
Exception types raised by handlers and helpers, plus structured error
records for reporting.

The registry never lets these cross its boundary: handler exceptions are
turned into failure outcomes, and the orchestrator turns everything else
into a failed task result.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Any, Dict, List, Optional
import logging
import traceback


class SuperAgentError(Exception):
    """Base class for all SuperAgent exceptions."""


class HandlerError(SuperAgentError):
    """Raised by a tool handler when it cannot complete a call."""


class WorkspaceError(HandlerError):
    """Filesystem operation failed or escaped the workspace root."""


class PatchError(HandlerError):
    """A patch operation could not be applied."""


class ModelError(SuperAgentError):
    """Model API call failed or returned an unusable reply."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


class ConfigError(SuperAgentError):
    """Invalid or incomplete configuration."""


class ErrorCategory(Enum):
    """Categories of errors for handling decisions."""
    UNKNOWN_TOOL = auto()       # Call named an unregistered tool
    HANDLER_FAILURE = auto()    # Tool handler raised
    VALIDATION_ERROR = auto()   # Required parameters missing
    LLM_FAILURE = auto()        # Model API/parsing error
    WORKSPACE_ERROR = auto()    # Filesystem helper failed
    CONFIG_ERROR = auto()       # Bad configuration
    SYSTEM_ERROR = auto()       # Anything else


@dataclass
class AgentError:
    """
    Structured error with metadata.

    Used for consistent error reporting in task results and logs.
    """
    category: ErrorCategory
    message: str
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime = field(default_factory=datetime.now)
    stack_trace: Optional[str] = None

    @classmethod
    def from_exception(
        cls,
        exception: BaseException,
        category: Optional[ErrorCategory] = None,
        details: Optional[Dict] = None
    ) -> "AgentError":
        """Create error from an exception, classifying it if no category given."""
        return cls(
            category=category or classify_exception(exception),
            message=error_message(exception),
            details=details,
            stack_trace="".join(traceback.format_exception(
                type(exception), exception, exception.__traceback__
            )),
        )

    def __repr__(self) -> str:
        return f"AgentError({self.category.name}: {self.message})"


def error_message(exception: BaseException) -> str:
    """Message carried in outcomes: str(exc), or the class name if empty."""
    message = str(exception)
    return message if message else type(exception).__name__


def classify_exception(exception: BaseException) -> ErrorCategory:
    """Map an exception to an error category."""
    if isinstance(exception, WorkspaceError):
        return ErrorCategory.WORKSPACE_ERROR
    if isinstance(exception, HandlerError):
        return ErrorCategory.HANDLER_FAILURE
    if isinstance(exception, ModelError):
        return ErrorCategory.LLM_FAILURE
    if isinstance(exception, ConfigError):
        return ErrorCategory.CONFIG_ERROR
    return ErrorCategory.SYSTEM_ERROR


class ErrorHandler:
    """
    Central error handler with logging and bounded history.
    """

    LEVELS: Dict[ErrorCategory, int] = {
        ErrorCategory.UNKNOWN_TOOL: logging.WARNING,
        ErrorCategory.VALIDATION_ERROR: logging.WARNING,
        ErrorCategory.HANDLER_FAILURE: logging.ERROR,
        ErrorCategory.WORKSPACE_ERROR: logging.ERROR,
        ErrorCategory.LLM_FAILURE: logging.ERROR,
        ErrorCategory.CONFIG_ERROR: logging.ERROR,
        ErrorCategory.SYSTEM_ERROR: logging.CRITICAL,
    }

    def __init__(self, max_history: int = 100):
        self._logger = logging.getLogger("superagent.errors")
        self._error_history: List[AgentError] = []
        self._max_history = max_history

    def handle(self, error: AgentError) -> str:
        """Log and record an error, returning its message."""
        level = self.LEVELS.get(error.category, logging.ERROR)
        self._logger.log(
            level,
            f"{error.category.name}: {error.message}",
            extra={"details": error.details}
        )
        if error.stack_trace and level >= logging.ERROR:
            self._logger.debug(f"Stack trace:\n{error.stack_trace}")

        self._error_history.append(error)
        if len(self._error_history) > self._max_history:
            self._error_history.pop(0)

        return error.message

    @property
    def history(self) -> List[AgentError]:
        return list(self._error_history)

    def get_error_stats(self) -> Dict[str, int]:
        """Get error counts per category."""
        stats: Dict[str, int] = {}
        for error in self._error_history:
            key = error.category.name
            stats[key] = stats.get(key, 0) + 1
        return stats

    def clear_history(self) -> None:
        self._error_history.clear()
