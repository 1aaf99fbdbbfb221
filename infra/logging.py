"""
SuperAgent Centralized Logging
------------------------------
Structured logging with task_id propagation.

Design:
- Every task run gets a task_id (a context variable, async-safe)
- task_id is attached to every record under the `superagent` logger
- Console output goes through Rich, file output is JSON lines with rotation
- Severity discipline: INFO=progress, WARNING=recoverable, ERROR=failed call/task

Usage:
    from infra.logging import configure_logging, get_logger, TaskContext

    configure_logging(level=logging.INFO, log_dir="logs")
    logger = get_logger("core")

    with TaskContext("task-1") as task_id:
        logger.info("Dispatching tool calls")
"""

from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional
import contextvars
import json
import logging
import uuid

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "superagent"

_task_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "task_id", default=None
)


def generate_task_id() -> str:
    return f"task_{uuid.uuid4().hex[:12]}"


def get_task_id() -> Optional[str]:
    return _task_id_var.get()


class TaskContext:
    """
    Context manager scoping log records to a task.

    Usage:
        with TaskContext() as task_id:
            logger.info("Processing...")
    """

    def __init__(self, task_id: Optional[str] = None):
        self._task_id = task_id or generate_task_id()
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        self._token = _task_id_var.set(self._task_id)
        return self._task_id

    def __exit__(self, *args) -> None:
        if self._token is not None:
            _task_id_var.reset(self._token)


class TaskIdFilter(logging.Filter):
    """Adds task_id from context to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "task_id", None) is None:
            record.task_id = get_task_id() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured file logging."""

    EXTRA_FIELDS = ("tool_name", "call_id", "success", "tool_calls", "details")

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "task_id": getattr(record, "task_id", "-"),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        for key in self.EXTRA_FIELDS:
            if hasattr(record, key):
                entry[key] = getattr(record, key)
        return json.dumps(entry, default=str)


class TaskConsoleFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        task_id = getattr(record, "task_id", "-")
        prefix = f"[{task_id}] " if task_id != "-" else ""
        return f"{prefix}{record.name}: {record.getMessage()}"


_logging_initialized = False


def configure_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    console: bool = True,
    file: bool = True,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 3,
) -> None:
    """
    Configure the SuperAgent logging system. Later calls are ignored.

    Args:
        level: Console logging level
        log_dir: Directory for log files (default: ./logs)
        console: Enable Rich console output
        file: Enable JSON file output
    """
    global _logging_initialized
    if _logging_initialized:
        return

    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(logging.DEBUG if file else level)
    root_logger.handlers.clear()

    task_filter = TaskIdFilter()

    if console:
        console_handler = RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            show_path=False,
        )
        console_handler.setLevel(level)
        console_handler.setFormatter(TaskConsoleFormatter())
        console_handler.addFilter(task_filter)
        root_logger.addHandler(console_handler)

    if file:
        log_path = Path(log_dir) if log_dir else Path("logs")
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path / "superagent.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)  # File gets everything
        file_handler.setFormatter(JSONFormatter())
        file_handler.addFilter(task_filter)
        root_logger.addHandler(file_handler)

    _logging_initialized = True


def get_logger(name: str) -> logging.Logger:
    """Logger under the `superagent` namespace."""
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def log_task_end(
    task_id: str,
    success: bool,
    tool_calls: int = 0,
    error: Optional[str] = None,
) -> None:
    """TASK_END boundary event with a summary of the run."""
    logger = get_logger("core.task")
    extra = {"task_id": task_id, "success": success, "tool_calls": tool_calls}

    if success:
        logger.info(f"TASK_END: success=True, tool_calls={tool_calls}", extra=extra)
    else:
        logger.error(f"TASK_END: success=False, error={error or 'Unknown'}", extra=extra)
