# Infrastructure module - Logging and configuration

from .logging import (
    get_logger, configure_logging, TaskContext,
    log_task_end, get_task_id, generate_task_id
)
from .config import (
    AgentConfig, ProviderSettings, BrowserSettings, ToolSettings,
    load_config, config_from_dict
)

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    "TaskContext",
    "log_task_end",
    "get_task_id",
    "generate_task_id",
    # Config
    "AgentConfig",
    "ProviderSettings",
    "BrowserSettings",
    "ToolSettings",
    "load_config",
    "config_from_dict",
]
