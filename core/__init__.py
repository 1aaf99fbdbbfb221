# Core module - Orchestrator, prompt compilation, provider routing, errors
# Only errors are re-exported here: every other package imports core.errors,
# so pulling the orchestrator in at package import would create cycles.
# Import submodules directly: core.orchestrator, core.prompt_compiler, core.providers

from .errors import (
    SuperAgentError, HandlerError, WorkspaceError, PatchError,
    ModelError, ConfigError, ErrorHandler, AgentError, ErrorCategory
)

__all__ = [
    "SuperAgentError", "HandlerError", "WorkspaceError", "PatchError",
    "ModelError", "ConfigError", "ErrorHandler", "AgentError", "ErrorCategory",
]
