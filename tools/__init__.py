# Tools module - Tool registry and dispatch
# Each tool: name, parameter schema, handler
# The registry never raises to its caller: every call yields a ToolOutcome

from .registry import (
    ToolRegistry, ToolSchema, ToolParameter, ParameterType,
    ToolCall, ToolOutcome, ToolHandler, FunctionHandler
)
from .builtin import create_default_tools, CommandRunner, DEFAULT_SCHEMAS

__all__ = [
    "ToolRegistry",
    "ToolSchema",
    "ToolParameter",
    "ParameterType",
    "ToolCall",
    "ToolOutcome",
    "ToolHandler",
    "FunctionHandler",
    "create_default_tools",
    "CommandRunner",
    "DEFAULT_SCHEMAS",
]
