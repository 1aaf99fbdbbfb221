"""
Tool Registry
-------------
Named tool dispatch: each tool is a schema plus a handler.

The registry validates required parameters, invokes handlers and wraps
every result or failure into a ToolOutcome. It never raises to its caller
for an unknown tool or a failing handler.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union
import inspect
import logging

import yaml

from core.errors import error_message


class ParameterType(str, Enum):
    """Supported parameter types."""
    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


@dataclass(frozen=True)
class ToolParameter:
    """Definition of a tool parameter."""
    name: str
    type: ParameterType = ParameterType.STRING
    description: str = ""
    required: bool = False
    enum: Optional[Tuple[Any, ...]] = None  # Allowed values
    default: Optional[Any] = None

    def __post_init__(self):
        object.__setattr__(self, "type", ParameterType(self.type))
        if self.enum is not None:
            object.__setattr__(self, "enum", tuple(self.enum))

    def to_json_schema(self) -> Dict:
        """Convert to JSON Schema format."""
        schema: Dict[str, Any] = {
            "type": self.type.value,
            "description": self.description
        }
        if self.enum:
            schema["enum"] = list(self.enum)
        if self.default is not None:
            schema["default"] = self.default
        return schema


@dataclass(frozen=True)
class ToolSchema:
    """
    Immutable tool declaration.

    The required set is derived from the parameters flagged required, so it
    is always a subset of the declared parameters.
    """
    name: str
    description: str
    parameters: Tuple[ToolParameter, ...] = ()
    returns: Optional[str] = None

    def __post_init__(self):
        params = tuple(self.parameters)
        names = [p.name for p in params]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate parameter names in tool {self.name}")
        object.__setattr__(self, "parameters", params)

    @property
    def required(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.parameters if p.required)

    def parameter(self, name: str) -> Optional[ToolParameter]:
        for param in self.parameters:
            if param.name == name:
                return param
        return None

    def to_json_schema(self) -> Dict:
        """Convert to full JSON Schema."""
        return {
            "type": "object",
            "properties": {p.name: p.to_json_schema() for p in self.parameters},
            "required": list(self.required),
        }

    def to_openai_function(self) -> Dict:
        """Convert to OpenAI function calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.to_json_schema()
            }
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ToolSchema":
        """
        Build a schema from a mapping.

        ``parameters`` may be a JSON-schema object
        (``{"type": "object", "properties": {...}, "required": [...]}``)
        or a list of parameter mappings with their own ``required`` flag.
        """
        raw = data.get("parameters") or []
        params: List[ToolParameter] = []

        if isinstance(raw, Mapping):
            required = set(raw.get("required") or [])
            for name, prop in (raw.get("properties") or {}).items():
                params.append(ToolParameter(
                    name=name,
                    type=prop.get("type", "string"),
                    description=prop.get("description", ""),
                    required=name in required,
                    enum=prop.get("enum"),
                    default=prop.get("default"),
                ))
            unknown = required - {p.name for p in params}
            if unknown:
                raise ValueError(
                    f"Tool {data['name']} requires undeclared parameters: {sorted(unknown)}"
                )
        else:
            for param_data in raw:
                params.append(ToolParameter(
                    name=param_data["name"],
                    type=param_data.get("type", "string"),
                    description=param_data.get("description", ""),
                    required=param_data.get("required", False),
                    enum=param_data.get("enum"),
                    default=param_data.get("default"),
                ))

        return cls(
            name=data["name"],
            description=data.get("description", ""),
            parameters=tuple(params),
            returns=data.get("returns"),
        )


@dataclass(frozen=True)
class ToolCall:
    """A structured call naming a tool; `id` is echoed in the outcome."""
    id: str
    name: str
    parameters: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolOutcome:
    """Uniform success/failure record for a dispatched call."""
    id: str
    success: bool
    result: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, call_id: str, result: Any) -> "ToolOutcome":
        return cls(id=call_id, success=True, result=result)

    @classmethod
    def fail(cls, call_id: str, error: str) -> "ToolOutcome":
        return cls(id=call_id, success=False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "success": self.success}
        if self.success:
            data["result"] = self.result
        else:
            data["error"] = self.error
        return data

    def __repr__(self) -> str:
        status = "✓" if self.success else "✗"
        return f"ToolOutcome({status} {self.id}: {self.result if self.success else self.error})"


class ToolHandler(ABC):
    """
    Executable behaviour bound to a tool name.

    Implementations raise HandlerError (or any exception) on failure; the
    registry converts it into a failure outcome.
    """

    @abstractmethod
    async def invoke(self, parameters: Dict[str, Any]) -> Any:
        ...


class FunctionHandler(ToolHandler):
    """Adapts a plain sync or async callable taking the parameter mapping."""

    def __init__(self, func: Callable[[Dict[str, Any]], Any]):
        self._func = func

    async def invoke(self, parameters: Dict[str, Any]) -> Any:
        result = self._func(parameters)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        return f"FunctionHandler({getattr(self._func, '__name__', self._func)!r})"


HandlerLike = Union[ToolHandler, Callable[[Dict[str, Any]], Union[Any, Awaitable[Any]]]]


@dataclass(frozen=True)
class _Entry:
    schema: ToolSchema
    handler: ToolHandler


class ToolRegistry:
    """
    Registry mapping tool names to (schema, handler).

    With ``strict=True`` execute() refuses calls that miss required
    parameters; otherwise validation is advisory and handlers must defend
    themselves.
    """

    def __init__(self, strict: bool = False):
        self.strict = strict
        self._entries: Dict[str, _Entry] = {}
        self._logger = logging.getLogger("superagent.tools.registry")

    def register(self, schema: ToolSchema, handler: HandlerLike) -> None:
        """Register a tool. Re-registering a name replaces it."""
        if not isinstance(handler, ToolHandler):
            if not callable(handler):
                raise TypeError(f"Handler for {schema.name} is not callable")
            handler = FunctionHandler(handler)

        if schema.name in self._entries:
            self._logger.warning(f"Overwriting existing tool: {schema.name}")

        self._entries[schema.name] = _Entry(schema=schema, handler=handler)
        self._logger.debug(f"Registered tool: {schema.name}")

    def unregister(self, name: str) -> bool:
        """Unregister a tool."""
        return self._entries.pop(name, None) is not None

    def get(self, name: str) -> Optional[ToolSchema]:
        """Get a tool schema by name."""
        entry = self._entries.get(name)
        return entry.schema if entry else None

    def get_handler(self, name: str) -> Optional[ToolHandler]:
        entry = self._entries.get(name)
        return entry.handler if entry else None

    def list_tools(self) -> List[ToolSchema]:
        """All registered schemas in registration order."""
        return [entry.schema for entry in self._entries.values()]

    def missing_parameters(self, name: str, parameters: Mapping[str, Any]) -> List[str]:
        """Required parameter names absent from `parameters`."""
        schema = self.get(name)
        if schema is None:
            return []
        return [p for p in schema.required if p not in parameters]

    def validate(self, name: str, parameters: Mapping[str, Any]) -> bool:
        """
        Presence-only check: False if the tool is unknown or a required
        parameter is missing. Types, enums and extra keys are not checked.
        """
        if name not in self._entries:
            return False
        return not self.missing_parameters(name, parameters)

    async def execute(self, call: ToolCall) -> ToolOutcome:
        """Execute one call. Exactly one handler invocation, no retry."""
        entry = self._entries.get(call.name)
        if entry is None:
            self._logger.warning(f"Unknown tool: {call.name}")
            return ToolOutcome.fail(call.id, f"tool not found: {call.name}")

        if self.strict:
            missing = self.missing_parameters(call.name, call.parameters)
            if missing:
                error = f"missing required parameters for {call.name}: {', '.join(missing)}"
                self._logger.warning(error)
                return ToolOutcome.fail(call.id, error)

        self._logger.info(f"Executing tool: {call.name} (id={call.id})")
        try:
            result = await entry.handler.invoke(dict(call.parameters))
        except Exception as e:
            self._logger.error(f"Tool {call.name} failed: {e}")
            return ToolOutcome.fail(call.id, error_message(e))

        return ToolOutcome.ok(call.id, result)

    async def execute_all(self, calls: Iterable[ToolCall]) -> List[ToolOutcome]:
        """Execute calls one after another in submission order."""
        outcomes = []
        for call in calls:
            outcomes.append(await self.execute(call))
        return outcomes

    def to_openai_functions(self, names: Optional[Iterable[str]] = None) -> List[Dict]:
        """Schemas in OpenAI function format, optionally limited to `names`."""
        allowed = set(names) if names is not None else None
        return [
            schema.to_openai_function()
            for schema in self.list_tools()
            if allowed is None or schema.name in allowed
        ]

    def load_from_yaml(self, path: str, handlers: Mapping[str, HandlerLike]) -> int:
        """
        Register tool schemas declared in a YAML file.

        Each schema is bound to the handler of the same name; schemas with
        no handler are skipped. Returns number of tools loaded.
        """
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        count = 0
        for tool_data in data.get('tools', []):
            try:
                schema = ToolSchema.from_dict(tool_data)
            except (KeyError, ValueError) as e:
                self._logger.error(f"Failed to load tool definition: {e}")
                continue

            handler = handlers.get(schema.name)
            if handler is None:
                self._logger.error(f"No handler for declared tool: {schema.name}")
                continue

            self.register(schema, handler)
            count += 1

        return count

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: str) -> bool:
        return name in self._entries
