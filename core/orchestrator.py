"""
Orchestrator
------------
SuperAgent: compiles a task into a model invocation, dispatches the tool
calls the model emits and aggregates everything into a TaskResult.

Tool calls of a task run strictly one after another; the first failed
outcome aborts the task. execute_task() never raises.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging

from bridge.browser import AutonomousBridge
from core.errors import AgentError, ErrorHandler, HandlerError
from core.prompt_compiler import PromptCompiler
from core.providers import LLMProviderRouter, Provider
from infra.config import AgentConfig
from infra.logging import TaskContext, log_task_end
from tools.registry import ToolCall, ToolRegistry, ToolSchema
from workspace.engine import WorkspaceEngine, WorkspaceStats
from workspace.patch import PatchDiffEngine, PatchOperation


@dataclass
class Task:
    id: str
    description: str
    agent: Optional[str] = None
    tools: Optional[List[str]] = None  # Restricts the advertised tools
    context: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TaskStep:
    step: int
    description: str
    action: str
    result: Any = None
    error: Optional[str] = None


@dataclass
class ToolCallRecord:
    call_id: str
    tool_name: str
    parameters: Dict[str, Any]
    success: bool
    result: Any = None
    error: Optional[str] = None


@dataclass
class TaskResult:
    task_id: str
    success: bool
    result: Any = None
    error: Optional[str] = None
    steps: List[TaskStep] = field(default_factory=list)
    tool_calls: List[ToolCallRecord] = field(default_factory=list)

    def __repr__(self) -> str:
        status = "✓" if self.success else "✗"
        return f"TaskResult({status} {self.task_id}, tool_calls={len(self.tool_calls)})"


class ToolExecutionFailed(HandlerError):
    """Internal: aborts a task after a failed tool outcome."""


class SuperAgent:
    """
    Task orchestrator.

    All collaborators are passed in; the registry in particular is owned by
    the caller, so several agents may share or isolate tool sets.
    """

    def __init__(
        self,
        config: AgentConfig,
        registry: ToolRegistry,
        compiler: PromptCompiler,
        workspace: Optional[WorkspaceEngine] = None,
        bridge: Optional[AutonomousBridge] = None,
        patcher: Optional[PatchDiffEngine] = None,
        router: Optional[LLMProviderRouter] = None,
    ):
        self.config = config
        self.registry = registry
        self.compiler = compiler
        self.workspace = workspace or WorkspaceEngine(config.workspace_path)
        self.bridge = bridge or AutonomousBridge()
        self.patcher = patcher or PatchDiffEngine()
        self.router = router or LLMProviderRouter()
        self.errors = ErrorHandler()
        self._initialized = False
        self._logger = logging.getLogger("superagent.orchestrator")

    async def initialize(self) -> None:
        await self.workspace.initialize_workspace()
        await self.bridge.initialize()
        self._initialized = True
        self._logger.info("SuperAgent initialized successfully")

    async def execute_task(self, task: Task) -> TaskResult:
        """Run one task end to end."""
        result = TaskResult(task_id=task.id, success=False)

        with TaskContext(task.id):
            try:
                result.steps.append(TaskStep(1, "Compiling prompt for task", "prompt_compilation"))
                compiled = self.compiler.compile_agent_prompt(
                    [task.agent] if task.agent else self.config.agents,
                    task.description,
                    tools=self.registry.to_openai_functions(task.tools),
                    context=task.context,
                )

                result.steps.append(TaskStep(2, "Executing prompt with LLM", "llm_execution"))
                reply = await self.compiler.execute(compiled)
                result.result = reply.text

                if reply.tool_calls:
                    result.steps.append(TaskStep(
                        3, f"Executing {len(reply.tool_calls)} tool calls", "tool_execution"
                    ))
                    await self._dispatch(task, reply.tool_calls, result)

                result.success = True
            except Exception as e:
                error = AgentError.from_exception(e, details={"task": task.id})
                result.error = self.errors.handle(error)
                if result.steps and not isinstance(e, ToolExecutionFailed):
                    result.steps[-1].error = result.error

            log_task_end(task.id, result.success, len(result.tool_calls), result.error)

        return result

    async def _dispatch(self, task: Task, model_calls, result: TaskResult) -> None:
        allowed = set(task.tools) if task.tools is not None else None

        for index, model_call in enumerate(model_calls, start=1):
            call = ToolCall(
                id=f"{task.id}-{index}",
                name=model_call.name,
                parameters=dict(model_call.arguments),
            )

            if allowed is not None and call.name not in allowed:
                outcome_success, outcome_result = False, None
                outcome_error = f"tool not allowed for this task: {call.name}"
            else:
                outcome = await self.registry.execute(call)
                outcome_success, outcome_result, outcome_error = (
                    outcome.success, outcome.result, outcome.error
                )

            result.tool_calls.append(ToolCallRecord(
                call_id=call.id,
                tool_name=call.name,
                parameters=call.parameters,
                success=outcome_success,
                result=outcome_result,
                error=outcome_error,
            ))

            if not outcome_success:
                raise ToolExecutionFailed(f"Tool {call.name} failed: {outcome_error}")

    # Convenience operations

    async def execute_command(self, command: str, working_dir: Optional[str] = None) -> Any:
        """Run a command through the registered execute_command tool."""
        parameters: Dict[str, Any] = {"command": command}
        if working_dir:
            parameters["workingDir"] = working_dir
        outcome = await self.registry.execute(
            ToolCall(id="direct-command", name="execute_command", parameters=parameters)
        )
        if not outcome.success:
            raise HandlerError(outcome.error)
        return outcome.result

    async def edit_file(
        self,
        path: str,
        operation: str,
        old_value: Optional[str] = None,
        new_value: Optional[str] = None,
        anchor: Optional[str] = None
    ) -> Dict[str, Any]:
        content = await self.workspace.read_file(path)
        patched = self.patcher.apply_patch(content, PatchOperation(
            op=operation, value=new_value, old_value=old_value, anchor=anchor
        ))
        await self.workspace.write_file(path, patched)
        return {
            "success": True,
            "path": path,
            "operation": operation,
            "diff": self.patcher.compute_diff(content, patched),
        }

    async def scrape_webpage(
        self,
        url: str,
        selector: Optional[str] = None,
        extract_links: bool = False
    ) -> Dict[str, Any]:
        await self.bridge.navigate(url)
        await self.bridge.wait_for_navigation()
        page = await self.bridge.scrape_page(selector=selector, extract_links=extract_links)
        return page.to_dict()

    async def get_workspace_stats(self) -> WorkspaceStats:
        return await self.workspace.get_workspace_stats()

    def list_tools(self) -> List[ToolSchema]:
        return self.registry.list_tools()

    def get_providers(self) -> List[Provider]:
        return self.router.get_providers()

    def get_configured_providers(self) -> List[Provider]:
        return self.router.get_configured_providers()

    def switch_provider(self, provider_id: str, model: str) -> bool:
        """Point the compiler at another configured provider."""
        provider = self.router.get_provider(provider_id)
        if provider is None or not provider.is_configured:
            self._logger.warning(f"Cannot switch to unconfigured provider: {provider_id}")
            return False

        self.compiler = PromptCompiler(
            self.router.create_client(provider_id, model),
            temperature=self.compiler.temperature,
            max_tokens=self.compiler.max_tokens,
        )
        self._logger.info(f"Switched provider to {provider_id}/{model}")
        return True

    async def shutdown(self) -> None:
        await self.bridge.close()
        self.workspace.clear_cache()
        self._initialized = False
        self._logger.info("SuperAgent shutdown complete")

    def get_status(self) -> Dict[str, Any]:
        return {
            "initialized": self._initialized,
            "providers_configured": len(self.router.get_configured_providers()),
            "tools_available": len(self.registry),
            "workspace_path": str(self.workspace.root),
        }
