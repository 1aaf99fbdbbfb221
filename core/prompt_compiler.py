"""
Prompt Compiler
---------------
Builds the multi-agent orchestration prompt for a task and runs it
against the configured model client.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence
import json

from api.client import ModelReply


class ModelClient(Protocol):
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        tools: Optional[Sequence[Dict]] = None,
        temperature: float = 0.7,
        max_tokens: int = 2000
    ) -> ModelReply:
        ...


@dataclass
class CompiledPrompt:
    system_prompt: str
    user_prompt: str
    tools: List[Dict] = field(default_factory=list)
    context: Dict[str, Any] = field(default_factory=dict)


SYSTEM_TEMPLATE = """You are a multi-agent orchestrator coordinating the following specialized agents:
{agents}

Your role is to:
1. Analyze the task and determine which agents should handle it
2. Coordinate communication between agents
3. Ensure tools are used appropriately
4. Generate comprehensive solutions

Available tools:
{tools}

Always think step by step and explain your reasoning before taking actions."""

USER_TEMPLATE = """Task: {task}

Please:
1. Break down this task into manageable steps
2. Identify which agents and tools are needed
3. Execute the plan systematically
4. Provide detailed results and any issues encountered"""


class PromptCompiler:
    """Compiles prompts and executes them with a model client."""

    def __init__(self, client: ModelClient, temperature: float = 0.7, max_tokens: int = 2000):
        self.client = client
        self.temperature = temperature
        self.max_tokens = max_tokens

    def compile_agent_prompt(
        self,
        agents: Sequence[str],
        task: str,
        tools: Optional[Sequence[Dict]] = None,
        context: Optional[Dict[str, Any]] = None
    ) -> CompiledPrompt:
        tools = list(tools or [])
        context = dict(context or {})

        tool_lines = [
            f"- {t['function']['name']}: {t['function'].get('description', '')}"
            for t in tools
        ]
        system_prompt = SYSTEM_TEMPLATE.format(
            agents="\n".join(f"- {agent}" for agent in agents) or "- general",
            tools="\n".join(tool_lines) or "- none",
        )

        user_prompt = USER_TEMPLATE.format(task=task)
        if context:
            user_prompt += "\n\nContext:\n" + json.dumps(context, indent=2, default=str)

        return CompiledPrompt(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            tools=tools,
            context=context,
        )

    async def execute(self, compiled: CompiledPrompt) -> ModelReply:
        return await self.client.complete(
            compiled.system_prompt,
            compiled.user_prompt,
            tools=compiled.tools,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
