"""
Model Client
------------
OpenAI-compatible chat completion client.

Sends a compiled prompt plus the advertised tool functions and returns
the model's text and structured tool calls. API keys are passed in by the
provider router; they never appear in prompts or logs.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
import json
import logging

import httpx
from pydantic import BaseModel, Field, ValidationError

from core.errors import ModelError


@dataclass
class ModelToolCall:
    """A tool call requested by the model."""
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    id: Optional[str] = None


@dataclass
class ModelReply:
    """Text plus zero or more tool calls."""
    text: str = ""
    tool_calls: List[ModelToolCall] = field(default_factory=list)
    model: str = ""
    response_time_ms: float = 0.0


# Wire format of the chat completions response (only what we read)

class _FunctionPayload(BaseModel):
    name: str
    arguments: str = "{}"


class _ToolCallPayload(BaseModel):
    id: Optional[str] = None
    type: str = "function"
    function: _FunctionPayload


class _MessagePayload(BaseModel):
    role: str = "assistant"
    content: Optional[str] = None
    tool_calls: List[_ToolCallPayload] = Field(default_factory=list)


class _ChoicePayload(BaseModel):
    message: _MessagePayload


class _CompletionPayload(BaseModel):
    model: str = ""
    choices: List[_ChoicePayload]


@dataclass
class ClientConfig:
    """Configuration for a chat completion client."""
    name: str
    base_url: str
    model: str
    api_key: Optional[str] = None
    timeout_seconds: float = 60.0
    headers: Dict[str, str] = field(default_factory=dict)


class ChatCompletionClient:
    """
    Client for any OpenAI-compatible `/chat/completions` endpoint.

    Raises ModelError on transport failures, non-2xx responses and
    malformed payloads.
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.config = config
        self._transport = transport
        self._logger = logging.getLogger(f"superagent.api.{config.name}")

    def _get_headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": "SuperAgent/1.0",
        }
        headers.update(self.config.headers)
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        tools: Optional[Sequence[Dict]] = None,
        temperature: float = 0.7,
        max_tokens: int = 2000
    ) -> ModelReply:
        body: Dict[str, Any] = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if tools:
            body["tools"] = list(tools)

        url = f"{self.config.base_url.rstrip('/')}/chat/completions"
        start_time = datetime.now()

        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                transport=self._transport
            ) as client:
                response = await client.post(url, json=body, headers=self._get_headers())
        except httpx.TimeoutException as e:
            raise ModelError(f"{self.config.name}: request timed out") from e
        except httpx.HTTPError as e:
            raise ModelError(f"{self.config.name}: network error: {e}") from e

        response_time = (datetime.now() - start_time).total_seconds() * 1000

        if response.status_code == 429:
            raise ModelError(f"{self.config.name}: rate limit exceeded", response.status_code)
        if response.status_code in (401, 403):
            raise ModelError(f"{self.config.name}: authentication failed", response.status_code)
        if response.status_code >= 400:
            raise ModelError(
                f"{self.config.name}: unexpected status {response.status_code}",
                response.status_code
            )

        try:
            payload = _CompletionPayload.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ModelError(f"{self.config.name}: malformed response: {e}") from e

        if not payload.choices:
            raise ModelError(f"{self.config.name}: response has no choices")

        message = payload.choices[0].message
        reply = ModelReply(
            text=message.content or "",
            tool_calls=[self._parse_tool_call(tc) for tc in message.tool_calls],
            model=payload.model or self.config.model,
            response_time_ms=response_time,
        )
        self._logger.info(
            f"Model replied in {response_time:.0f}ms with {len(reply.tool_calls)} tool calls"
        )
        return reply

    @staticmethod
    def _parse_tool_call(payload: _ToolCallPayload) -> ModelToolCall:
        try:
            arguments = json.loads(payload.function.arguments or "{}")
        except json.JSONDecodeError as e:
            raise ModelError(
                f"Invalid JSON arguments for tool {payload.function.name}: {e}"
            ) from e
        if not isinstance(arguments, dict):
            raise ModelError(f"Arguments for tool {payload.function.name} are not an object")
        return ModelToolCall(name=payload.function.name, arguments=arguments, id=payload.id)


class MockModelClient:
    """
    Scripted model for tests and offline runs.

    Replies are returned in order; the last one repeats once the script is
    exhausted. Every request is recorded in `requests`.
    """

    def __init__(self, replies: Optional[Sequence[ModelReply]] = None):
        self._replies = list(replies) if replies else [ModelReply(text="OK")]
        self._index = 0
        self.requests: List[Dict[str, Any]] = []

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        tools: Optional[Sequence[Dict]] = None,
        temperature: float = 0.7,
        max_tokens: int = 2000
    ) -> ModelReply:
        self.requests.append({
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "tools": list(tools or []),
        })
        reply = self._replies[min(self._index, len(self._replies) - 1)]
        self._index += 1
        return reply
