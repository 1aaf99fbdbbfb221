# API module - Model client for OpenAI-compatible endpoints
# Secrets come from the provider router, never from prompts

from .client import (
    ChatCompletionClient, ClientConfig, MockModelClient,
    ModelReply, ModelToolCall
)

__all__ = [
    "ChatCompletionClient",
    "ClientConfig",
    "MockModelClient",
    "ModelReply",
    "ModelToolCall",
]
