"""
LLM Provider Router
-------------------
Catalog of OpenAI-compatible model providers and client construction.

A provider becomes usable once configured with an API key (Ollama needs
none). Clients are built on demand for a provider/model pair.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional
import logging

from api.client import ChatCompletionClient, ClientConfig
from core.errors import ConfigError


@dataclass
class ProviderConfig:
    """Credentials and overrides for one provider."""
    name: str
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    model: Optional[str] = None


@dataclass
class Provider:
    id: str
    name: str
    base_url: str
    models: List[str] = field(default_factory=list)
    requires_key: bool = True
    is_configured: bool = False


DEFAULT_PROVIDERS: List[Provider] = [
    Provider("openai", "OpenAI", "https://api.openai.com/v1",
             ["gpt-4o", "gpt-4o-mini", "gpt-4-turbo", "gpt-3.5-turbo"]),
    Provider("anthropic", "Anthropic", "https://api.anthropic.com/v1",
             ["claude-3-5-sonnet-20241022", "claude-3-5-haiku-20241022", "claude-3-opus-20240229"]),
    Provider("google", "Google (Gemini)", "https://generativelanguage.googleapis.com/v1beta/openai",
             ["gemini-2.0-flash-exp", "gemini-1.5-pro", "gemini-1.5-flash"]),
    Provider("deepseek", "DeepSeek", "https://api.deepseek.com/v1",
             ["deepseek-chat", "deepseek-coder"]),
    Provider("openrouter", "OpenRouter", "https://openrouter.ai/api/v1",
             ["anthropic/claude-3.5-sonnet", "openai/gpt-4o", "google/gemini-pro-1.5"]),
    Provider("groq", "Groq", "https://api.groq.com/openai/v1",
             ["llama-3.3-70b-versatile", "mixtral-8x7b-32768", "gemma2-9b-it"]),
    Provider("ollama", "Ollama (Local)", "http://localhost:11434/v1",
             ["llama3.2", "deepseek-coder", "codellama", "mistral"], requires_key=False),
    Provider("xai", "xAI (Grok)", "https://api.x.ai/v1",
             ["grok-2", "grok-2-vision"]),
    Provider("together", "Together AI", "https://api.together.xyz/v1",
             ["meta-llama/Llama-3.3-70B-Instruct-Turbo", "mistralai/Mixtral-8x7B-Instruct-v0.1"]),
    Provider("mistral", "Mistral", "https://api.mistral.ai/v1",
             ["mistral-large-latest", "mistral-small-latest"]),
]


class LLMProviderRouter:
    """Routes model requests to configured providers."""

    def __init__(self, providers: Optional[List[Provider]] = None):
        self._providers: Dict[str, Provider] = {}
        self._configs: Dict[str, ProviderConfig] = {}
        self._logger = logging.getLogger("superagent.providers")

        for provider in providers or DEFAULT_PROVIDERS:
            self.register_provider(Provider(
                id=provider.id,
                name=provider.name,
                base_url=provider.base_url,
                models=list(provider.models),
                requires_key=provider.requires_key,
            ))

    def register_provider(self, provider: Provider) -> None:
        self._providers[provider.id] = provider

    def configure_provider(self, provider_id: str, config: ProviderConfig) -> None:
        provider = self._providers.get(provider_id)
        if provider is None:
            raise ConfigError(f"Unknown provider: {provider_id}")

        if provider.requires_key and not config.api_key:
            self._logger.warning(f"No API key for provider: {provider_id}")
            return

        self._configs[provider_id] = config
        provider.is_configured = True
        self._logger.info(f"Configured provider: {provider_id}")

    def get_provider(self, provider_id: str) -> Optional[Provider]:
        return self._providers.get(provider_id)

    def get_providers(self) -> List[Provider]:
        return list(self._providers.values())

    def get_configured_providers(self) -> List[Provider]:
        return [p for p in self._providers.values() if p.is_configured]

    def create_client(self, provider_id: str, model: Optional[str] = None) -> ChatCompletionClient:
        """Build a client for a configured provider."""
        provider = self._providers.get(provider_id)
        if provider is None:
            raise ConfigError(f"Unknown provider: {provider_id}")
        if not provider.is_configured:
            raise ConfigError(f"Provider not configured: {provider_id}")

        config = self._configs[provider_id]
        model = model or config.model or (provider.models[0] if provider.models else None)
        if not model:
            raise ConfigError(f"No model selected for provider: {provider_id}")

        return ChatCompletionClient(ClientConfig(
            name=provider_id,
            base_url=config.base_url or provider.base_url,
            model=model,
            api_key=config.api_key,
        ))
