"""
Configuration
-------------
YAML configuration mapped onto dataclasses.

Rules:
- Secrets never in the config file itself when avoidable: a provider may
  name an environment variable (`api_key_env`) instead of an `api_key`
- A missing config file yields defaults (with a warning)
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging
import os

import yaml

from core.errors import ConfigError


@dataclass
class ProviderSettings:
    name: str
    api_key: Optional[str] = None
    api_key_env: Optional[str] = None
    base_url: Optional[str] = None
    model: Optional[str] = None

    def resolve_api_key(self) -> Optional[str]:
        if self.api_key:
            return self.api_key
        if self.api_key_env:
            return os.getenv(self.api_key_env)
        return None


@dataclass
class BrowserSettings:
    headless: bool = True
    user_agent: str = "SuperAgent/1.0"
    timeout_seconds: float = 30.0


@dataclass
class ToolSettings:
    strict_validation: bool = True
    command_timeout_seconds: float = 120.0
    search_results: int = 10
    definitions_path: Optional[str] = None


@dataclass
class AgentConfig:
    """Top-level SuperAgent configuration."""
    providers: List[ProviderSettings] = field(default_factory=list)
    default_provider: str = "openai"
    default_model: str = "gpt-4o-mini"
    workspace_path: str = "workspace"
    agents: List[str] = field(default_factory=lambda: ["planner", "coder", "researcher"])
    temperature: float = 0.7
    max_tokens: int = 2000
    browser: BrowserSettings = field(default_factory=BrowserSettings)
    tools: ToolSettings = field(default_factory=ToolSettings)
    log_dir: str = "logs"


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Config section '{key}' must be a mapping")
    return value


def config_from_dict(data: Dict[str, Any]) -> AgentConfig:
    """Build an AgentConfig from parsed YAML."""
    try:
        providers = [ProviderSettings(**p) for p in data.get("providers") or []]
        browser = BrowserSettings(**_section(data, "browser"))
        tools = ToolSettings(**_section(data, "tools"))
    except TypeError as e:
        raise ConfigError(f"Invalid config: {e}") from e

    defaults = AgentConfig()
    return AgentConfig(
        providers=providers,
        default_provider=data.get("default_provider", defaults.default_provider),
        default_model=data.get("default_model", defaults.default_model),
        workspace_path=data.get("workspace_path", defaults.workspace_path),
        agents=list(data.get("agents") or defaults.agents),
        temperature=float(data.get("temperature", defaults.temperature)),
        max_tokens=int(data.get("max_tokens", defaults.max_tokens)),
        browser=browser,
        tools=tools,
        log_dir=data.get("log_dir", defaults.log_dir),
    )


def load_config(path: str = "config.yaml") -> AgentConfig:
    """Load configuration from a YAML file."""
    logger = logging.getLogger("superagent.config")
    config_path = Path(path)

    if not config_path.exists():
        logger.warning(f"Config file not found: {config_path}; using defaults")
        return AgentConfig()

    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping")

    return config_from_dict(data)
