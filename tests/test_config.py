"""
Configuration, Logging and Error Handling Tests
-----------------------------------------------
"""

import pytest
from pathlib import Path
import json
import logging
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.errors import (
    AgentError,
    ConfigError,
    ErrorCategory,
    ErrorHandler,
    HandlerError,
    ModelError,
    PatchError,
    WorkspaceError,
    classify_exception,
)
from infra.config import AgentConfig, config_from_dict, load_config
from infra.logging import (
    JSONFormatter,
    TaskContext,
    TaskIdFilter,
    get_logger,
    get_task_id,
)


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(str(tmp_path / "absent.yaml"))

        assert config == AgentConfig()
        assert config.tools.strict_validation is True

    def test_full_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "default_provider: groq\n"
            "default_model: llama-3.3-70b-versatile\n"
            "workspace_path: /tmp/ws\n"
            "agents: [coder]\n"
            "providers:\n"
            "  - name: groq\n"
            "    api_key_env: TEST_GROQ_KEY\n"
            "tools:\n"
            "  strict_validation: false\n"
            "  search_results: 3\n"
            "browser:\n"
            "  headless: false\n"
        )

        config = load_config(str(path))

        assert config.default_provider == "groq"
        assert config.agents == ["coder"]
        assert config.tools.strict_validation is False
        assert config.tools.search_results == 3
        assert config.browser.headless is False
        assert config.providers[0].api_key_env == "TEST_GROQ_KEY"

    def test_repo_config_parses(self, project_root):
        config = load_config(str(project_root / "config.yaml"))

        assert config.tools.strict_validation is True
        assert [p.name for p in config.providers] == ["openai", "anthropic", "ollama"]

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("tools: [unclosed\n")

        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_unknown_key_in_section(self):
        with pytest.raises(ConfigError):
            config_from_dict({"tools": {"bogus": 1}})

    def test_section_must_be_mapping(self):
        with pytest.raises(ConfigError):
            config_from_dict({"browser": "chrome"})

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("TEST_GROQ_KEY", "gsk-123")
        config = config_from_dict({"providers": [{"name": "groq", "api_key_env": "TEST_GROQ_KEY"}]})

        assert config.providers[0].resolve_api_key() == "gsk-123"

    def test_inline_key_wins(self, monkeypatch):
        monkeypatch.setenv("TEST_GROQ_KEY", "from-env")
        config = config_from_dict({"providers": [
            {"name": "groq", "api_key": "inline", "api_key_env": "TEST_GROQ_KEY"}
        ]})

        assert config.providers[0].resolve_api_key() == "inline"


class TestErrors:
    @pytest.mark.parametrize("exc,category", [
        (WorkspaceError("x"), ErrorCategory.WORKSPACE_ERROR),
        (PatchError("x"), ErrorCategory.HANDLER_FAILURE),
        (HandlerError("x"), ErrorCategory.HANDLER_FAILURE),
        (ModelError("x"), ErrorCategory.LLM_FAILURE),
        (ConfigError("x"), ErrorCategory.CONFIG_ERROR),
        (RuntimeError("x"), ErrorCategory.SYSTEM_ERROR),
    ])
    def test_classification(self, exc, category):
        assert classify_exception(exc) == category

    def test_from_exception(self):
        error = AgentError.from_exception(ValueError(), details={"task": "t1"})

        assert error.message == "ValueError"
        assert error.category is ErrorCategory.SYSTEM_ERROR
        assert error.details == {"task": "t1"}

    def test_history_is_bounded(self):
        handler = ErrorHandler(max_history=2)
        for i in range(3):
            handler.handle(AgentError(ErrorCategory.HANDLER_FAILURE, f"e{i}"))

        assert [e.message for e in handler.history] == ["e1", "e2"]
        assert handler.get_error_stats() == {"HANDLER_FAILURE": 2}
        handler.clear_history()
        assert handler.history == []

    def test_handle_logs_at_category_level(self, caplog):
        handler = ErrorHandler()

        with caplog.at_level(logging.DEBUG, logger="superagent.errors"):
            message = handler.handle(AgentError(ErrorCategory.VALIDATION_ERROR, "missing path"))

        assert message == "missing path"
        assert caplog.records[0].levelno == logging.WARNING


class TestLogging:
    def test_task_context_scopes_id(self):
        assert get_task_id() is None
        with TaskContext("task-9") as task_id:
            assert task_id == "task-9"
            assert get_task_id() == "task-9"
        assert get_task_id() is None

    def test_generated_task_id(self):
        with TaskContext() as task_id:
            assert task_id.startswith("task_")

    def test_filter_and_json_formatter(self):
        record = logging.LogRecord("superagent.x", logging.INFO, __file__, 1, "hello", None, None)
        record.tool_name = "echo"

        with TaskContext("task-3"):
            TaskIdFilter().filter(record)
        entry = json.loads(JSONFormatter().format(record))

        assert entry["task_id"] == "task-3"
        assert entry["message"] == "hello"
        assert entry["tool_name"] == "echo"
        assert entry["level"] == "INFO"

    def test_get_logger_namespacing(self):
        assert get_logger("core").name == "superagent.core"
        assert get_logger("superagent.tools").name == "superagent.tools"
