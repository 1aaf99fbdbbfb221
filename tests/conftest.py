"""
SuperAgent Test Configuration
-----------------------------
Shared fixtures and configuration for all tests.
"""

import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from bridge.browser import AutonomousBridge  # noqa: E402
from core.errors import HandlerError  # noqa: E402
from tools.registry import ToolParameter, ToolRegistry, ToolSchema  # noqa: E402
from workspace.engine import WorkspaceEngine  # noqa: E402


# =============================================================================
# Test Isolation: Block Side Effects
# =============================================================================

@pytest.fixture(autouse=True)
def block_web_search(monkeypatch):
    """
    Block real DuckDuckGo searches during tests.

    Tests that exercise web_search install their own fake client.
    """
    import tools.builtin

    class _Blocked:
        def __init__(self, *args, **kwargs):
            raise RuntimeError(
                "Live web search is forbidden during tests. "
                "Patch tools.builtin.DDGS with a fake client."
            )

    monkeypatch.setattr(tools.builtin, "DDGS", _Blocked)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root path."""
    return PROJECT_ROOT


@pytest.fixture
def echo_schema():
    return ToolSchema(
        name="echo",
        description="Return the text unchanged",
        parameters=(ToolParameter(name="text", description="Text to echo", required=True),),
    )


@pytest.fixture
def echo_registry(echo_schema):
    """Registry with an `echo` tool whose handler raises on missing text."""
    registry = ToolRegistry()

    async def echo(params):
        if "text" not in params:
            raise HandlerError("text is required")
        return params["text"]

    registry.register(echo_schema, echo)
    return registry


@pytest.fixture
def workspace(tmp_path):
    return WorkspaceEngine(str(tmp_path / "ws"))


@pytest_asyncio.fixture
async def ready_workspace(workspace):
    await workspace.initialize_workspace()
    return workspace


@pytest.fixture
def bridge():
    return AutonomousBridge()
