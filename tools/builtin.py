"""
Built-in Tools
--------------
Default tool schemas and the handlers bound to them.

Handlers delegate to the workspace, patch engine, browser bridge and a
command runner. Each one checks its own required parameters so it stays
safe when the registry runs with advisory validation.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
import asyncio
import logging
import shlex

from ddgs import DDGS

from bridge.browser import AutonomousBridge
from core.errors import HandlerError, PatchError
from workspace.engine import FileNode, WorkspaceEngine
from workspace.patch import PATCH_OPERATIONS, PatchDiffEngine, PatchOperation

from .registry import ParameterType, ToolHandler, ToolParameter, ToolRegistry, ToolSchema


logger = logging.getLogger("superagent.tools.builtin")


def _require(parameters: Dict[str, Any], *names: str) -> None:
    missing = [name for name in names if parameters.get(name) in (None, "")]
    if missing:
        raise HandlerError(f"Missing required parameter: {', '.join(missing)}")


@dataclass
class CommandResult:
    output: str
    exit_code: int

    def to_dict(self) -> Dict[str, Any]:
        return {"output": self.output, "exit_code": self.exit_code}


class CommandRunner:
    """
    Runs argv lists as subprocesses without a shell.

    Output is stdout followed by stderr, decoded as UTF-8. Commands that
    exceed `timeout_seconds` are killed and reported as HandlerError.
    """

    def __init__(self, cwd: str, timeout_seconds: float = 120.0):
        self.cwd = cwd
        self.timeout_seconds = timeout_seconds

    async def run(self, argv: Sequence[str], cwd: Optional[str] = None) -> CommandResult:
        if not argv:
            raise HandlerError("Empty command")
        logger.info(f"Running command: {' '.join(argv)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=cwd or self.cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise HandlerError(f"Failed to start {argv[0]}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            raise HandlerError(f"Command timed out after {self.timeout_seconds}s: {argv[0]}")
        finally:
            # Timeout or cancellation: never leave the child running
            if process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass  # exited between the check and the kill
                await asyncio.shield(process.wait())

        output = stdout.decode("utf-8", errors="replace") + stderr.decode("utf-8", errors="replace")
        return CommandResult(output=output, exit_code=process.returncode)


# Handlers

class ExecuteCommandHandler(ToolHandler):
    def __init__(self, runner: CommandRunner, workspace: WorkspaceEngine):
        self.runner = runner
        self.workspace = workspace

    async def invoke(self, parameters: Dict[str, Any]) -> Any:
        _require(parameters, "command")
        try:
            argv = shlex.split(parameters["command"])
        except ValueError as e:
            raise HandlerError(f"Cannot parse command: {e}") from e
        cwd = None
        if parameters.get("workingDir"):
            cwd = str(self.workspace.resolve_path(parameters["workingDir"]))
        result = await self.runner.run(argv, cwd=cwd)
        return result.to_dict()


class WriteFileHandler(ToolHandler):
    def __init__(self, workspace: WorkspaceEngine):
        self.workspace = workspace

    async def invoke(self, parameters: Dict[str, Any]) -> Any:
        _require(parameters, "path")
        if "content" not in parameters:
            raise HandlerError("Missing required parameter: content")
        path = parameters["path"]
        overwrite = parameters.get("overwrite", True)
        if not overwrite and await self.workspace.exists(path):
            raise HandlerError(f"File already exists: {path}")
        await self.workspace.write_file(path, str(parameters["content"]))
        return {"success": True, "path": path}


class ReadFileHandler(ToolHandler):
    def __init__(self, workspace: WorkspaceEngine):
        self.workspace = workspace

    async def invoke(self, parameters: Dict[str, Any]) -> Any:
        _require(parameters, "path")
        return {"content": await self.workspace.read_file(parameters["path"])}


class DeleteFileHandler(ToolHandler):
    def __init__(self, workspace: WorkspaceEngine):
        self.workspace = workspace

    async def invoke(self, parameters: Dict[str, Any]) -> Any:
        _require(parameters, "path")
        deleted = await self.workspace.delete(parameters["path"])
        return {"success": deleted, "path": parameters["path"]}


class ListDirectoryHandler(ToolHandler):
    def __init__(self, workspace: WorkspaceEngine):
        self.workspace = workspace

    async def invoke(self, parameters: Dict[str, Any]) -> Any:
        path = parameters.get("path") or ""
        nodes = await self.workspace.list_directory(path, recursive=bool(parameters.get("recursive", False)))
        return {"files": _flatten(nodes)}


def _flatten(nodes: List[FileNode]) -> List[str]:
    paths = []
    for node in nodes:
        paths.append(node.path + ("/" if node.type == "directory" else ""))
        if node.children:
            paths.extend(_flatten(node.children))
    return paths


class BrowserNavigateHandler(ToolHandler):
    def __init__(self, bridge: AutonomousBridge):
        self.bridge = bridge

    async def invoke(self, parameters: Dict[str, Any]) -> Any:
        _require(parameters, "url")
        url = await self.bridge.navigate(parameters["url"])
        await self.bridge.wait_for_navigation()
        return {"success": True, "url": url}


class BrowserClickHandler(ToolHandler):
    def __init__(self, bridge: AutonomousBridge):
        self.bridge = bridge

    async def invoke(self, parameters: Dict[str, Any]) -> Any:
        _require(parameters, "selector")
        return await self.bridge.click_element(parameters["selector"])


class BrowserScrapeHandler(ToolHandler):
    def __init__(self, bridge: AutonomousBridge):
        self.bridge = bridge

    async def invoke(self, parameters: Dict[str, Any]) -> Any:
        _require(parameters, "url")
        result = await self.bridge.scrape_page(
            url=parameters["url"],
            selector=parameters.get("selector"),
            extract_links=bool(parameters.get("extractLinks", False)),
        )
        return result.to_dict()


class WebSearchHandler(ToolHandler):
    """DuckDuckGo text search; the blocking client runs in a worker thread."""

    def __init__(self, max_results: int = 10):
        self.max_results = max_results

    async def invoke(self, parameters: Dict[str, Any]) -> Any:
        _require(parameters, "query")
        limit = int(parameters.get("numResults") or self.max_results)
        results = await asyncio.to_thread(self._search, parameters["query"], limit)
        return {"results": results}

    @staticmethod
    def _search(query: str, limit: int) -> List[Dict[str, str]]:
        results = []
        with DDGS() as client:
            for item in client.text(query, safesearch="moderate", max_results=limit):
                results.append({
                    "title": item.get("title") or "",
                    "url": item.get("href") or "",
                    "snippet": item.get("body") or "",
                })
        return results


class EditCodeHandler(ToolHandler):
    def __init__(self, workspace: WorkspaceEngine, patcher: PatchDiffEngine):
        self.workspace = workspace
        self.patcher = patcher

    async def invoke(self, parameters: Dict[str, Any]) -> Any:
        _require(parameters, "path", "operation")
        path = parameters["path"]
        operation = PatchOperation(
            op=parameters["operation"],
            value=parameters.get("newValue"),
            old_value=parameters.get("oldValue"),
            anchor=parameters.get("anchor"),
        )
        if operation.op in ("replace", "delete") and not operation.old_value:
            raise PatchError(f"{operation.op} requires oldValue")
        if operation.op in ("replace", "insert") and operation.value is None:
            raise PatchError(f"{operation.op} requires newValue")

        content = await self.workspace.read_file(path)
        if not self.patcher.validate_patch(content, operation):
            raise PatchError(f"Line not found in {path}: {operation.old_value}")

        patched = self.patcher.apply_patch(content, operation)
        await self.workspace.write_file(path, patched)
        return {
            "success": True,
            "path": path,
            "operation": operation.op,
            "diff": self.patcher.generate_unified_diff(content, patched, path, path),
        }


class GitCloneHandler(ToolHandler):
    def __init__(self, runner: CommandRunner, workspace: WorkspaceEngine):
        self.runner = runner
        self.workspace = workspace

    async def invoke(self, parameters: Dict[str, Any]) -> Any:
        _require(parameters, "url", "path")
        destination = self.workspace.resolve_path(parameters["path"])
        result = await self.runner.run(["git", "clone", "--", parameters["url"], str(destination)])
        if result.exit_code != 0:
            raise HandlerError(f"git clone failed: {result.output.strip()}")
        return {"success": True, "path": parameters["path"]}


class GitCommitHandler(ToolHandler):
    def __init__(self, runner: CommandRunner):
        self.runner = runner

    async def invoke(self, parameters: Dict[str, Any]) -> Any:
        _require(parameters, "message")
        commit = await self.runner.run(["git", "commit", "-am", parameters["message"]])
        if commit.exit_code != 0:
            raise HandlerError(f"git commit failed: {commit.output.strip()}")
        head = await self.runner.run(["git", "rev-parse", "HEAD"])
        return {"success": True, "hash": head.output.strip()}


# Schemas

def _param(name: str, description: str, type: ParameterType = ParameterType.STRING, **kwargs) -> ToolParameter:
    return ToolParameter(name=name, type=type, description=description, **kwargs)


DEFAULT_SCHEMAS: Dict[str, ToolSchema] = {schema.name: schema for schema in [
    ToolSchema("execute_command", "Execute a shell command", (
        _param("command", "The command to execute", required=True),
        _param("workingDir", "Working directory for the command"),
    ), returns="Command output and exit code"),
    ToolSchema("write_file", "Write content to a file", (
        _param("path", "File path", required=True),
        _param("content", "File content", required=True),
        _param("overwrite", "Overwrite existing file", ParameterType.BOOLEAN, default=True),
    )),
    ToolSchema("read_file", "Read content from a file", (
        _param("path", "File path", required=True),
    )),
    ToolSchema("delete_file", "Delete a file", (
        _param("path", "File path", required=True),
    )),
    ToolSchema("list_directory", "List contents of a directory", (
        _param("path", "Directory path", required=True),
        _param("recursive", "List recursively", ParameterType.BOOLEAN, default=False),
    )),
    ToolSchema("browser_navigate", "Navigate browser to a URL", (
        _param("url", "URL to navigate to", required=True),
    )),
    ToolSchema("browser_click", "Click an element on the page", (
        _param("selector", "CSS selector for the element", required=True),
    )),
    ToolSchema("browser_scrape", "Scrape content from a webpage", (
        _param("url", "URL to scrape", required=True),
        _param("selector", "CSS selector to scrape (optional)"),
        _param("extractLinks", "Include page links", ParameterType.BOOLEAN, default=False),
    )),
    ToolSchema("web_search", "Search the web", (
        _param("query", "Search query", required=True),
        _param("numResults", "Number of results", ParameterType.NUMBER, default=10),
    )),
    ToolSchema("edit_code", "Edit code using surgical patch operations", (
        _param("path", "File path", required=True),
        _param("operation", "Operation type: replace, insert, delete",
               required=True, enum=PATCH_OPERATIONS),
        _param("oldValue", "Old line to replace/delete"),
        _param("newValue", "New line to insert"),
        _param("anchor", "Insert after the first line containing this text"),
    )),
    ToolSchema("git_clone", "Clone a git repository", (
        _param("url", "Repository URL", required=True),
        _param("path", "Destination path", required=True),
    )),
    ToolSchema("git_commit", "Commit changes", (
        _param("message", "Commit message", required=True),
    )),
]}


def create_default_tools(
    workspace: WorkspaceEngine,
    patcher: Optional[PatchDiffEngine] = None,
    bridge: Optional[AutonomousBridge] = None,
    runner: Optional[CommandRunner] = None,
    strict: bool = False,
    search_results: int = 10
) -> ToolRegistry:
    """Create registry with the default tool set bound to real handlers."""
    patcher = patcher or PatchDiffEngine()
    bridge = bridge or AutonomousBridge()
    runner = runner or CommandRunner(cwd=str(workspace.root))

    handlers: Dict[str, ToolHandler] = {
        "execute_command": ExecuteCommandHandler(runner, workspace),
        "write_file": WriteFileHandler(workspace),
        "read_file": ReadFileHandler(workspace),
        "delete_file": DeleteFileHandler(workspace),
        "list_directory": ListDirectoryHandler(workspace),
        "browser_navigate": BrowserNavigateHandler(bridge),
        "browser_click": BrowserClickHandler(bridge),
        "browser_scrape": BrowserScrapeHandler(bridge),
        "web_search": WebSearchHandler(max_results=search_results),
        "edit_code": EditCodeHandler(workspace, patcher),
        "git_clone": GitCloneHandler(runner, workspace),
        "git_commit": GitCommitHandler(runner),
    }

    registry = ToolRegistry(strict=strict)
    for name, schema in DEFAULT_SCHEMAS.items():
        registry.register(schema, handlers[name])

    logger.info(f"Loaded {len(registry)} default tools")
    return registry
