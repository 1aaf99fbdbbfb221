"""
Workspace Engine
----------------
Async filesystem helpers confined to a workspace root.

All paths are relative to the root; anything resolving outside it is
rejected. Blocking I/O runs in a worker thread so handlers suspend while
the filesystem works.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
import asyncio
import logging
import re
import shutil

from core.errors import WorkspaceError


@dataclass
class FileNode:
    """A file or directory inside the workspace."""
    path: str
    name: str
    type: str  # "file" | "directory"
    children: Optional[List["FileNode"]] = None
    content: Optional[str] = None
    last_modified: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"path": self.path, "name": self.name, "type": self.type}
        if self.children is not None:
            data["children"] = [child.to_dict() for child in self.children]
        if self.content is not None:
            data["content"] = self.content
        return data


@dataclass
class FileSystemOperation:
    """One step of a batch: read, write, delete, create, move or copy."""
    type: str
    path: str
    content: Optional[str] = None
    destination: Optional[str] = None


@dataclass
class WorkspaceStats:
    total_files: int = 0
    total_directories: int = 0
    total_size: int = 0


class WorkspaceEngine:
    """
    Physical filesystem access for tool handlers.

    Owns a cache of recently read/written nodes; it is only touched from
    the event loop thread.
    """

    def __init__(self, workspace_path: str):
        self.root = Path(workspace_path).expanduser().resolve()
        self._cache: Dict[str, FileNode] = {}
        self._logger = logging.getLogger("superagent.workspace")

    async def initialize_workspace(self) -> None:
        """Create the workspace directory if missing."""
        await asyncio.to_thread(self.root.mkdir, parents=True, exist_ok=True)
        self._logger.info(f"Workspace ready: {self.root}")

    def resolve_path(self, path: str) -> Path:
        """Resolve `path` inside the root, rejecting escapes."""
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.root / candidate
        resolved = candidate.resolve()
        if resolved != self.root and self.root not in resolved.parents:
            raise WorkspaceError(f"Path is outside the workspace: {path}")
        return resolved

    def relative(self, full_path: Path) -> str:
        rel = full_path.relative_to(self.root).as_posix()
        return "" if rel == "." else rel

    @property
    def cache(self) -> Dict[str, FileNode]:
        return dict(self._cache)

    def clear_cache(self) -> None:
        self._cache.clear()

    def _remember(self, path: str, node_type: str, content: Optional[str] = None) -> None:
        self._cache[path] = FileNode(
            path=path,
            name=Path(path).name or path,
            type=node_type,
            content=content,
            last_modified=datetime.now(timezone.utc).timestamp(),
        )

    async def read_file(self, path: str) -> str:
        full_path = self.resolve_path(path)
        try:
            content = await asyncio.to_thread(full_path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise WorkspaceError(f"Failed to read file {path}: {e}") from e
        self._remember(path, "file", content)
        return content

    async def write_file(self, path: str, content: str) -> None:
        full_path = self.resolve_path(path)

        def _write() -> None:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            full_path.write_text(content, encoding="utf-8")

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            raise WorkspaceError(f"Failed to write file {path}: {e}") from e
        self._remember(path, "file", content)

    async def delete(self, path: str) -> bool:
        """Delete a file or directory tree. Returns False if nothing existed."""
        full_path = self.resolve_path(path)
        if full_path == self.root:
            raise WorkspaceError("Refusing to delete the workspace root")

        def _delete() -> bool:
            if full_path.is_dir():
                shutil.rmtree(full_path)
                return True
            if full_path.exists():
                full_path.unlink()
                return True
            return False

        try:
            deleted = await asyncio.to_thread(_delete)
        except OSError as e:
            raise WorkspaceError(f"Failed to delete {path}: {e}") from e
        self._cache.pop(path, None)
        return deleted

    async def create_directory(self, path: str) -> None:
        full_path = self.resolve_path(path)
        try:
            await asyncio.to_thread(full_path.mkdir, parents=True, exist_ok=True)
        except OSError as e:
            raise WorkspaceError(f"Failed to create directory {path}: {e}") from e
        self._remember(path, "directory")

    async def move(self, old_path: str, new_path: str) -> None:
        source = self.resolve_path(old_path)
        target = self.resolve_path(new_path)
        try:
            await asyncio.to_thread(shutil.move, str(source), str(target))
        except OSError as e:
            raise WorkspaceError(f"Failed to move {old_path} to {new_path}: {e}") from e

        cached = self._cache.pop(old_path, None)
        if cached:
            cached.path = new_path
            cached.name = Path(new_path).name
            self._cache[new_path] = cached

    async def copy(self, source_path: str, dest_path: str) -> None:
        source = self.resolve_path(source_path)
        target = self.resolve_path(dest_path)

        def _copy() -> None:
            if source.is_dir():
                shutil.copytree(source, target)
            else:
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, target)

        try:
            await asyncio.to_thread(_copy)
        except OSError as e:
            raise WorkspaceError(f"Failed to copy {source_path} to {dest_path}: {e}") from e

        cached = self._cache.get(source_path)
        if cached:
            self._cache[dest_path] = FileNode(
                path=dest_path,
                name=Path(dest_path).name,
                type=cached.type,
                content=cached.content,
                last_modified=cached.last_modified,
            )

    async def list_directory(self, path: str = "", recursive: bool = False) -> List[FileNode]:
        """List entries sorted by name; directories get children when recursive."""
        full_path = self.resolve_path(path)

        def _list(directory: Path) -> List[FileNode]:
            nodes = []
            for item in sorted(directory.iterdir(), key=lambda p: p.name):
                node = FileNode(
                    path=self.relative(item),
                    name=item.name,
                    type="directory" if item.is_dir() else "file",
                )
                if recursive and node.type == "directory":
                    node.children = _list(item)
                nodes.append(node)
            return nodes

        try:
            return await asyncio.to_thread(_list, full_path)
        except OSError as e:
            raise WorkspaceError(f"Failed to list directory {path}: {e}") from e

    async def exists(self, path: str) -> bool:
        try:
            full_path = self.resolve_path(path)
        except WorkspaceError:
            return False
        return await asyncio.to_thread(full_path.exists)

    async def get_file_info(self, path: str) -> Dict[str, float]:
        full_path = self.resolve_path(path)
        try:
            stat = await asyncio.to_thread(full_path.stat)
        except OSError as e:
            raise WorkspaceError(f"File does not exist: {path}") from e
        return {"size": stat.st_size, "modified": stat.st_mtime}

    async def get_file_tree(self, root_path: str = "") -> FileNode:
        full_path = self.resolve_path(root_path)
        if not full_path.exists():
            raise WorkspaceError(f"Path does not exist: {root_path}")

        rel = self.relative(full_path)
        if full_path.is_dir():
            return FileNode(
                path=rel,
                name=full_path.name,
                type="directory",
                children=await self.list_directory(rel, recursive=True),
            )
        return FileNode(
            path=rel,
            name=full_path.name,
            type="file",
            content=await self.read_file(rel),
        )

    async def search_files(
        self,
        pattern: str,
        root_path: str = "",
        max_results: int = 100
    ) -> List[FileNode]:
        """Case-insensitive regex match on entry names, depth first."""
        regex = re.compile(pattern, re.IGNORECASE)
        results: List[FileNode] = []

        def _walk(nodes: List[FileNode]) -> None:
            for node in nodes:
                if len(results) >= max_results:
                    return
                if regex.search(node.name):
                    results.append(node)
                if node.children:
                    _walk(node.children)

        _walk(await self.list_directory(root_path, recursive=True))
        return results

    async def get_workspace_stats(self) -> WorkspaceStats:
        def _stats() -> WorkspaceStats:
            stats = WorkspaceStats()
            for item in self.root.rglob("*"):
                if item.is_dir():
                    stats.total_directories += 1
                elif item.is_file():
                    stats.total_files += 1
                    stats.total_size += item.stat().st_size
            return stats

        return await asyncio.to_thread(_stats)

    async def batch_operations(self, operations: List[FileSystemOperation]) -> None:
        """Apply operations in order; the first failure stops the batch."""
        for op in operations:
            if op.type == "read":
                await self.read_file(op.path)
            elif op.type == "write":
                await self.write_file(op.path, op.content or "")
            elif op.type == "delete":
                await self.delete(op.path)
            elif op.type == "create":
                await self.create_directory(op.path)
            elif op.type == "move" and op.destination:
                await self.move(op.path, op.destination)
            elif op.type == "copy" and op.destination:
                await self.copy(op.path, op.destination)
            else:
                raise WorkspaceError(f"Invalid batch operation: {op.type} {op.path}")

    async def export_workspace(self) -> Dict[str, str]:
        """Map of relative path to text content for every file."""
        files = await asyncio.to_thread(
            lambda: sorted(p for p in self.root.rglob("*") if p.is_file())
        )
        return {
            self.relative(item): await self.read_file(self.relative(item))
            for item in files
        }

    async def import_workspace(self, data: Dict[str, str]) -> None:
        for path, content in data.items():
            await self.write_file(path, content)
