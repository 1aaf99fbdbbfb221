# Workspace module - Filesystem helpers and patch/diff engine
# All handler file access goes through WorkspaceEngine (root-confined)

from .engine import WorkspaceEngine, FileNode, FileSystemOperation, WorkspaceStats
from .patch import PatchDiffEngine, PatchOperation, DiffResult, DiffChange, SurgicalEdit

__all__ = [
    "WorkspaceEngine",
    "FileNode",
    "FileSystemOperation",
    "WorkspaceStats",
    "PatchDiffEngine",
    "PatchOperation",
    "DiffResult",
    "DiffChange",
    "SurgicalEdit",
]
