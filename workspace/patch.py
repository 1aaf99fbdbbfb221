"""
Patch/Diff Engine
-----------------
Line-oriented edits and diffs for code files.

Replace and delete match whole lines; insert goes after the first line
containing the anchor, or at the end of the content.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union
import difflib
import re

from core.errors import PatchError


PATCH_OPERATIONS = ("replace", "insert", "delete")


@dataclass
class PatchOperation:
    op: str
    value: Optional[str] = None
    old_value: Optional[str] = None
    anchor: Optional[str] = None

    def __post_init__(self):
        if self.op not in PATCH_OPERATIONS:
            raise PatchError(f"Unknown patch operation: {self.op}")


@dataclass
class DiffChange:
    type: str  # "added" | "removed" | "unchanged"
    value: str
    line_number: Optional[int] = None


@dataclass
class DiffResult:
    original: str
    modified: str
    changes: List[DiffChange] = field(default_factory=list)
    patch: str = ""


@dataclass
class SurgicalEdit:
    search: Union[str, re.Pattern]
    replace: str
    global_: bool = False
    case_insensitive: bool = False


class PatchDiffEngine:
    """Surgical edits and diffs over text content."""

    def compute_diff(self, original: str, modified: str) -> DiffResult:
        """Line diff; unchanged lines carry their line number in `modified`."""
        old_lines = original.splitlines()
        new_lines = modified.splitlines()
        matcher = difflib.SequenceMatcher(a=old_lines, b=new_lines, autojunk=False)

        changes: List[DiffChange] = []
        patch_lines: List[str] = []
        for tag, i1, i2, j1, j2 in matcher.get_opcodes():
            if tag == "equal":
                for offset, line in enumerate(old_lines[i1:i2]):
                    changes.append(DiffChange("unchanged", line, line_number=j1 + offset + 1))
                    patch_lines.append(f" {line}")
                continue
            for line in old_lines[i1:i2]:
                changes.append(DiffChange("removed", line))
                patch_lines.append(f"-{line}")
            for line in new_lines[j1:j2]:
                changes.append(DiffChange("added", line))
                patch_lines.append(f"+{line}")

        return DiffResult(
            original=original,
            modified=modified,
            changes=changes,
            patch="\n".join(patch_lines),
        )

    def apply_patch(self, content: str, operation: PatchOperation) -> str:
        """Apply one operation; a non-matching replace/delete is a no-op."""
        lines = content.split("\n")

        if operation.op == "replace":
            if operation.old_value and operation.value is not None:
                if operation.old_value in lines:
                    lines[lines.index(operation.old_value)] = operation.value

        elif operation.op == "insert":
            if operation.value is not None:
                lines.insert(self._find_insert_line(lines, operation.anchor), operation.value)

        elif operation.op == "delete":
            if operation.old_value and operation.old_value in lines:
                del lines[lines.index(operation.old_value)]

        return "\n".join(lines)

    def apply_patches(self, content: str, operations: Sequence[PatchOperation]) -> str:
        for operation in operations:
            content = self.apply_patch(content, operation)
        return content

    def generate_unified_diff(
        self,
        original: str,
        modified: str,
        original_file: str = "original",
        modified_file: str = "modified",
        context: int = 3
    ) -> str:
        return "".join(difflib.unified_diff(
            original.splitlines(keepends=True),
            modified.splitlines(keepends=True),
            fromfile=original_file,
            tofile=modified_file,
            n=context,
        ))

    def parse_unified_diff(self, diff_text: str) -> List[PatchOperation]:
        """Turn +/- lines into insert/delete operations (headers skipped)."""
        operations = []
        for line in diff_text.splitlines():
            if line.startswith("+") and not line.startswith("+++"):
                operations.append(PatchOperation(op="insert", value=line[1:]))
            elif line.startswith("-") and not line.startswith("---"):
                operations.append(PatchOperation(op="delete", old_value=line[1:]))
        return operations

    def surgical_edit(
        self,
        content: str,
        search: Union[str, re.Pattern],
        replacement: str,
        global_: bool = False,
        case_insensitive: bool = False
    ) -> str:
        """Replace the first (or every) match of a literal string or pattern."""
        if isinstance(search, str):
            flags = re.IGNORECASE if case_insensitive else 0
            pattern = re.compile(re.escape(search), flags)
        else:
            pattern = search
        return pattern.sub(lambda _: replacement, content, count=0 if global_ else 1)

    def multi_step_surgical_edit(self, content: str, edits: Sequence[SurgicalEdit]) -> str:
        for edit in edits:
            content = self.surgical_edit(
                content, edit.search, edit.replace,
                global_=edit.global_, case_insensitive=edit.case_insensitive
            )
        return content

    def validate_patch(self, content: str, operation: PatchOperation) -> bool:
        """True when a replace/delete target line exists in the content."""
        if operation.op in ("replace", "delete") and operation.old_value:
            return operation.old_value in content.split("\n")
        return True

    def create_safe_patch(
        self,
        content: str,
        operation: PatchOperation,
        fallback: Optional[str] = None
    ) -> str:
        if self.validate_patch(content, operation):
            return self.apply_patch(content, operation)
        return fallback if fallback is not None else content

    def preview_patch(self, content: str, operation: PatchOperation) -> DiffResult:
        return self.compute_diff(content, self.apply_patch(content, operation))

    def get_diff_statistics(self, diff_result: DiffResult) -> Dict[str, int]:
        stats = {"additions": 0, "deletions": 0, "unchanged": 0}
        for change in diff_result.changes:
            if change.type == "added":
                stats["additions"] += 1
            elif change.type == "removed":
                stats["deletions"] += 1
            else:
                stats["unchanged"] += 1
        stats["total"] = stats["additions"] + stats["deletions"] + stats["unchanged"]
        return stats

    @staticmethod
    def _find_insert_line(lines: List[str], anchor: Optional[str]) -> int:
        if anchor:
            for i, line in enumerate(lines):
                if anchor in line:
                    return i + 1
        # Keep a trailing newline at the end of the content
        if lines and lines[-1] == "":
            return len(lines) - 1
        return len(lines)
