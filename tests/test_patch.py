"""
Patch/Diff Engine Tests
-----------------------
Line-based patch operations, diffs and surgical edits.
"""

import pytest
from pathlib import Path
import re
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.errors import PatchError
from workspace.patch import PatchDiffEngine, PatchOperation, SurgicalEdit


SOURCE = "def main():\n    x = 1\n    return x"


@pytest.fixture
def engine():
    return PatchDiffEngine()


class TestApplyPatch:
    def test_replace_whole_line(self, engine):
        op = PatchOperation(op="replace", old_value="    x = 1", value="    x = 2")

        assert engine.apply_patch(SOURCE, op) == "def main():\n    x = 2\n    return x"

    def test_replace_requires_exact_line(self, engine):
        op = PatchOperation(op="replace", old_value="x = 1", value="x = 2")

        assert engine.apply_patch(SOURCE, op) == SOURCE

    def test_replace_first_occurrence_only(self, engine):
        op = PatchOperation(op="replace", old_value="a", value="b")

        assert engine.apply_patch("a\na", op) == "b\na"

    def test_insert_after_anchor(self, engine):
        op = PatchOperation(op="insert", value="    y = 2", anchor="x = 1")

        assert engine.apply_patch(SOURCE, op) == "def main():\n    x = 1\n    y = 2\n    return x"

    def test_insert_without_anchor_appends(self, engine):
        op = PatchOperation(op="insert", value="main()")

        assert engine.apply_patch(SOURCE, op).endswith("return x\nmain()")

    def test_insert_missing_anchor_appends(self, engine):
        op = PatchOperation(op="insert", value="end", anchor="nowhere")

        assert engine.apply_patch("a", op) == "a\nend"

    def test_append_keeps_trailing_newline(self, engine):
        op = PatchOperation(op="insert", value="c")

        assert engine.apply_patch("a\nb\n", op) == "a\nb\nc\n"

    def test_append_to_empty_content(self, engine):
        assert engine.apply_patch("", PatchOperation(op="insert", value="c")) == "c\n"

    def test_delete_line(self, engine):
        op = PatchOperation(op="delete", old_value="    x = 1")

        assert engine.apply_patch(SOURCE, op) == "def main():\n    return x"

    def test_unknown_operation_rejected(self):
        with pytest.raises(PatchError):
            PatchOperation(op="move")

    def test_apply_patches_sequentially(self, engine):
        result = engine.apply_patches("a\nb", [
            PatchOperation(op="replace", old_value="a", value="A"),
            PatchOperation(op="insert", value="c", anchor="A"),
            PatchOperation(op="delete", old_value="b"),
        ])

        assert result == "A\nc"


class TestDiffs:
    def test_compute_diff_changes(self, engine):
        diff = engine.compute_diff("a\nb\nc", "a\nB\nc")

        assert [(c.type, c.value) for c in diff.changes] == [
            ("unchanged", "a"), ("removed", "b"), ("added", "B"), ("unchanged", "c"),
        ]
        assert diff.changes[0].line_number == 1
        assert diff.changes[-1].line_number == 3
        assert diff.patch == " a\n-b\n+B\n c"

    def test_statistics(self, engine):
        stats = engine.get_diff_statistics(engine.compute_diff("a\nb", "a\nc\nd"))

        assert stats == {"additions": 2, "deletions": 1, "unchanged": 1, "total": 4}

    def test_unified_diff_headers(self, engine):
        text = engine.generate_unified_diff("a\n", "b\n", "x.py", "x.py")

        assert text.startswith("--- x.py\n+++ x.py\n")
        assert "-a\n" in text and "+b\n" in text

    def test_parse_unified_diff(self, engine):
        ops = engine.parse_unified_diff("--- a\n+++ b\n@@ -1 +1 @@\n-old\n+new\n")

        assert [(o.op, o.old_value, o.value) for o in ops] == [
            ("delete", "old", None), ("insert", None, "new"),
        ]

    def test_identical_content_has_no_changes(self, engine):
        preview = engine.preview_patch("a", PatchOperation(op="delete", old_value="zzz"))

        assert engine.get_diff_statistics(preview)["additions"] == 0
        assert engine.get_diff_statistics(preview)["deletions"] == 0


class TestSafety:
    def test_validate_patch(self, engine):
        assert engine.validate_patch(SOURCE, PatchOperation(op="delete", old_value="    x = 1"))
        assert not engine.validate_patch(SOURCE, PatchOperation(op="delete", old_value="y"))
        assert engine.validate_patch(SOURCE, PatchOperation(op="insert", value="z"))

    def test_safe_patch_falls_back(self, engine):
        op = PatchOperation(op="replace", old_value="missing", value="x")

        assert engine.create_safe_patch("a", op) == "a"
        assert engine.create_safe_patch("a", op, fallback="fallback") == "fallback"


class TestSurgicalEdit:
    def test_first_occurrence(self, engine):
        assert engine.surgical_edit("foo foo", "foo", "bar") == "bar foo"

    def test_global(self, engine):
        assert engine.surgical_edit("foo foo", "foo", "bar", global_=True) == "bar bar"

    def test_case_insensitive(self, engine):
        assert engine.surgical_edit("FOO", "foo", "bar", case_insensitive=True) == "bar"

    def test_literal_special_characters(self, engine):
        assert engine.surgical_edit("a.b axb", "a.b", "c") == "c axb"

    def test_replacement_not_expanded(self, engine):
        assert engine.surgical_edit("x", "x", r"\1") == r"\1"

    def test_pattern_search(self, engine):
        assert engine.surgical_edit("v1 v22", re.compile(r"v\d+"), "v", global_=True) == "v v"

    def test_multi_step(self, engine):
        result = engine.multi_step_surgical_edit("let a = 1", [
            SurgicalEdit(search="let", replace="const"),
            SurgicalEdit(search="1", replace="2"),
        ])

        assert result == "const a = 2"
