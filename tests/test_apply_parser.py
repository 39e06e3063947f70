"""Tests for the epic document parser."""

from __future__ import annotations

from runsafe.apply.parser import parse_epic
from runsafe.schemas.epic import EditKind

_EPIC = """\
# Rename greeting

## Summary
Rename the greeting and drop the debug line.

File Edits
src/app.py
replace
print("hello")
with
print("hi")

src/app.py
delete
DEBUG = True

README.md
insert-after
# App
with
A tiny app.
"""


class TestParseEpic:
    def test_summary_extracted(self):
        epic = parse_epic(_EPIC)
        assert epic.summary == "Rename the greeting and drop the debug line."

    def test_edits_in_document_order(self):
        epic = parse_epic(_EPIC)
        assert [(e.file_path, e.kind) for e in epic.edits] == [
            ("src/app.py", "replace"),
            ("src/app.py", "delete"),
            ("README.md", "insert-after"),
        ]

    def test_replace_target_and_replacement(self):
        edit = parse_epic(_EPIC).edits[0]
        assert edit.target == ['print("hello")']
        assert edit.replacement == ['print("hi")']

    def test_delete_has_no_replacement(self):
        edit = parse_epic(_EPIC).edits[1]
        assert edit.kind == EditKind.DELETE
        assert edit.target == ["DEBUG = True"]
        assert edit.replacement is None

    def test_multiline_blocks(self):
        text = (
            "Summary\nmulti\n\nFile Edits\n"
            "a.txt\nreplace\none\ntwo\nwith\nthree\nfour\n"
        )
        edit = parse_epic(text).edits[0]
        assert edit.target == ["one", "two"]
        assert edit.replacement == ["three", "four"]

    def test_stray_labels_ignored(self):
        text = "Summary\ns\n\nFile Edits\nyaml\nCopy\nEdit\na.txt\nreplace\nx\nwith\ny\n"
        epic = parse_epic(text)
        assert len(epic.edits) == 1
        assert epic.edits[0].file_path == "a.txt"

    def test_missing_sections(self):
        epic = parse_epic("just some text")
        assert epic.summary == ""
        assert epic.edits == []

    def test_empty_document(self):
        epic = parse_epic("")
        assert epic.summary == ""
        assert epic.edits == []

    def test_truncated_record_is_skipped(self):
        epic = parse_epic("Summary\ns\n\nFile Edits\na.txt\n")
        assert epic.edits == []

    def test_unknown_kind_halts_edit_list(self):
        text = (
            "Summary\ns\n\nFile Edits\n"
            "a.txt\nreplace\nx\nwith\ny\n\n"
            "b.txt\nrewrite\nfoo\nwith\nbar\n\n"
            "c.txt\nreplace\np\nwith\nq\n"
        )
        epic = parse_epic(text)
        assert [e.file_path for e in epic.edits] == ["a.txt", "b.txt"]
        assert epic.edits[-1].kind == "rewrite"

    def test_crlf_line_endings(self):
        text = "Summary\r\nwin\r\n\r\nFile Edits\r\na.txt\r\nreplace\r\nx\r\nwith\r\ny\r\n"
        epic = parse_epic(text)
        assert epic.summary == "win"
        assert epic.edits[0].target == ["x"]
        assert epic.edits[0].replacement == ["y"]

    def test_summary_stops_at_heading(self):
        epic = parse_epic("Summary\nfirst line\n## Notes\nnot summary\n")
        assert epic.summary == "first line"
