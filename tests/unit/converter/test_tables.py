"""Tests for markdown table rendering."""

from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from notionsite.converter.tables import render_row, render_table
from notionsite.models import Block, BlockType


def cell(text: str) -> list[dict]:
    return [{"type": "text", "text": {"content": text}, "plain_text": text}]


def row(*texts: str) -> Block:
    return Block(id="row", type=BlockType.TABLE_ROW, data={"cells": [cell(t) for t in texts]})


class TestRenderTable:
    def test_header_and_rows(self):
        rendered = render_table([row("Name", "Qty"), row("Apple", "3"), row("Pear", "5")])
        assert rendered == (
            "| Name | Qty |\n"
            "| --- | --- |\n"
            "| Apple | 3 |\n"
            "| Pear | 5 |\n"
        )

    def test_single_row_has_no_separator(self):
        assert render_table([row("only")]) == "| only |\n"

    def test_empty_table(self):
        assert render_table([]) == ""

    def test_short_rows_padded_to_width(self):
        rendered = render_table([row("a", "b", "c"), row("x")], width=3)
        assert rendered.splitlines()[2] == "| x |  |  |"

    def test_separator_matches_widest_row(self):
        rendered = render_table([row("a"), row("x", "y")])
        assert rendered.splitlines()[1] == "| --- | --- |"

    def test_pipe_in_cell_escaped(self):
        assert render_row(row("a|b")) == "| a\\|b |"

    def test_non_row_children_ignored(self):
        para = Block(id="p", type=BlockType.PARAGRAPH)
        assert render_table([row("h"), para, row("d")]).count("\n") == 3

    def test_annotated_cell(self):
        bold = [{
            "type": "text",
            "text": {"content": "hot"},
            "annotations": {"bold": True},
        }]
        header = Block(id="r", type=BlockType.TABLE_ROW, data={"cells": [bold]})
        assert render_table([header]) == "| **hot** |\n"


class TestLineCount:
    @given(st.integers(min_value=0, max_value=30))
    def test_header_plus_n_rows_renders_n_plus_two_lines(self, n):
        rows = [row("h1", "h2")] + [row(str(i), "v") for i in range(n)]
        lines = render_table(rows, width=2).splitlines()
        expected = n + 2 if n else 1
        assert len(lines) == expected
