"""Table rendering: Notion ``table`` rows to a markdown pipe table.

Rows are emitted in source order.  A separator row of ``---`` cells is
synthesized between the first and the second physical row, so a table with
one header row and N data rows renders as exactly N + 2 lines::

    | Name | Qty |
    | --- | --- |
    | Apple | 3 |
"""

from __future__ import annotations

from collections.abc import Sequence

from notionsite.models import Block, BlockType

from .rich_text import render_rich_text


def _format_row(cells: Sequence[str]) -> str:
    return "| " + " | ".join(cells) + " |"


def _escape_cell(text: str) -> str:
    # A literal pipe would split the cell; newlines would end the row.
    return text.replace("|", "\\|").replace("\n", "<br>")


def render_row(row: Block, width: int = 0) -> str:
    """Render one ``table_row`` block, padded with empty cells to *width*."""
    cells = [_escape_cell(render_rich_text(cell)) for cell in row.table_cells]
    cells.extend("" for _ in range(width - len(cells)))
    return _format_row(cells)


def render_table(rows: Sequence[Block], width: int = 0) -> str:
    """Render table rows as markdown.

    Parameters
    ----------
    rows:
        The table's children.  Anything that is not a ``table_row`` is
        ignored.
    width:
        The table's declared column count (``table_width``).  Rows with
        fewer cells are padded.

    Returns
    -------
    str
        One line per row plus the separator line, newline-terminated, or
        ``""`` for a table without rows.
    """
    table_rows = [r for r in rows if r.type is BlockType.TABLE_ROW]
    if not table_rows:
        return ""

    columns = max([width] + [len(r.data.get("cells", [])) for r in table_rows])
    lines: list[str] = []
    for i, row in enumerate(table_rows):
        if i == 1:
            lines.append(_format_row(["---"] * columns))
        lines.append(render_row(row, columns))
    return "\n".join(lines) + "\n"
