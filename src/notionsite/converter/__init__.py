"""Notion block tree to Hugo markdown conversion.

Public API:

- :class:`RenderingEngine` — block tree + header record → document.
- :class:`TemplateRegistry` — per-block-type output templates.
- :class:`Enricher` — bookmark, video, embed, file and callout side channels.
- :func:`render_rich_text` — styled spans → inline markdown.
- :func:`render_table` — table rows → markdown pipe table.
- :func:`gallery_action` — gallery-run classification of an image.
"""

from notionsite.converter.engine import RenderingEngine, gallery_action
from notionsite.converter.enrich import Enricher
from notionsite.converter.rich_text import render_rich_text
from notionsite.converter.tables import render_table
from notionsite.converter.templates import TemplateRegistry, to_template_name

__all__ = [
    "Enricher",
    "RenderingEngine",
    "TemplateRegistry",
    "gallery_action",
    "render_rich_text",
    "render_table",
    "to_template_name",
]
