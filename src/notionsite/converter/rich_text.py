"""Rich text formatting: Notion spans to inline markdown.

Each span converts independently, so formatting a list of spans is the
concatenation of formatting each span on its own.

Per text span:

* a span whose content is blank and carries no link renders as ``""``;
* inline code wraps the content in backticks and ignores every other
  annotation, color included;
* otherwise bold+italic ``***x***``, else bold ``**x**``, else italic
  ``*x*``; then underline ``__x__`` or, failing that, strikethrough
  ``~~x~~`` outermost;
* a non-default color wraps the result in a ``<span style=...>`` using
  :data:`COLOR_MAP`;
* a linked span is formatted as ``[content](url)`` with the same wrapping.

Leading and trailing whitespace stays outside the markers so that
``**bold **`` never reaches the output.  Content is not escaped: Notion
authors write markdown-significant characters on purpose.
"""

from __future__ import annotations

from collections.abc import Iterable

from notionsite.models import Annotations, RichText

COLOR_MAP: dict[str, str] = {
    "gray": "rgba(120, 119, 116, 1)",
    "brown": "rgba(159, 107, 83, 1)",
    "orange": "rgba(217, 115, 13, 1)",
    "yellow": "rgba(203, 145, 47, 1)",
    "green": "rgba(68, 131, 97, 1)",
    "blue": "rgba(51, 126, 169, 1)",
    "purple": "rgba(144, 101, 176, 1)",
    "pink": "rgba(193, 76, 138, 1)",
    "red": "rgba(212, 76, 71, 1)",
    "gray_background": "rgba(241, 241, 239, 1)",
    "brown_background": "rgba(244, 238, 238, 1)",
    "orange_background": "rgba(251, 236, 221, 1)",
    "yellow_background": "rgba(251, 243, 219, 1)",
    "green_background": "rgba(237, 243, 236, 1)",
    "blue_background": "rgba(231, 243, 248, 1)",
    "purple_background": "rgba(244, 240, 247, 0.8)",
    "pink_background": "rgba(249, 238, 243, 0.8)",
    "red_background": "rgba(253, 235, 236, 1)",
}
"""Notion's named colors as CSS values."""


def escape_url(url: str) -> str:
    """Percent-encode parentheses so the URL survives inside ``(...)``."""
    return url.replace("(", "%28").replace(")", "%29")


def colorize(text: str, color: str) -> str:
    """Wrap *text* in a styling span for a non-default Notion *color*.

    Unknown color names leave the text untouched.
    """
    css_value = COLOR_MAP.get(color)
    if color == "default" or css_value is None:
        return text
    css_key = "background-color" if color.endswith("_background") else "color"
    return f'<span style="{css_key}: {css_value};">{text}</span>'


def emphasize(text: str, annotations: Annotations) -> str:
    """Apply the annotation wrappers of one span to already-built *text*."""
    if annotations.code:
        return f"`{text}`"

    if annotations.bold and annotations.italic:
        text = f"***{text}***"
    elif annotations.bold:
        text = f"**{text}**"
    elif annotations.italic:
        text = f"*{text}*"

    if annotations.underline:
        text = f"__{text}__"
    elif annotations.strikethrough:
        text = f"~~{text}~~"

    return colorize(text, annotations.color)


def _split_outer_whitespace(text: str) -> tuple[str, str, str]:
    core = text.strip()
    if not core:
        return text, "", ""
    start = text.index(core)
    return text[:start], core, text[start + len(core):]


def render_span(span: RichText) -> str:
    """Render one span to inline markdown."""
    if span.type == "equation":
        return f"${span.expression}$"

    if span.type == "mention":
        if span.href:
            return f"[{span.content}]({escape_url(span.href)})"
        return span.content

    lead, core, trail = _split_outer_whitespace(span.content)

    if span.href:
        label = core or span.content
        link = f"[{label}]({escape_url(span.href)})"
        return f"{lead if core else ''}{emphasize(link, span.annotations)}{trail}"

    if not core:
        return ""
    return f"{lead}{emphasize(core, span.annotations)}{trail}"


def render_rich_text(spans: Iterable[RichText]) -> str:
    """Render a sequence of spans by concatenating their conversions.

    Parameters
    ----------
    spans:
        Parsed spans, e.g. :attr:`Block.rich_text`.

    Returns
    -------
    str
        Inline markdown.
    """
    return "".join(render_span(span) for span in spans)
