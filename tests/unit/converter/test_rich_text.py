"""Tests for inline rich text formatting."""

from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from notionsite.converter.rich_text import (
    COLOR_MAP,
    colorize,
    escape_url,
    render_rich_text,
    render_span,
)
from notionsite.models import Annotations, RichText, parse_rich_text


def span(content: str, href: str | None = None, **annotations) -> RichText:
    return RichText(content=content, href=href, annotations=Annotations(**annotations))


# =========================================================================
# Emphasis
# =========================================================================

class TestEmphasis:
    def test_plain_text_unchanged(self):
        assert render_span(span("hello")) == "hello"

    def test_bold(self):
        assert render_span(span("x", bold=True)) == "**x**"

    def test_italic(self):
        assert render_span(span("x", italic=True)) == "*x*"

    def test_bold_italic(self):
        assert render_span(span("x", bold=True, italic=True)) == "***x***"

    def test_strikethrough(self):
        assert render_span(span("x", strikethrough=True)) == "~~x~~"

    def test_underline_is_outermost(self):
        assert render_span(span("x", bold=True, underline=True)) == "__**x**__"

    def test_underline_wins_over_strikethrough(self):
        assert render_span(span("x", underline=True, strikethrough=True)) == "__x__"

    def test_whitespace_moves_outside_markers(self):
        assert render_span(span(" bold ", bold=True)) == " **bold** "

    def test_blank_span_renders_empty(self):
        assert render_span(span("   ", bold=True)) == ""
        assert render_span(span("")) == ""


class TestInlineCode:
    def test_code_ignores_other_annotations(self):
        rendered = render_span(span("x", code=True, bold=True, italic=True, color="red"))
        assert rendered == "`x`"

    def test_code_with_underline(self):
        assert render_span(span("len()", code=True, underline=True)) == "`len()`"


# =========================================================================
# Color
# =========================================================================

class TestColor:
    def test_default_color_no_wrapping(self):
        assert colorize("x", "default") == "x"

    def test_foreground_color(self):
        assert colorize("x", "red") == f'<span style="color: {COLOR_MAP["red"]};">x</span>'

    def test_background_color(self):
        rendered = colorize("x", "blue_background")
        assert rendered.startswith('<span style="background-color: rgba(231, 243, 248, 1);">')

    def test_unknown_color_unchanged(self):
        assert colorize("x", "chartreuse") == "x"

    def test_color_wraps_emphasis(self):
        rendered = render_span(span("x", bold=True, color="gray"))
        assert rendered == '<span style="color: rgba(120, 119, 116, 1);">**x**</span>'


# =========================================================================
# Links, mentions and equations
# =========================================================================

class TestLinks:
    def test_link(self):
        assert render_span(span("docs", href="https://example.com")) == "[docs](https://example.com)"

    def test_emphasis_wraps_link(self):
        rendered = render_span(span("docs", href="https://example.com", bold=True))
        assert rendered == "**[docs](https://example.com)**"

    def test_parentheses_in_url_escaped(self):
        assert escape_url("https://en.wikipedia.org/wiki/Go_(game)") == (
            "https://en.wikipedia.org/wiki/Go_%28game%29"
        )

    def test_linked_whitespace_keeps_link(self):
        assert render_span(span(" ", href="https://example.com")) == "[ ](https://example.com)"


class TestMentionAndEquation:
    def test_mention_with_href(self):
        mention = RichText(type="mention", content="Alice", href="https://notion.so/u")
        assert render_span(mention) == "[Alice](https://notion.so/u)"

    def test_mention_without_href(self):
        assert render_span(RichText(type="mention", content="Alice")) == "Alice"

    def test_equation(self):
        assert render_span(RichText(type="equation", expression="E=mc^2")) == "$E=mc^2$"


class TestFromApi:
    def test_wire_segments(self):
        segments = [
            {
                "type": "text",
                "text": {"content": "Read ", "link": None},
                "annotations": {"bold": False, "color": "default"},
                "plain_text": "Read ",
            },
            {
                "type": "text",
                "text": {"content": "this", "link": {"url": "https://example.com"}},
                "annotations": {"italic": True, "color": "default"},
                "plain_text": "this",
                "href": "https://example.com",
            },
        ]
        assert render_rich_text(parse_rich_text(segments)) == "Read *[this](https://example.com)*"


# =========================================================================
# Properties
# =========================================================================

_annotations = st.builds(
    Annotations,
    bold=st.booleans(),
    italic=st.booleans(),
    strikethrough=st.booleans(),
    underline=st.booleans(),
    code=st.booleans(),
    color=st.sampled_from(["default", "red", "blue_background", "purple"]),
)

_spans = st.builds(
    RichText,
    type=st.just("text"),
    content=st.text(max_size=20),
    href=st.one_of(st.none(), st.just("https://example.com/a")),
    annotations=_annotations,
)


class TestProperties:
    @given(st.lists(_spans, max_size=5), st.lists(_spans, max_size=5))
    def test_formatting_is_associative_over_concatenation(self, left, right):
        assert render_rich_text(left + right) == render_rich_text(left) + render_rich_text(right)

    @given(st.text(alphabet=st.characters(blacklist_categories=("Zs", "Cc")), min_size=1),
           _annotations)
    def test_inline_code_always_wins(self, content, annotations):
        content = content.strip()
        if not content:
            return
        coded = Annotations(
            bold=annotations.bold,
            italic=annotations.italic,
            strikethrough=annotations.strikethrough,
            underline=annotations.underline,
            code=True,
            color=annotations.color,
        )
        assert render_span(RichText(content=content, annotations=coded)) == f"`{content}`"
