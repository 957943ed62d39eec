"""Per-block-type output templates.

A template is a callable taking a :class:`RenderContext` and returning the
text for one block (children excluded; the engine renders those).  Templates
are looked up by a snake-cased block-type name, see :func:`to_template_name`,
so ``BulletedListItem`` and ``bulleted_list_item`` resolve to the same entry.

Besides one entry per :class:`BlockType`, the registry carries a few
rendering modes selected by the engine instead of by type:

* ``setting`` -- raw content of a code block on a setting page;
* ``noop`` -- everything else on a setting page;
* ``mermaid`` -- code blocks in the ``mermaid`` language;
* ``gallery`` -- a consolidated run of images on a gallery page.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from notionsite.errors import NotionSiteTemplateError
from notionsite.models import (
    BookmarkInfo,
    CalloutInfo,
    EmbedInfo,
    FileInfo,
    GalleryInfo,
    RenderContext,
    VideoInfo,
)

from .rich_text import escape_url, render_rich_text
from .tables import render_table

Template = Callable[[RenderContext], str]

_UPPER = re.compile(r"(?<!^)(?<!_)([A-Z])")
_DIGITS = re.compile(r"(?<![0-9_])([0-9]+)")


def to_template_name(name: str) -> str:
    """Normalise a block-type name to its template name.

    >>> to_template_name("Heading1Block")
    'heading_1'
    >>> to_template_name("BulletedListItem")
    'bulleted_list_item'
    >>> to_template_name("heading_1")
    'heading_1'
    """
    if name == name.lower():
        return name
    if name.endswith("Block") and name != "Block":
        name = name[: -len("Block")]
    name = _UPPER.sub(r"_\1", name)
    name = _DIGITS.sub(r"_\1", name)
    return name.lower().lstrip("_")


# ---------------------------------------------------------------------------
# Text blocks
# ---------------------------------------------------------------------------

def _text(ctx: RenderContext) -> str:
    return render_rich_text(ctx.block.rich_text)


def _paragraph(ctx: RenderContext) -> str:
    text = _text(ctx)
    if not text:
        return "\n"
    return f"{ctx.indent}{text}\n\n"


def _heading(level: int) -> Template:
    def render(ctx: RenderContext) -> str:
        return f"{'#' * level} {_text(ctx)}\n\n"
    return render


def _bulleted(ctx: RenderContext) -> str:
    return f"{ctx.indent}- {_text(ctx)}\n"


def _numbered(ctx: RenderContext) -> str:
    return f"{ctx.indent}{ctx.same_type_index + 1}. {_text(ctx)}\n"


def _to_do(ctx: RenderContext) -> str:
    mark = "x" if ctx.block.data.get("checked") else " "
    return f"{ctx.indent}- [{mark}] {_text(ctx)}\n"


def _quote(ctx: RenderContext) -> str:
    lines = _text(ctx).split("\n")
    return "".join(f"{ctx.indent}> {line}\n" for line in lines) + "\n"


def _callout(ctx: RenderContext) -> str:
    emoji = ctx.side.emoji if isinstance(ctx.side, CalloutInfo) else ctx.block.icon_emoji
    return f'{{{{< callout emoji="{emoji}" >}}}}\n{_text(ctx)}\n{{{{< /callout >}}}}\n\n'


def _divider(ctx: RenderContext) -> str:
    return "---\n\n"


def _equation(ctx: RenderContext) -> str:
    expression = ctx.block.data.get("expression", "")
    return f"$$\n{expression}\n$$\n\n"


# ---------------------------------------------------------------------------
# Code
# ---------------------------------------------------------------------------

def _code(ctx: RenderContext) -> str:
    language = ctx.block.language
    if language == "plain text":
        language = ""
    content = ctx.block.plain_text
    return f"```{language}\n{content}\n```\n\n"


def _mermaid(ctx: RenderContext) -> str:
    return f"{{{{< mermaid >}}}}\n{ctx.block.plain_text}\n{{{{< /mermaid >}}}}\n\n"


def _setting(ctx: RenderContext) -> str:
    return ctx.block.plain_text + "\n"


def _noop(ctx: RenderContext) -> str:
    return ""


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

def _table(ctx: RenderContext) -> str:
    width = int(ctx.block.data.get("table_width") or 0)
    table = render_table(ctx.block.children, width)
    return table + "\n" if table else ""


# ---------------------------------------------------------------------------
# Media
# ---------------------------------------------------------------------------

def shortcode_param(value: object) -> str:
    """Escape *value* for a double-quoted Hugo shortcode parameter."""
    text = " ".join(str(value or "").split())
    return text.replace("\\", "\\\\").replace('"', '\\"')


def _caption(ctx: RenderContext) -> str:
    return render_rich_text(ctx.block.caption)


def _image(ctx: RenderContext) -> str:
    return f"![{_caption(ctx)}]({escape_url(ctx.media_url)})\n\n"


def _gallery(ctx: RenderContext) -> str:
    side = ctx.side if isinstance(ctx.side, GalleryInfo) else GalleryInfo()
    figures = "".join(
        f'{{{{< figure src="{shortcode_param(src)}" '
        f'caption="{shortcode_param(caption)}" >}}}}\n'
        for src, caption in zip(side.images, side.captions)
    )
    return f"{{{{< gallery >}}}}\n{figures}{{{{< /gallery >}}}}\n\n"


def _video(ctx: RenderContext) -> str:
    if isinstance(ctx.side, VideoInfo) and ctx.side.platform == "youtube":
        return f"{{{{< youtube {ctx.side.id} >}}}}\n\n"
    return f'<video controls src="{ctx.media_url}"></video>\n\n'


def _file(ctx: RenderContext) -> str:
    if isinstance(ctx.side, FileInfo):
        name = ctx.side.file_name or ctx.side.url
        return f"[{name}]({escape_url(ctx.side.url)})\n\n"
    return f"[{ctx.media_url}]({escape_url(ctx.media_url)})\n\n"


def _audio(ctx: RenderContext) -> str:
    src = ctx.side.url if isinstance(ctx.side, FileInfo) else ctx.media_url
    return f'<audio controls src="{src}"></audio>\n\n'


# ---------------------------------------------------------------------------
# Links and embeds
# ---------------------------------------------------------------------------

def _bookmark(ctx: RenderContext) -> str:
    info = ctx.side if isinstance(ctx.side, BookmarkInfo) else BookmarkInfo(url=ctx.block.url)
    return (
        f'{{{{< bookmark url="{shortcode_param(info.url)}" '
        f'title="{shortcode_param(info.title)}" '
        f'description="{shortcode_param(info.description)}" '
        f'image="{shortcode_param(info.image)}" icon="{shortcode_param(info.icon)}" >}}}}\n\n'
    )


def _embed(ctx: RenderContext) -> str:
    url = ctx.block.url
    info = ctx.side if isinstance(ctx.side, EmbedInfo) else EmbedInfo(url=url)
    if info.platform == "bilibili":
        return f"{{{{< bilibili {info.id} >}}}}\n\n"
    if info.platform == "twitter":
        return (
            f'{{{{< tweet user="{shortcode_param(info.user)}" '
            f'id="{shortcode_param(info.id)}" >}}}}\n\n'
        )
    if info.platform == "gist":
        return f"{{{{< gist {info.id} >}}}}\n\n"
    if info.platform == "jsfiddle":
        return (
            f'<iframe width="100%" height="300" '
            f'src="//jsfiddle.net/{info.id}/embedded/" frameborder="0"></iframe>\n\n'
        )
    return f"[Embed]({escape_url(url)})\n\n"


def _link_preview(ctx: RenderContext) -> str:
    url = ctx.block.url
    return f"[{url}]({escape_url(url)})\n\n"


def _notion_url(page_id: str) -> str:
    return "https://www.notion.so/" + page_id.replace("-", "")


def _link_to_page(ctx: RenderContext) -> str:
    data = ctx.block.data
    target = data.get(data.get("type", "page_id"), "") or data.get("page_id", "")
    if not target:
        return ""
    url = _notion_url(target)
    return f"[{url}]({url})\n\n"


def _child_page(ctx: RenderContext) -> str:
    title = ctx.block.data.get("title", "") or "Untitled"
    return f"[{title}]({_notion_url(ctx.block.id)})\n\n"


def _unsupported(ctx: RenderContext) -> str:
    return f"<!-- notion:{ctx.block.type_name} -->\n"


DEFAULT_TEMPLATES: dict[str, Template] = {
    "paragraph": _paragraph,
    "heading_1": _heading(1),
    "heading_2": _heading(2),
    "heading_3": _heading(3),
    "bulleted_list_item": _bulleted,
    "numbered_list_item": _numbered,
    "to_do": _to_do,
    "toggle": _bulleted,
    "quote": _quote,
    "callout": _callout,
    "code": _code,
    "mermaid": _mermaid,
    "setting": _setting,
    "noop": _noop,
    "divider": _divider,
    "equation": _equation,
    "table": _table,
    "table_row": _noop,
    "image": _image,
    "gallery": _gallery,
    "video": _video,
    "file": _file,
    "pdf": _file,
    "audio": _audio,
    "bookmark": _bookmark,
    "embed": _embed,
    "link_preview": _link_preview,
    "link_to_page": _link_to_page,
    "child_page": _child_page,
    "child_database": _noop,
    "synced_block": _noop,
    "template": _noop,
    "column_list": _noop,
    "column": _noop,
    "breadcrumb": _noop,
    "table_of_contents": _noop,
    "unsupported": _unsupported,
}


class TemplateRegistry:
    """Name-keyed collection of block templates.

    Starts with :data:`DEFAULT_TEMPLATES` (unless *include_defaults* is
    false); callers can override or add entries with :meth:`register`.
    """

    def __init__(
        self,
        templates: dict[str, Template] | None = None,
        *,
        include_defaults: bool = True,
    ) -> None:
        self._templates: dict[str, Template] = dict(DEFAULT_TEMPLATES) if include_defaults else {}
        if templates:
            for name, template in templates.items():
                self.register(name, template)

    def register(self, name: str, template: Template) -> None:
        self._templates[to_template_name(name)] = template

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and to_template_name(name) in self._templates

    def get(self, name: str) -> Template:
        """Return the template for *name*.

        Raises
        ------
        NotionSiteTemplateError
            If nothing is registered under the normalised name.
        """
        key = to_template_name(name)
        try:
            return self._templates[key]
        except KeyError:
            raise NotionSiteTemplateError(
                message=f"No template registered for '{key}'",
                context={"template": key},
            ) from None

    def render(self, name: str, ctx: RenderContext) -> str:
        try:
            template = self.get(name)
        except NotionSiteTemplateError as exc:
            exc.context["block_id"] = ctx.block.id
            raise
        return template(ctx)
