"""Data models for notion-site.

Wire objects from the Notion API (pages, blocks, rich text) are wrapped in
small dataclasses with explicit type tags so that the renderer can dispatch
on :class:`BlockType` instead of poking into raw dicts everywhere.  The
remaining types describe rendering state and results.
"""

from __future__ import annotations

from collections.abc import Iterator, MutableMapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class BlockType(str, Enum):
    """Every Notion block type the renderer knows about.

    Tags that are not listed here load as :attr:`UNSUPPORTED`; the raw tag
    is kept in :attr:`Block.type_name`.
    """

    PARAGRAPH = "paragraph"
    HEADING_1 = "heading_1"
    HEADING_2 = "heading_2"
    HEADING_3 = "heading_3"
    BULLETED_LIST_ITEM = "bulleted_list_item"
    NUMBERED_LIST_ITEM = "numbered_list_item"
    TO_DO = "to_do"
    TOGGLE = "toggle"
    QUOTE = "quote"
    CALLOUT = "callout"
    CODE = "code"
    DIVIDER = "divider"
    EQUATION = "equation"
    TABLE = "table"
    TABLE_ROW = "table_row"
    IMAGE = "image"
    VIDEO = "video"
    FILE = "file"
    PDF = "pdf"
    AUDIO = "audio"
    BOOKMARK = "bookmark"
    EMBED = "embed"
    LINK_PREVIEW = "link_preview"
    LINK_TO_PAGE = "link_to_page"
    SYNCED_BLOCK = "synced_block"
    TEMPLATE = "template"
    COLUMN_LIST = "column_list"
    COLUMN = "column"
    CHILD_PAGE = "child_page"
    CHILD_DATABASE = "child_database"
    BREADCRUMB = "breadcrumb"
    TABLE_OF_CONTENTS = "table_of_contents"
    UNSUPPORTED = "unsupported"

    @classmethod
    def from_tag(cls, tag: str) -> BlockType:
        try:
            return cls(tag)
        except ValueError:
            return cls.UNSUPPORTED


# Block types whose children are fetched and rendered.  Child pages and
# child databases are separate documents and never expanded.
NESTABLE_TYPES: frozenset[BlockType] = frozenset({
    BlockType.PARAGRAPH,
    BlockType.HEADING_1,
    BlockType.HEADING_2,
    BlockType.HEADING_3,
    BlockType.BULLETED_LIST_ITEM,
    BlockType.NUMBERED_LIST_ITEM,
    BlockType.TO_DO,
    BlockType.TOGGLE,
    BlockType.QUOTE,
    BlockType.CALLOUT,
    BlockType.TABLE,
    BlockType.SYNCED_BLOCK,
    BlockType.TEMPLATE,
    BlockType.COLUMN_LIST,
    BlockType.COLUMN,
})

MEDIA_TYPES: frozenset[BlockType] = frozenset({
    BlockType.IMAGE,
    BlockType.VIDEO,
    BlockType.FILE,
    BlockType.PDF,
    BlockType.AUDIO,
})

# Only rendered when ``extended_syntax`` is enabled.
EXTENDED_SYNTAX_TYPES: frozenset[BlockType] = frozenset({
    BlockType.BOOKMARK,
    BlockType.CALLOUT,
})


class PageKind(str, Enum):
    """Classification of a database entry, from its ``Type`` select."""

    ARTICLE = "article"
    SETTING = "setting"
    FOLDER = "folder"
    GALLERY = "gallery"

    @classmethod
    def from_type(cls, value: str) -> PageKind:
        try:
            kind = cls(value.strip().lower())
        except ValueError:
            return cls.ARTICLE
        return kind


class GalleryAction(str, Enum):
    """What the renderer does with an image on a gallery page."""

    SKIP = "skip"
    """Collect the image; a later image in the run flushes it."""

    WRITE = "write"
    """Emit every collected image of the run as one gallery."""

    NOTHING = "nothing"
    """Render the block normally."""


class PageStatus(str, Enum):
    """Outcome of one page in a generation run."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


# ---------------------------------------------------------------------------
# Rich text
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Annotations:
    """Inline styling of a rich-text span."""

    bold: bool = False
    italic: bool = False
    strikethrough: bool = False
    underline: bool = False
    code: bool = False
    color: str = "default"

    @classmethod
    def from_api(cls, obj: dict | None) -> Annotations:
        if not obj:
            return cls()
        return cls(
            bold=bool(obj.get("bold", False)),
            italic=bool(obj.get("italic", False)),
            strikethrough=bool(obj.get("strikethrough", False)),
            underline=bool(obj.get("underline", False)),
            code=bool(obj.get("code", False)),
            color=obj.get("color") or "default",
        )


@dataclass(frozen=True)
class RichText:
    """One styled run of inline text.

    Attributes
    ----------
    type:
        ``"text"``, ``"mention"`` or ``"equation"``.
    content:
        The text content (``text.content`` for text spans, ``plain_text``
        otherwise).
    href:
        Link target, if any.
    annotations:
        Inline styling.
    expression:
        LaTeX source for equation spans.
    """

    type: str = "text"
    content: str = ""
    href: str | None = None
    annotations: Annotations = field(default_factory=Annotations)
    expression: str = ""

    @classmethod
    def from_api(cls, obj: dict) -> RichText:
        span_type = obj.get("type", "text")
        href = obj.get("href")
        content = obj.get("plain_text", "") or ""
        expression = ""
        if span_type == "text":
            text = obj.get("text") or {}
            content = text.get("content", content) or ""
            link = text.get("link") or {}
            href = link.get("url") or href
        elif span_type == "equation":
            expression = (obj.get("equation") or {}).get("expression", "")
        return cls(
            type=span_type,
            content=content,
            href=href or None,
            annotations=Annotations.from_api(obj.get("annotations")),
            expression=expression,
        )


def parse_rich_text(segments: list[dict] | None) -> list[RichText]:
    """Convert a Notion ``rich_text`` array into :class:`RichText` spans."""
    return [RichText.from_api(seg) for seg in segments or []]


# ---------------------------------------------------------------------------
# Blocks and pages
# ---------------------------------------------------------------------------

@dataclass
class Block:
    """A node of a page's content tree.

    Attributes
    ----------
    id:
        Notion block ID.
    type:
        The dispatch tag.
    data:
        The type-specific payload (the dict stored under the type key).
    has_children:
        Whether Notion reports nested children.
    children:
        Child blocks, populated by the fetcher for nestable types.
    type_name:
        The raw Notion type tag (differs from ``type.value`` only for
        unsupported blocks).
    """

    id: str
    type: BlockType
    data: dict = field(default_factory=dict)
    has_children: bool = False
    children: list[Block] = field(default_factory=list)
    type_name: str = ""

    def __post_init__(self) -> None:
        if not self.type_name:
            self.type_name = self.type.value

    @classmethod
    def from_api(cls, obj: dict) -> Block:
        tag = obj.get("type", "")
        return cls(
            id=obj.get("id", ""),
            type=BlockType.from_tag(tag),
            data=obj.get(tag) or {},
            has_children=bool(obj.get("has_children", False)),
            type_name=tag or BlockType.UNSUPPORTED.value,
        )

    @property
    def expandable(self) -> bool:
        """Children should be fetched for this block."""
        return self.has_children and self.type in NESTABLE_TYPES

    @property
    def rich_text(self) -> list[RichText]:
        return parse_rich_text(self.data.get("rich_text"))

    @property
    def caption(self) -> list[RichText]:
        return parse_rich_text(self.data.get("caption"))

    @property
    def plain_text(self) -> str:
        return "".join(span.content for span in self.rich_text)

    @property
    def language(self) -> str:
        return self.data.get("language") or ""

    @property
    def url(self) -> str:
        """Target URL of bookmark, embed and link-preview blocks, or the
        source URL of a media block."""
        if self.type in MEDIA_TYPES:
            return self.file_url
        return self.data.get("url") or ""

    @property
    def file_source(self) -> str:
        """``"external"`` or ``"file"`` (Notion-hosted) for media blocks."""
        return self.data.get("type", "")

    @property
    def file_url(self) -> str:
        source = self.file_source
        if source in ("external", "file"):
            return (self.data.get(source) or {}).get("url", "")
        return ""

    @property
    def table_cells(self) -> list[list[RichText]]:
        return [parse_rich_text(cell) for cell in self.data.get("cells", [])]

    @property
    def icon_emoji(self) -> str:
        icon = self.data.get("icon") or {}
        if icon.get("type") == "emoji":
            return icon.get("emoji", "")
        return ""


@dataclass
class Page:
    """A database entry.

    ``properties`` keeps the raw Notion property values; the metadata
    extractor interprets them.
    """

    id: str
    url: str = ""
    properties: dict[str, dict] = field(default_factory=dict)
    cover: dict | None = None
    created_time: str = ""
    last_edited_time: str = ""

    @classmethod
    def from_api(cls, obj: dict) -> Page:
        return cls(
            id=obj.get("id", ""),
            url=obj.get("url", ""),
            properties=obj.get("properties") or {},
            cover=obj.get("cover"),
            created_time=obj.get("created_time", ""),
            last_edited_time=obj.get("last_edited_time", ""),
        )

    @property
    def cover_url(self) -> str:
        if not self.cover:
            return ""
        source = self.cover.get("type", "")
        return (self.cover.get(source) or {}).get("url", "")


# ---------------------------------------------------------------------------
# Metadata record
# ---------------------------------------------------------------------------

class MetadataRecord(MutableMapping[str, Any]):
    """Insertion-ordered mapping with case-insensitive keys.

    Assigning to a key that matches an existing one case-insensitively
    replaces the value in place (keeping the original position).  Keys are
    reported in lower case.
    """

    def __init__(self, items: dict[str, Any] | None = None) -> None:
        self._store: dict[str, Any] = {}
        if items:
            self.update(items)

    def __getitem__(self, key: str) -> Any:
        return self._store[key.lower()]

    def __setitem__(self, key: str, value: Any) -> None:
        self._store[key.lower()] = value

    def __delitem__(self, key: str) -> None:
        del self._store[key.lower()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._store)

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._store

    def __repr__(self) -> str:
        return f"MetadataRecord({self._store!r})"

    def to_dict(self) -> dict[str, Any]:
        return dict(self._store)


# ---------------------------------------------------------------------------
# Side channels
# ---------------------------------------------------------------------------

@dataclass
class BookmarkInfo:
    """OpenGraph data of a bookmarked page."""

    url: str = ""
    title: str = ""
    description: str = ""
    image: str = ""
    icon: str = ""


@dataclass
class VideoInfo:
    platform: str = ""
    id: str = ""
    url: str = ""


@dataclass
class EmbedInfo:
    """Platform and identifier parsed out of an embed URL.

    ``id`` is the bilibili video id, tweet id, jsfiddle path or the
    space-joined gist path, depending on ``platform``.
    """

    platform: str = ""
    id: str = ""
    url: str = ""
    user: str = ""


@dataclass
class FileInfo:
    url: str = ""
    file_name: str = ""


@dataclass
class CalloutInfo:
    emoji: str = ""
    text: str = ""


@dataclass
class GalleryInfo:
    """Images of one gallery run, in source order."""

    images: list[str] = field(default_factory=list)
    captions: list[str] = field(default_factory=list)


SideChannel = Union[BookmarkInfo, VideoInfo, EmbedInfo, FileInfo, CalloutInfo, GalleryInfo]


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

@dataclass
class RenderContext:
    """Everything a block template receives.

    Attributes
    ----------
    block:
        The block being rendered.
    depth:
        Nesting depth (0 for top-level blocks).
    same_type_index:
        Position of the block inside its run of same-typed siblings.
    side:
        Typed enrichment for the block kinds that have one.
    asset_url:
        Rewritten local reference of a materialized asset.  Empty when the
        download failed.  ``None`` when nothing was materialized.
    """

    block: Block
    depth: int = 0
    same_type_index: int = 0
    side: SideChannel | None = None
    asset_url: str | None = None

    @property
    def indent(self) -> str:
        return "  " * self.depth

    @property
    def media_url(self) -> str:
        """The URL a media template should reference."""
        if self.asset_url is not None:
            return self.asset_url
        return self.block.url


@dataclass
class ConversionWarning:
    """A non-fatal issue encountered while rendering a page.

    Attributes
    ----------
    code:
        A machine-readable warning code (e.g. ``"MEDIA_FAILED"``).
    message:
        A human-readable description of the issue.
    context:
        Arbitrary structured data for diagnostics.
    """

    code: str
    message: str
    context: dict = field(default_factory=dict)


@dataclass
class RenderedDocument:
    """The output of rendering one page."""

    page_id: str
    header: str = ""
    body: str = ""
    text: str = ""
    record: MetadataRecord | None = None
    warnings: list[ConversionWarning] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Generation results
# ---------------------------------------------------------------------------

@dataclass
class PageOutcome:
    page_id: str
    url: str = ""
    status: PageStatus = PageStatus.SUCCEEDED
    path: str | None = None
    error: str | None = None
    header: dict[str, Any] | None = None


@dataclass
class GenerationResult:
    """Per-page outcomes of a generation run and their tally."""

    outcomes: list[PageOutcome] = field(default_factory=list)

    def _count(self, status: PageStatus) -> int:
        return sum(1 for o in self.outcomes if o.status is status)

    @property
    def succeeded(self) -> int:
        return self._count(PageStatus.SUCCEEDED)

    @property
    def failed(self) -> int:
        return self._count(PageStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(PageStatus.SKIPPED)

    def tally(self) -> dict[str, int]:
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
        }
