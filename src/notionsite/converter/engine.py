"""Rendering engine: a fetched block tree to a Hugo document.

The engine walks the tree depth-first in a single pass.  For every block it
decides whether to render it at all (extended-syntax gating, setting and
gallery pages), runs its side effects (asset download, enrichment), picks a
template, appends the output and then descends into the children.

Usage::

    engine = RenderingEngine(config, media=materializer)
    document = engine.render(blocks, props, record)
    path.write_text(document.text)

One engine renders one page at a time; the generator creates one per page.
"""

from __future__ import annotations

import string
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from notionsite import metadata
from notionsite.config import NotionSiteConfig
from notionsite.errors import NotionSiteEnrichmentError, NotionSiteTemplateError
from notionsite.media import MediaMaterializer
from notionsite.models import (
    EXTENDED_SYNTAX_TYPES,
    MEDIA_TYPES,
    Block,
    BlockType,
    ConversionWarning,
    GalleryAction,
    GalleryInfo,
    MetadataRecord,
    RenderContext,
    RenderedDocument,
    SideChannel,
)
from notionsite.observability import get_logger

from .enrich import Enricher
from .rich_text import render_rich_text
from .templates import TemplateRegistry

if TYPE_CHECKING:
    from notionsite.metadata import PageProps

log = get_logger("notionsite.engine")

# Blocks whose template renders the children itself.
_SELF_RENDERING: frozenset[BlockType] = frozenset({BlockType.TABLE})


def gallery_action(types: Sequence[BlockType], index: int) -> GalleryAction:
    """Classify the image at *index* within its sibling list.

    A run of consecutive images collapses into one gallery: every image
    that has an image after it is collected (SKIP), the last image of the
    run emits the gallery (WRITE).  An image without image neighbours, and
    any non-image block, renders normally (NOTHING).

    >>> I, P = BlockType.IMAGE, BlockType.PARAGRAPH
    >>> [gallery_action([P, I, I, P], i).value for i in range(4)]
    ['nothing', 'skip', 'write', 'nothing']
    """
    if len(types) <= 1 or types[index] is not BlockType.IMAGE:
        return GalleryAction.NOTHING
    if index + 1 < len(types) and types[index + 1] is BlockType.IMAGE:
        return GalleryAction.SKIP
    if index > 0 and types[index - 1] is BlockType.IMAGE:
        return GalleryAction.WRITE
    return GalleryAction.NOTHING


def _downloads(block: Block) -> bool:
    if block.type not in MEDIA_TYPES:
        return False
    # External videos (YouTube and the like) are referenced, not copied.
    if block.type is BlockType.VIDEO:
        return block.file_source == "file"
    return True


class RenderingEngine:
    """Renders block trees into documents.

    Parameters
    ----------
    config:
        Rendering switches: ``extended_syntax``, ``more_threshold``,
        ``more_marker``, ``content_template`` and ``dynamic_props``.
    media:
        Materializer for the page's assets.  Without one, media blocks keep
        their remote URLs.
    enricher:
        Side-channel producer.  Defaults to an :class:`Enricher` over
        *config*.
    templates:
        Template registry.  Defaults to the built-in templates.
    """

    def __init__(
        self,
        config: NotionSiteConfig,
        *,
        media: MediaMaterializer | None = None,
        enricher: Enricher | None = None,
        templates: TemplateRegistry | None = None,
    ) -> None:
        self._config = config
        self._media = media
        self._enricher = enricher or Enricher(config)
        self._templates = templates or TemplateRegistry()
        self._reset(None)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def render(
        self,
        blocks: Sequence[Block],
        props: PageProps,
        record: MetadataRecord,
        page_id: str = "",
    ) -> RenderedDocument:
        """Render one page.

        Parameters
        ----------
        blocks:
            The page's fetched block tree.
        props:
            The page's fixed-schema properties (kind decides the mode).
        record:
            Header record from :class:`~notionsite.metadata.MetadataExtractor`.
        page_id:
            Copied into the result for reporting.

        Returns
        -------
        RenderedDocument
            ``text`` is what gets written to disk.

        Raises
        ------
        NotionSiteTemplateError
            When a block has no template or the content template cannot be
            filled.  The document is abandoned.
        """
        self._reset(props)
        doc = RenderedDocument(page_id=page_id, record=record)

        if props.is_folder:
            return doc

        self._render_list(blocks, 0)
        doc.body = "".join(self._parts)
        doc.warnings = self._warnings

        if not props.is_setting:
            doc.header = metadata.serialize_header(
                record, self._media, [p.key for p in self._config.dynamic_props],
            )

        if self._config.content_template and not props.is_setting:
            doc.text = self._apply_content_template(doc, record)
        else:
            doc.text = doc.header + doc.body
        return doc

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def _reset(self, props: PageProps | None) -> None:
        self._props = props
        self._parts: list[str] = []
        self._size = 0
        self._more_inserted = False
        self._gallery = GalleryInfo()
        self._warnings: list[ConversionWarning] = []

    def _emit(self, text: str) -> None:
        if text:
            self._parts.append(text)
            self._size += len(text.encode("utf-8"))

    def _render_list(self, blocks: Sequence[Block], depth: int) -> None:
        types = [b.type for b in blocks]
        previous: BlockType | None = None
        run_index = 0

        for i, block in enumerate(blocks):
            if block.type in EXTENDED_SYNTAX_TYPES and not self._config.extended_syntax:
                continue

            run_index = run_index + 1 if block.type is previous else 0
            previous = block.type

            if self._props is not None and self._props.is_setting:
                self._render_setting(block, depth)
            else:
                self._render_block(block, depth, run_index, types, i)

    def _render_setting(self, block: Block, depth: int) -> None:
        ctx = RenderContext(block=block, depth=depth)
        if block.type is BlockType.CODE:
            self._emit(self._templates.render("setting", ctx))
            return
        self._emit(self._templates.render("noop", ctx))
        if block.children:
            self._render_list(block.children, depth + 1)

    def _render_block(
        self,
        block: Block,
        depth: int,
        run_index: int,
        types: Sequence[BlockType],
        position: int,
    ) -> None:
        add_more = not self._more_inserted and self._size > self._config.more_threshold

        if self._props is not None and self._props.is_gallery:
            action = gallery_action(types, position)
            if action is GalleryAction.SKIP:
                self._collect_image(block)
                return
            if action is GalleryAction.WRITE:
                self._collect_image(block)
                ctx = RenderContext(
                    block=block, depth=depth, same_type_index=run_index, side=self._gallery,
                )
                self._gallery = GalleryInfo()
                self._emit(self._templates.render("gallery", ctx))
                self._emit_more(add_more)
                return

        asset_url = self._materialize(block)
        side = self._enrich(block, asset_url)
        ctx = RenderContext(
            block=block,
            depth=depth,
            same_type_index=run_index,
            side=side,
            asset_url=asset_url,
        )
        self._emit(self._templates.render(self._template_name(block), ctx))
        self._emit_more(add_more)

        if block.children and block.type not in _SELF_RENDERING:
            self._render_list(block.children, depth + 1)

    def _emit_more(self, add_more: bool) -> None:
        if add_more:
            self._emit(self._config.more_marker + "\n")
            self._more_inserted = True

    @staticmethod
    def _template_name(block: Block) -> str:
        if block.type is BlockType.CODE and block.language.lower() == "mermaid":
            return "mermaid"
        return block.type.value

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    def _collect_image(self, block: Block) -> None:
        asset_url = self._materialize(block)
        self._gallery.images.append(asset_url if asset_url is not None else block.url)
        self._gallery.captions.append(render_rich_text(block.caption))

    def _materialize(self, block: Block) -> str | None:
        if self._media is None or not _downloads(block):
            return None
        url = block.url
        ref = self._media.materialize(url, block.type.value)
        if ref is None:
            self._warnings.append(ConversionWarning(
                code="MEDIA_FAILED",
                message=f"Could not download {block.type.value} for block {block.id}",
                context={"block_id": block.id, "url": url},
            ))
            return ""
        return ref

    def _enrich(self, block: Block, asset_url: str | None) -> SideChannel | None:
        try:
            return self._enricher.enrich(block, asset_url)
        except NotionSiteEnrichmentError as exc:
            log.warning(
                "Block enrichment failed",
                extra={"extra_fields": {
                    "op": "enrich", "block_id": block.id,
                    "block_type": block.type_name, "error": exc.message,
                }},
            )
            self._warnings.append(ConversionWarning(
                code="ENRICHMENT_FAILED",
                message=exc.message,
                context={"block_id": block.id, **exc.context},
            ))
            return None

    # ------------------------------------------------------------------
    # Final assembly
    # ------------------------------------------------------------------

    def _apply_content_template(self, doc: RenderedDocument, record: MetadataRecord) -> str:
        path = Path(self._config.content_template or "")
        try:
            source = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise NotionSiteTemplateError(
                message=f"Could not read content template {path}: {exc}",
                context={"path": str(path)},
                cause=exc,
            ) from exc

        values = {key: str(value) for key, value in record.items()}
        values.update(header=doc.header, body=doc.body, title=str(record.get("title", "")))
        try:
            return string.Template(source).substitute(values)
        except KeyError as exc:
            raise NotionSiteTemplateError(
                message=f"Content template {path} uses unknown placeholder {exc}",
                context={"path": str(path), "placeholder": str(exc.args[0])},
                cause=exc,
            ) from exc
        except ValueError as exc:
            raise NotionSiteTemplateError(
                message=f"Content template {path} is malformed: {exc}",
                context={"path": str(path)},
                cause=exc,
            ) from exc
