"""notion-site — publish a Notion database as a Hugo site.

Public re-exports
-----------------

* **Generation:** :class:`SiteGenerator`, :class:`RenderingEngine`
* **Configuration:** :class:`NotionSiteConfig`, :func:`load_config`
* **Errors:** Every :class:`NotionSiteError` subclass and :class:`ErrorCode`
* **Models:** Blocks, pages, rendering results and supporting types

Usage::

    from notionsite import SiteGenerator, load_config

    with SiteGenerator(load_config("notion-site.yaml")) as generator:
        result = generator.run()
    print(result.tally())
"""

from __future__ import annotations

# ── Configuration ───────────────────────────────────────────────────────
from notionsite.config import (
    DynamicProp,
    NotionSiteConfig,
    load_config,
    write_default_config,
)

# ── Conversion ──────────────────────────────────────────────────────────
from notionsite.converter import RenderingEngine, TemplateRegistry

# ── Errors ──────────────────────────────────────────────────────────────
from notionsite.errors import (
    ErrorCode,
    NotionSiteAuthError,
    NotionSiteConfigError,
    NotionSiteEnrichmentError,
    NotionSiteError,
    NotionSiteMediaError,
    NotionSiteNetworkError,
    NotionSiteNotFoundError,
    NotionSitePermissionError,
    NotionSiteRateLimitError,
    NotionSiteRenderError,
    NotionSiteRetryExhaustedError,
    NotionSiteTemplateError,
    NotionSiteValidationError,
)

# ── Fetching and metadata ───────────────────────────────────────────────
from notionsite.fetcher import BlockTreeFetcher
from notionsite.generator import OutputPaths, SiteGenerator
from notionsite.media import MediaMaterializer
from notionsite.metadata import MetadataExtractor, PageProps

# ── Models ──────────────────────────────────────────────────────────────
from notionsite.models import (
    Block,
    BlockType,
    ConversionWarning,
    GenerationResult,
    MetadataRecord,
    Page,
    PageKind,
    PageOutcome,
    PageStatus,
    RenderContext,
    RenderedDocument,
    RichText,
)

# ── Public surface ──────────────────────────────────────────────────────

__all__ = [
    # Generation
    "SiteGenerator",
    "OutputPaths",
    "RenderingEngine",
    "TemplateRegistry",
    "BlockTreeFetcher",
    "MetadataExtractor",
    "MediaMaterializer",
    # Configuration
    "NotionSiteConfig",
    "DynamicProp",
    "load_config",
    "write_default_config",
    # Error base + code enum
    "NotionSiteError",
    "ErrorCode",
    # API / transport errors
    "NotionSiteValidationError",
    "NotionSiteAuthError",
    "NotionSitePermissionError",
    "NotionSiteNotFoundError",
    "NotionSiteRateLimitError",
    "NotionSiteRetryExhaustedError",
    "NotionSiteNetworkError",
    "NotionSiteConfigError",
    # Rendering errors
    "NotionSiteRenderError",
    "NotionSiteTemplateError",
    "NotionSiteMediaError",
    "NotionSiteEnrichmentError",
    # Models
    "Block",
    "BlockType",
    "Page",
    "PageKind",
    "PageProps",
    "RichText",
    "MetadataRecord",
    "RenderContext",
    "RenderedDocument",
    "ConversionWarning",
    "PageOutcome",
    "PageStatus",
    "GenerationResult",
]
