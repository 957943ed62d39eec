"""Site generation: database entries to files in a Hugo site.

:class:`SiteGenerator` ties the pieces together.  For every entry of the
configured database it fetches the block tree, extracts the header, renders
the document, writes it into the site and flips the entry's status to the
published value.  Entries that embed a child database are not rendered
themselves; the child database is queued and processed after the root one.

Usage::

    from notionsite import SiteGenerator, load_config

    with SiteGenerator(load_config()) as generator:
        result = generator.run()
    print(result.tally())

A failing entry never stops the run: its outcome is recorded as failed and
the next entry is processed.  Only a failing query of the root database
propagates.
"""

from __future__ import annotations

import json
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import httpx

from notionsite.config import NotionSiteConfig
from notionsite.converter.engine import RenderingEngine
from notionsite.converter.enrich import Enricher
from notionsite.errors import NotionSiteError
from notionsite.fetcher import BlockTreeFetcher
from notionsite.media import MediaMaterializer
from notionsite.metadata import MetadataExtractor, PageProps, format_date, header_fields
from notionsite.models import (
    BlockType,
    GenerationResult,
    Page,
    PageOutcome,
    PageStatus,
)
from notionsite.notion_api import (
    BlockAPI,
    DatabaseAPI,
    NotionTransport,
    PageAPI,
    build_select_filter,
)
from notionsite.observability import NoopMetricsHook, get_logger

log = get_logger("notionsite.generator")

INDEX_MARKDOWN_NAME = "index.md"
INDEX_FILE = Path("content") / "blogs.json"
PUBLISH_DATE_PROP = "PublishDate"


def dashed_name(text: str) -> str:
    """Lower-case *text* and replace spaces with dashes."""
    return text.strip().lower().replace(" ", "-")


@dataclass(frozen=True)
class OutputPaths:
    """Where one page is written.

    Attributes
    ----------
    folder:
        Directory holding the document (the bundle folder for articles).
    file:
        The document itself.
    media:
        Directory receiving the page's downloaded assets.
    """

    folder: Path
    file: Path
    media: Path

    @classmethod
    def for_page(cls, config: NotionSiteConfig, props: PageProps, page_id: str = "") -> OutputPaths:
        """Apply the output naming policy.

        Setting pages are written flat into ``<home>/<position>/`` under
        their file name as-is.  Every other page gets a bundle folder named
        after its slug (or dashed name), optionally prefixed with its
        creation date, holding ``index.md`` or the custom file name.
        """
        base = Path(config.home_path) / props.position

        if props.is_setting:
            return cls(
                folder=base,
                file=base / dashed_name(props.file_name),
                media=base / config.media_dir,
            )

        bundle = props.slug.strip() or dashed_name(props.name or props.title) or page_id
        if config.group_by_month and props.created_at:
            bundle = f"{format_date(props.created_at)[:10]}/{bundle}"
        folder = base / bundle

        if props.is_custom_name_file:
            name = dashed_name(props.file_name_prop)
            if ".md" not in props.file_name_prop:
                name += ".md"
        else:
            name = INDEX_MARKDOWN_NAME
        return cls(folder=folder, file=folder / name, media=folder / config.media_dir)


class SiteGenerator:
    """Renders a Notion database into a Hugo site.

    Parameters
    ----------
    config:
        The run configuration.
    transport:
        Optional pre-built :class:`NotionTransport` (tests pass one backed
        by :class:`httpx.MockTransport`).
    http_client:
        Optional :class:`httpx.Client` for media downloads and bookmark
        lookups.
    """

    def __init__(
        self,
        config: NotionSiteConfig,
        *,
        transport: NotionTransport | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._config = config
        self._transport = transport or NotionTransport(config)
        self._blocks = BlockAPI(self._transport)
        self._pages = PageAPI(self._transport)
        self._databases = DatabaseAPI(self._transport)
        self._owns_http = http_client is None
        self._http = http_client or httpx.Client(
            timeout=httpx.Timeout(config.timeout_seconds),
            proxy=config.http_proxy,
            follow_redirects=True,
        )
        self._enricher = Enricher(config, self._http)
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()
        self._child_databases: list[str] = []
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self) -> GenerationResult:
        """Process the root database, then every discovered child database.

        Returns
        -------
        GenerationResult
            One outcome per database entry.

        Raises
        ------
        NotionSiteError
            When the root database cannot be queried.
        """
        Path(self._config.home_path).mkdir(parents=True, exist_ok=True)
        result = GenerationResult()
        result.outcomes.extend(self.process_database(self._config.database_id))

        seen = {self._config.database_id}
        while True:
            with self._lock:
                if not self._child_databases:
                    break
                database_id = self._child_databases.pop(0)
            if database_id in seen:
                continue
            seen.add(database_id)
            try:
                result.outcomes.extend(self.process_database(database_id))
            except NotionSiteError as exc:
                log.error(
                    "Child database query failed",
                    extra={"extra_fields": {
                        "op": "run", "database_id": database_id,
                        "error_code": str(exc.code), "error": exc.message,
                    }},
                )

        self.write_index(result)
        log.info(
            "Generation finished",
            extra={"extra_fields": {"op": "run", **result.tally()}},
        )
        return result

    def process_database(self, database_id: str) -> list[PageOutcome]:
        """Render every matching entry of one database.

        Raises
        ------
        NotionSiteError
            When the query fails.  Per-page failures are reported in the
            outcomes instead.
        """
        query_filter = build_select_filter(self._config.filter_prop, self._config.filter_values)
        pages = [Page.from_api(obj) for obj in self._databases.query(database_id, query_filter)]
        log.info(
            "Database queried",
            extra={"extra_fields": {
                "op": "process_database", "database_id": database_id, "pages": len(pages),
            }},
        )
        with ThreadPoolExecutor(max_workers=self._config.max_workers) as pool:
            return list(pool.map(self.generate_page, pages))

    def generate_page(self, page: Page) -> PageOutcome:
        """Fetch, render and write one entry.  Never raises."""
        started = time.monotonic()
        try:
            outcome = self._generate(page)
        except Exception as exc:
            log.exception(
                "Unexpected error while generating page",
                extra={"extra_fields": {"op": "generate", "page_id": page.id}},
            )
            outcome = self._failed(PageOutcome(page_id=page.id, url=page.url), exc, "render")
        self._metrics.increment("notionsite.pages_total", tags={"status": outcome.status.value})
        self._metrics.timing(
            "notionsite.page_render_duration_ms", (time.monotonic() - started) * 1000,
        )
        return outcome

    def publish(self, page: Page) -> bool:
        """Write the published status back to *page*.

        Does nothing when no status property or published value is
        configured, when the page lacks the property, or when it already
        holds the published value.  Failures are logged.

        Returns
        -------
        bool
            Whether the page was updated.
        """
        config = self._config
        if not config.updates_status:
            return False
        prop = page.properties.get(config.filter_prop)
        if prop is None:
            return False
        kind = prop.get("type") or ("status" if "status" in prop else "select")
        current = (prop.get(kind) or {}).get("name")
        if current == config.published_value:
            return False

        properties: dict[str, Any] = {
            config.filter_prop: {kind: {"name": config.published_value}},
            PUBLISH_DATE_PROP: {
                "date": {"start": datetime.now(timezone.utc).isoformat(timespec="seconds")},
            },
        }
        try:
            self._pages.update_properties(page.id, properties)
        except NotionSiteError as exc:
            log.warning(
                "Status update failed",
                extra={"extra_fields": {
                    "op": "publish", "page_id": page.id,
                    "error_code": str(exc.code), "error": exc.message,
                }},
            )
            return False
        return True

    def write_index(self, result: GenerationResult) -> Path:
        """Write the headers of every rendered page to ``content/blogs.json``."""
        path = Path(self._config.home_path) / INDEX_FILE
        path.parent.mkdir(parents=True, exist_ok=True)
        headers = [o.header for o in result.outcomes if o.header is not None]
        path.write_text(
            json.dumps(headers, ensure_ascii=False, default=str),
            encoding="utf-8",
        )
        return path

    @property
    def child_databases(self) -> list[str]:
        """Child databases queued and not yet processed."""
        with self._lock:
            return list(self._child_databases)

    def close(self) -> None:
        self._transport.close()
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> SiteGenerator:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _generate(self, page: Page) -> PageOutcome:
        outcome = PageOutcome(page_id=page.id, url=page.url)
        try:
            blocks = BlockTreeFetcher(self._blocks, self._config).fetch(page.id)
        except NotionSiteError as exc:
            return self._failed(outcome, exc, "fetch")

        child_databases = [b.id for b in blocks if b.type is BlockType.CHILD_DATABASE]
        if child_databases:
            with self._lock:
                self._child_databases.extend(child_databases)
            log.info(
                "Page holds child databases",
                extra={"extra_fields": {
                    "op": "generate", "page_id": page.id, "child_databases": child_databases,
                }},
            )
            outcome.status = PageStatus.SKIPPED
            return outcome

        props = MetadataExtractor(self._config).page_props(page)
        paths = OutputPaths.for_page(self._config, props, page.id)
        media = MediaMaterializer(
            self._config, paths.media, self._config.media_dir, client=self._http,
        )
        try:
            record = MetadataExtractor(self._config, media).extract(page, props)
            engine = RenderingEngine(self._config, media=media, enricher=self._enricher)
            document = engine.render(blocks, props, record, page.id)
            paths.folder.mkdir(parents=True, exist_ok=True)
            if not props.is_folder:
                paths.file.write_text(document.text, encoding="utf-8")
        except NotionSiteError as exc:
            return self._failed(outcome, exc, "render")
        except OSError as exc:
            return self._failed(outcome, exc, "write")

        outcome.path = str(paths.folder if props.is_folder else paths.file)
        if not props.is_setting and not props.is_folder:
            header = header_fields(record, [p.key for p in self._config.dynamic_props])
            header["folderpath"] = paths.folder.as_posix()
            outcome.header = header

        self.publish(page)
        log.info(
            "Page generated",
            extra={"extra_fields": {
                "op": "generate", "page_id": page.id, "path": outcome.path,
                "warnings": len(document.warnings),
            }},
        )
        return outcome

    @staticmethod
    def _failed(outcome: PageOutcome, exc: Exception, stage: str) -> PageOutcome:
        message = exc.message if isinstance(exc, NotionSiteError) else str(exc)
        log.error(
            "Page generation failed",
            extra={"extra_fields": {
                "op": "generate", "stage": stage, "page_id": outcome.page_id,
                "url": outcome.url, "error": message,
            }},
        )
        outcome.status = PageStatus.FAILED
        outcome.error = message
        return outcome
