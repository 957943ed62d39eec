"""Configuration for notion-site.

:class:`NotionSiteConfig` captures every tuneable knob of a publishing run:
API access, the database query, output layout and rendering switches.  One
instance is built per run (usually by :func:`load_config`) and passed
explicitly to the transport, the fetcher, the metadata extractor, the
rendering engine and the generator.

The on-disk format is the ``notion-site.yaml`` file written by
``notion-site init``::

    notion:
      databaseId: YOUR-NOTION-DATABASE-ID
      filterProp: Status
      filterValue: [Finished, Published]
      publishedValue: Published
    markdown:
      homePath: ""
      groupByMonth: false
      template: ""
      extendedSyntax: false
    dynamicProps:
      - name: Weight
        type: number
        defaultValue: 0

The integration token is never stored in the YAML file; it is read from the
``NOTION_SECRET`` environment variable (a ``.env`` file next to the config
is loaded first when present).
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from notionsite.errors import NotionSiteConfigError

DEFAULT_CONFIG_FILENAME = "notion-site.yaml"

TOKEN_ENV_VAR = "NOTION_SECRET"

DYNAMIC_PROP_TYPES: frozenset[str] = frozenset({
    "richtext",
    "select",
    "multiselect",
    "number",
    "checkbox",
    "date",
    "title",
    "default",
})
"""Source types understood for operator-declared dynamic properties.
Anything else is read as rich text, then title."""


# ---------------------------------------------------------------------------
# Dynamic property declaration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DynamicProp:
    """An extra page property copied into the document header.

    Attributes
    ----------
    name:
        Property name in the Notion database.  The header key is its
        lower-cased form.
    type:
        Source type used to read the property (see
        :data:`DYNAMIC_PROP_TYPES`).
    output_type:
        Optional coercion applied to the value: ``"string"``, ``"number"``,
        ``"bool"`` or ``"list"``.
    default_value:
        Used when the property is absent or empty.  ``None`` and ``""``
        mean "omit the field".
    """

    name: str
    type: str = "richtext"
    output_type: str | None = None
    default_value: Any = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("dynamic property name must not be empty")

    @property
    def key(self) -> str:
        return self.name.lower()

    @property
    def has_default(self) -> bool:
        return self.default_value is not None and self.default_value != ""


# ---------------------------------------------------------------------------
# Configuration dataclass
# ---------------------------------------------------------------------------

@dataclass
class NotionSiteConfig:
    """Complete configuration for a notion-site run.

    Parameters
    ----------
    token:
        Notion integration token.  Never logged.
    notion_version:
        Value of the ``Notion-Version`` header sent with every request.
    base_url:
        API root URL.  Override for proxy or testing environments.
    page_size:
        Children requested per pagination round (Notion caps it at 100).
    database_id:
        The content database whose entries are rendered.
    filter_prop:
        Select property used both to filter the query and to record the
        publication status.
    filter_values:
        Select option names that qualify a page for rendering.  Empty means
        every entry.
    published_value:
        Option written back to *filter_prop* after a successful render.
        Empty disables the status mutation.
    home_path:
        Root of the Hugo site the documents are written into.
    media_dir:
        Folder name (inside each page bundle) that receives downloaded
        assets; also the public prefix of rewritten references.
    group_by_month:
        Prefix each bundle folder with the page's creation date.
    content_template:
        Optional path to a ``string.Template`` file wrapping every document.
        Placeholders: ``$header``, ``$body``, ``$title`` and each header
        field.
    extended_syntax:
        Render bookmark and callout blocks.  When disabled they are skipped
        together with their children.
    more_threshold:
        Body length in bytes after which the summary marker is inserted.
    more_marker:
        The one-shot summary marker.
    max_workers:
        Pages rendered concurrently by the generator.
    dynamic_props:
        Operator-declared header fields, see :class:`DynamicProp`.
    retry_max_attempts:
        Maximum attempts per request for retryable HTTP errors.
    retry_base_delay:
        Base delay (seconds) for exponential backoff.
    retry_max_delay:
        Upper cap (seconds) on computed backoff delay.
    retry_jitter:
        Add random jitter to backoff intervals.
    rate_limit_rps:
        Target requests per second for client-side pacing.
    timeout_seconds:
        HTTP request timeout in seconds, also used for media downloads.
    http_proxy:
        Optional HTTP/HTTPS proxy URL.
    metrics:
        Optional :class:`~notionsite.observability.MetricsHook`.
    debug_dump_payload:
        Write the (redacted) Notion API exchange to *stderr*.
    """

    # ── Core ────────────────────────────────────────────────────────────
    token: str = ""

    notion_version: str = "2022-06-28"

    base_url: str = "https://api.notion.com/v1"

    page_size: int = 100

    # ── Database ────────────────────────────────────────────────────────
    database_id: str = ""

    filter_prop: str = ""

    filter_values: list[str] = field(default_factory=list)

    published_value: str = ""

    # ── Output ──────────────────────────────────────────────────────────
    home_path: str = "."

    media_dir: str = "media"

    group_by_month: bool = False

    content_template: str | None = None

    # ── Rendering ───────────────────────────────────────────────────────
    extended_syntax: bool = False

    more_threshold: int = 60

    more_marker: str = "<!--more-->"

    max_workers: int = 1

    dynamic_props: list[DynamicProp] = field(default_factory=list)

    # ── Retry & rate ────────────────────────────────────────────────────
    retry_max_attempts: int = 5

    retry_base_delay: float = 1.0

    retry_max_delay: float = 60.0

    retry_jitter: bool = True

    rate_limit_rps: float = 3.0

    # ── HTTP ────────────────────────────────────────────────────────────
    timeout_seconds: float = 30.0

    http_proxy: str | None = None

    # ── Observability ──────────────────────────────────────────────────
    metrics: Any | None = None

    # ── Debug ───────────────────────────────────────────────────────────
    debug_dump_payload: bool = False

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        from urllib.parse import urlparse

        parsed = urlparse(self.base_url)
        if parsed.scheme == "http" and parsed.hostname not in (
            "localhost",
            "127.0.0.1",
            "::1",
        ):
            raise ValueError(
                f"base_url uses insecure HTTP for non-local host '{parsed.hostname}'. "
                "Use HTTPS to protect your API token, or target localhost for testing."
            )

        if not 1 <= self.page_size <= 100:
            raise ValueError(f"page_size must be within 1..100, got {self.page_size}")
        if self.retry_max_attempts < 1:
            raise ValueError(f"retry_max_attempts must be >= 1, got {self.retry_max_attempts}")
        if self.retry_base_delay < 0:
            raise ValueError(f"retry_base_delay must be >= 0, got {self.retry_base_delay}")
        if self.retry_max_delay < 0:
            raise ValueError(f"retry_max_delay must be >= 0, got {self.retry_max_delay}")
        if self.rate_limit_rps <= 0:
            raise ValueError(f"rate_limit_rps must be > 0, got {self.rate_limit_rps}")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")
        if self.more_threshold < 0:
            raise ValueError(f"more_threshold must be >= 0, got {self.more_threshold}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if not self.media_dir or "/" in self.media_dir.strip("/"):
            raise ValueError(f"media_dir must be a single folder name, got {self.media_dir!r}")

    @property
    def updates_status(self) -> bool:
        """Whether rendered pages get their status written back."""
        return bool(self.filter_prop and self.published_value)

    def __repr__(self) -> str:
        """Mask the token to prevent accidental credential leakage."""
        parts: list[str] = []
        for f in dataclasses.fields(self):
            val = getattr(self, f.name)
            if f.name == "token":
                masked = f"...{val[-4:]}" if len(val) >= 4 else "****"
                parts.append(f"token='{masked}'")
            else:
                parts.append(f"{f.name}={val!r}")
        return f"NotionSiteConfig({', '.join(parts)})"


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

# YAML key -> dataclass field, per section.
_NOTION_KEYS: dict[str, str] = {
    "databaseId": "database_id",
    "filterProp": "filter_prop",
    "filterValue": "filter_values",
    "publishedValue": "published_value",
    "notionVersion": "notion_version",
    "baseUrl": "base_url",
    "pageSize": "page_size",
    "rateLimitRps": "rate_limit_rps",
    "retryMaxAttempts": "retry_max_attempts",
    "timeoutSeconds": "timeout_seconds",
    "proxy": "http_proxy",
}

_MARKDOWN_KEYS: dict[str, str] = {
    "homePath": "home_path",
    "mediaDir": "media_dir",
    "groupByMonth": "group_by_month",
    "template": "content_template",
    "extendedSyntax": "extended_syntax",
    "moreThreshold": "more_threshold",
    "moreMarker": "more_marker",
    "workers": "max_workers",
}


def _map_section(
    raw: Any, mapping: dict[str, str], section: str, path: Path,
) -> dict[str, Any]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise NotionSiteConfigError(
            message=f"Section '{section}' in {path} must be a mapping",
            context={"path": str(path), "field": section},
        )
    out: dict[str, Any] = {}
    for key, value in raw.items():
        target = mapping.get(key)
        if target is None:
            raise NotionSiteConfigError(
                message=f"Unknown key '{section}.{key}' in {path}",
                context={"path": str(path), "field": f"{section}.{key}"},
            )
        out[target] = value
    return out


def _parse_dynamic_props(raw: Any, path: Path) -> list[DynamicProp]:
    if not raw:
        return []
    if not isinstance(raw, list):
        raise NotionSiteConfigError(
            message=f"'dynamicProps' in {path} must be a list",
            context={"path": str(path), "field": "dynamicProps"},
        )
    props: list[DynamicProp] = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise NotionSiteConfigError(
                message=f"dynamicProps[{i}] in {path} must be a mapping",
                context={"path": str(path), "field": f"dynamicProps[{i}]"},
            )
        try:
            props.append(DynamicProp(
                name=str(item.get("name", "")),
                type=str(item.get("type", "richtext")).lower(),
                output_type=item.get("outputType") or None,
                default_value=item.get("defaultValue"),
            ))
        except ValueError as exc:
            raise NotionSiteConfigError(
                message=f"dynamicProps[{i}] in {path}: {exc}",
                context={"path": str(path), "field": f"dynamicProps[{i}]"},
                cause=exc,
            ) from exc
    return props


def load_config(
    path: str | os.PathLike[str] = DEFAULT_CONFIG_FILENAME,
    **overrides: Any,
) -> NotionSiteConfig:
    """Load a :class:`NotionSiteConfig` from a ``notion-site.yaml`` file.

    Parameters
    ----------
    path:
        Path to the YAML file.
    **overrides:
        Field values that take precedence over the file (used by CLI
        options such as ``--workers``).

    Returns
    -------
    NotionSiteConfig
        The validated configuration, with ``token`` taken from
        ``NOTION_SECRET``.

    Raises
    ------
    NotionSiteConfigError
        If the file is missing, unparsable, or fails validation.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise NotionSiteConfigError(
            message=f"Configuration file not found: {config_path}",
            context={"path": str(config_path)},
        )

    env_file = config_path.parent / ".env"
    if env_file.exists():
        load_dotenv(env_file, override=False)

    try:
        with open(config_path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise NotionSiteConfigError(
            message=f"Could not parse {config_path}: {exc}",
            context={"path": str(config_path)},
            cause=exc,
        ) from exc

    if not isinstance(raw, dict):
        raise NotionSiteConfigError(
            message=f"{config_path} must contain a mapping at top level",
            context={"path": str(config_path)},
        )

    values: dict[str, Any] = {}
    values.update(_map_section(raw.get("notion"), _NOTION_KEYS, "notion", config_path))
    values.update(_map_section(raw.get("markdown"), _MARKDOWN_KEYS, "markdown", config_path))
    values["dynamic_props"] = _parse_dynamic_props(raw.get("dynamicProps"), config_path)
    if values.get("filter_values") is None:
        values["filter_values"] = []
    if not values.get("content_template"):
        values["content_template"] = None
    if not values.get("home_path"):
        values["home_path"] = "."
    values["token"] = os.environ.get(TOKEN_ENV_VAR, "")
    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        config = NotionSiteConfig(**values)
    except (TypeError, ValueError) as exc:
        raise NotionSiteConfigError(
            message=f"Invalid configuration in {config_path}: {exc}",
            context={"path": str(config_path)},
            cause=exc,
        ) from exc

    if not config.database_id:
        raise NotionSiteConfigError(
            message=f"'notion.databaseId' is required in {config_path}",
            context={"path": str(config_path), "field": "notion.databaseId"},
        )
    if not config.token:
        raise NotionSiteConfigError(
            message=f"{TOKEN_ENV_VAR} is not set (environment or .env file)",
            context={"path": str(config_path), "field": TOKEN_ENV_VAR},
        )
    return config


def default_config_document() -> dict[str, Any]:
    """Return the starter configuration written by ``notion-site init``."""
    return {
        "notion": {
            "databaseId": "YOUR-NOTION-DATABASE-ID",
            "filterProp": "Status",
            "filterValue": ["Finished", "Published"],
            "publishedValue": "Published",
        },
        "markdown": {
            "homePath": "",
            "groupByMonth": False,
            "template": "",
            "extendedSyntax": False,
        },
        "dynamicProps": [],
    }


def write_default_config(directory: str | os.PathLike[str] = ".") -> tuple[Path, Path]:
    """Write ``notion-site.yaml`` and a placeholder ``.env`` into *directory*.

    Existing files are left untouched.

    Returns
    -------
    tuple[Path, Path]
        The config file path and the ``.env`` path.
    """
    root = Path(directory)
    root.mkdir(parents=True, exist_ok=True)
    config_path = root / DEFAULT_CONFIG_FILENAME
    env_path = root / ".env"
    if not config_path.exists():
        with open(config_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(
                default_config_document(), f,
                sort_keys=False, allow_unicode=True,
            )
    if not env_path.exists():
        env_path.write_text(f"{TOKEN_ENV_VAR}=xxxx\n", encoding="utf-8")
    return config_path, env_path
