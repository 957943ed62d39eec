"""Page metadata: Notion properties to a document header.

Two views are derived from a database entry:

* :class:`PageProps` -- the fixed-schema properties that steer rendering and
  output placement (kind, title, file name, position, ...);
* a :class:`~notionsite.models.MetadataRecord` -- every readable property
  keyed by its lower-cased name, later trimmed to the header schema by
  :func:`serialize_header`.

Property values are read by their Notion type.  Types without a sensible
header representation (relation, rollup, ...) are logged and skipped.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import yaml

from notionsite.config import DynamicProp, NotionSiteConfig
from notionsite.converter.rich_text import render_rich_text
from notionsite.media import MediaMaterializer
from notionsite.models import MetadataRecord, Page, PageKind, parse_rich_text
from notionsite.observability import get_logger

log = get_logger("notionsite.metadata")

NAME_PROP = "Name"
TITLE_PROP = "Title"
STATUS_PROP = "Status"
CATEGORIES_PROP = "Categories"
TAGS_PROP = "Tags"
POSITION_PROP = "Position"
FILE_NAME_PROP = "FileName"
DESCRIPTION_PROP = "Description"
CREATE_AT_PROP = "CreateAt"
AUTHOR_PROP = "Author"
LAST_MOD_PROP = "Lastmod"
EXPIRY_DATE_PROP = "ExpiryDate"
PUBLISH_DATE_PROP = "PublishDate"
SHOW_COMMENTS_PROP = "ShowComments"
SLUG_PROP = "Slug"
TYPE_PROP = "Type"

DEFAULT_POSITION = "content/post"

HEADER_FIELDS: tuple[str, ...] = (
    "title",
    "status",
    "position",
    "categories",
    "tags",
    "keywords",
    "createat",
    "author",
    "avatar",
    "lastmod",
    "publishdate",
    "description",
    "draft",
    "expirydate",
    "show_comments",
    "slug",
    "image",
    "weight",
    "type",
)
"""Header keys emitted by :func:`serialize_header`, in output order."""

# Property name (lower-cased) -> header key, where they differ.
_KEY_ALIASES: dict[str, str] = {
    "showcomments": "show_comments",
}


class UnsupportedPropertyError(ValueError):
    """A property type has no header representation."""


@dataclass(frozen=True)
class BannerImage:
    """A files-property image, downloaded only when the header is emitted."""

    url: str


# ---------------------------------------------------------------------------
# Value readers
# ---------------------------------------------------------------------------

def format_date(value: str) -> str:
    """Format a Notion date or timestamp as RFC 3339 with seconds precision.

    Date-only values are taken as midnight UTC.  Values that do not parse
    are returned unchanged.
    """
    if not value:
        return ""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.isoformat(timespec="seconds")


def _text(segments: list[dict] | None) -> str | None:
    text = render_rich_text(parse_rich_text(segments))
    return text or None


def _option_name(option: dict | None) -> str | None:
    if not option:
        return None
    return option.get("name") or None


def _date(prop: dict) -> str | None:
    value = prop.get("date")
    if not value:
        return None
    # The end of a range wins over its start.
    return format_date(value.get("end") or value.get("start") or "") or None


def _user_name(user: dict | None) -> str | None:
    if not user:
        return None
    return user.get("name") or None


def _formula(prop: dict) -> Any:
    formula = prop.get("formula") or {}
    kind = formula.get("type", "")
    if kind == "date":
        return _date({"date": formula.get("date")})
    return formula.get(kind)


_READERS: dict[str, Callable[[dict], Any]] = {
    "title": lambda p: _text(p.get("title")),
    "rich_text": lambda p: _text(p.get("rich_text")),
    "select": lambda p: _option_name(p.get("select")),
    "status": lambda p: _option_name(p.get("status")),
    "multi_select": lambda p: [o.get("name", "") for o in p.get("multi_select") or []],
    "date": _date,
    "created_time": lambda p: format_date(p.get("created_time") or "") or None,
    "last_edited_time": lambda p: format_date(p.get("last_edited_time") or "") or None,
    "created_by": lambda p: _user_name(p.get("created_by")),
    "last_edited_by": lambda p: _user_name(p.get("last_edited_by")),
    "checkbox": lambda p: bool(p.get("checkbox", False)),
    "number": lambda p: p.get("number"),
    "url": lambda p: p.get("url") or None,
    "email": lambda p: p.get("email") or None,
    "phone_number": lambda p: p.get("phone_number") or None,
    "formula": _formula,
}


def read_property(prop: dict) -> Any:
    """Read one property value by its Notion type.

    ``people`` and ``files`` need side effects and are handled by
    :class:`MetadataExtractor`.

    Raises
    ------
    UnsupportedPropertyError
        For types without a reader.
    """
    kind = prop.get("type", "")
    reader = _READERS.get(kind)
    if reader is None:
        raise UnsupportedPropertyError(kind)
    return reader(prop)


def _file_url(obj: dict) -> str:
    source = obj.get("type", "")
    return (obj.get(source) or {}).get("url", "")


# ---------------------------------------------------------------------------
# Dynamic properties
# ---------------------------------------------------------------------------

def _read_dynamic(prop: dict, kind: str) -> Any:
    if kind == "richtext":
        return _text(prop.get("rich_text"))
    if kind == "select":
        return _option_name(prop.get("select") or prop.get("status"))
    if kind == "multiselect":
        names = [o.get("name", "") for o in prop.get("multi_select") or []]
        return names or None
    if kind == "number":
        return prop.get("number")
    if kind == "checkbox":
        return prop.get("checkbox")
    if kind == "date":
        return _date(prop)
    if kind == "title":
        return _text(prop.get("title"))
    return _text(prop.get("rich_text")) or _text(prop.get("title"))


def coerce_output(value: Any, output_type: str | None) -> Any:
    """Convert a dynamic property value to its declared output type.

    Raises
    ------
    ValueError
        If the value cannot be represented as *output_type*.
    """
    if not output_type:
        return value
    kind = output_type.lower()
    if kind == "string":
        if isinstance(value, list):
            return ", ".join(str(v) for v in value)
        return str(value)
    if kind == "number":
        number = float(value)
        return int(number) if number.is_integer() else number
    if kind == "bool":
        if isinstance(value, str):
            return value.strip().lower() in ("true", "yes", "1", "on")
        return bool(value)
    if kind == "list":
        if isinstance(value, list):
            return value
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return [value]
    raise ValueError(f"unknown output type {output_type!r}")


# ---------------------------------------------------------------------------
# Page properties
# ---------------------------------------------------------------------------

@dataclass
class PageProps:
    """The fixed-schema properties of a database entry."""

    name: str = ""
    title_prop: str = ""
    status: str = ""
    categories: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    position: str = DEFAULT_POSITION
    file_name_prop: str = ""
    description: str = ""
    created_at: str = ""
    slug: str = ""
    type: str = ""

    @property
    def kind(self) -> PageKind:
        return PageKind.from_type(self.type)

    @property
    def is_setting(self) -> bool:
        return self.kind is PageKind.SETTING

    @property
    def is_folder(self) -> bool:
        return self.kind is PageKind.FOLDER

    @property
    def is_gallery(self) -> bool:
        return self.kind is PageKind.GALLERY

    @property
    def is_custom_name_file(self) -> bool:
        return not self.is_setting and bool(self.file_name_prop)

    @property
    def title(self) -> str:
        """``Title`` > ``Name`` > (setting pages only) ``FileName``."""
        if self.title_prop or self.name:
            return self.title_prop or self.name
        return self.file_name_prop if self.is_setting else ""

    @property
    def file_name(self) -> str:
        """``FileName`` > ``Name`` > ``Title``."""
        return self.file_name_prop or self.name or self.title_prop


class MetadataExtractor:
    """Builds :class:`PageProps` and the header record of a page.

    Parameters
    ----------
    config:
        Supplies the dynamic property declarations.
    media:
        Materializer for cover, avatar and banner images.  Without one,
        images are left out of the header.
    """

    def __init__(self, config: NotionSiteConfig, media: MediaMaterializer | None = None) -> None:
        self._config = config
        self._media = media

    def page_props(self, page: Page) -> PageProps:
        props = page.properties

        def get(name: str, kind: str) -> Any:
            prop = props.get(name)
            if not prop or prop.get("type") != kind:
                return None
            return read_property(prop)

        created = page.created_time
        create_at = props.get(CREATE_AT_PROP)
        if create_at and create_at.get("type") == "created_time":
            created = create_at.get("created_time") or created

        return PageProps(
            name=get(NAME_PROP, "title") or "",
            title_prop=get(TITLE_PROP, "rich_text") or get(TITLE_PROP, "title") or "",
            status=get(STATUS_PROP, "select") or get(STATUS_PROP, "status") or "",
            categories=get(CATEGORIES_PROP, "multi_select") or [],
            tags=get(TAGS_PROP, "multi_select") or [],
            position=get(POSITION_PROP, "select") or DEFAULT_POSITION,
            file_name_prop=get(FILE_NAME_PROP, "rich_text") or "",
            description=get(DESCRIPTION_PROP, "rich_text") or "",
            created_at=created,
            slug=get(SLUG_PROP, "rich_text") or "",
            type=get(TYPE_PROP, "select") or "",
        )

    def extract(self, page: Page, props: PageProps | None = None) -> MetadataRecord:
        """Read every supported property of *page* into a header record.

        Parameters
        ----------
        page:
            The database entry.
        props:
            Its :class:`PageProps`, computed when omitted.

        Returns
        -------
        MetadataRecord
            Lower-cased keys.  ``title`` and ``position`` always hold the
            derived values; dynamic properties override same-named fields.
        """
        props = props or self.page_props(page)
        record = MetadataRecord()

        if page.cover_url and self._media is not None:
            cover = self._media.materialize(page.cover_url, "cover")
            if cover:
                record["image"] = cover

        for name, prop in page.properties.items():
            kind = prop.get("type", "")
            key = _KEY_ALIASES.get(name.lower(), name.lower())
            if kind == "people":
                self._read_people(prop, key, record)
                continue
            if kind == "files":
                files = prop.get("files") or []
                if files:
                    record[key] = BannerImage(_file_url(files[-1]))
                continue
            try:
                value = read_property(prop)
            except UnsupportedPropertyError:
                log.warning(
                    "Unsupported property type",
                    extra={"extra_fields": {
                        "op": "extract", "page_id": page.id, "property": name, "type": kind,
                    }},
                )
                continue
            if value is None:
                continue
            record[key] = value

        record["title"] = props.title
        record["position"] = props.position
        self._apply_dynamic(page, record)
        return record

    def _read_people(self, prop: dict, key: str, record: MetadataRecord) -> None:
        people = [p for p in prop.get("people") or [] if p]
        names = [p.get("name", "") for p in people if p.get("name")]
        if not names:
            return
        record[key] = names[0] if len(names) == 1 else names
        avatar = next((p.get("avatar_url") for p in people if p.get("avatar_url")), None)
        if avatar and self._media is not None:
            ref = self._media.materialize(avatar, "avatar")
            if ref:
                record["avatar"] = ref

    def _apply_dynamic(self, page: Page, record: MetadataRecord) -> None:
        for spec in self._config.dynamic_props:
            try:
                value = self._dynamic_value(page, spec)
            except (TypeError, ValueError, AttributeError) as exc:
                log.warning(
                    "Dynamic property skipped",
                    extra={"extra_fields": {
                        "op": "dynamic_props", "page_id": page.id,
                        "property": spec.name, "error": str(exc),
                    }},
                )
                continue
            if value is not None:
                record[spec.key] = value

    @staticmethod
    def _dynamic_value(page: Page, spec: DynamicProp) -> Any:
        prop = page.properties.get(spec.name)
        value = _read_dynamic(prop, spec.type) if prop else None
        if value is None:
            if not spec.has_default:
                return None
            value = spec.default_value
        return coerce_output(value, spec.output_type)


# ---------------------------------------------------------------------------
# Header serialization
# ---------------------------------------------------------------------------

def header_fields(record: MetadataRecord, dynamic_keys: Iterable[str] = ()) -> dict[str, Any]:
    """Select the header fields of *record* in output order, banner images
    excluded."""
    out: dict[str, Any] = {}
    for key in (*HEADER_FIELDS, *dynamic_keys):
        if key in record and not isinstance(record[key], BannerImage):
            out[key.lower()] = record[key]
    return out


def serialize_header(
    record: MetadataRecord,
    media: MediaMaterializer | None = None,
    dynamic_keys: Iterable[str] = (),
) -> str:
    """Render the ``---`` delimited YAML header of a document.

    Banner images are downloaded here and emitted last under their own key;
    a banner that cannot be downloaded is left out.
    """
    fields = header_fields(record, dynamic_keys)
    for key, value in record.items():
        if isinstance(value, BannerImage):
            ref = media.materialize(value.url, "banner") if media is not None else None
            if ref:
                fields[key] = ref
    if not fields:
        return ""
    body = yaml.safe_dump(
        fields,
        default_flow_style=None,
        allow_unicode=True,
        sort_keys=False,
    )
    return f"---\n{body}---\n"
