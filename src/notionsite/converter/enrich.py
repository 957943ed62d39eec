"""Side-channel enrichment for blocks that need more than their payload.

Bookmarks get the OpenGraph data of the bookmarked page, videos and embeds
get their hosting platform and identifier, files get a display name and
callouts get their emoji.  The URL parsers are pure functions; only the
bookmark lookup touches the network.

Every failure surfaces as :class:`NotionSiteEnrichmentError`; the rendering
engine logs it and renders the block without a side channel.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from urllib.parse import unquote, urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from notionsite.config import NotionSiteConfig
from notionsite.errors import NotionSiteEnrichmentError
from notionsite.models import (
    Block,
    BlockType,
    BookmarkInfo,
    CalloutInfo,
    EmbedInfo,
    FileInfo,
    SideChannel,
    VideoInfo,
)
from notionsite.observability import get_logger

log = get_logger("notionsite.enrich")

_YOUTUBE_ID = re.compile(r"(?<=[?&]v=)[^&#]+")
_YOUTU_BE_ID = re.compile(r"(?<=youtu\.be/)[^/?&#]+")
_BILIBILI_ID = re.compile(r"((?<=\.com/video/).*(?=/))|((?<=bvid=).*(?=&cid?))")
_TWEET_ID = re.compile(r"(?<=status/)[^/?]+")
_TWEET_USER = re.compile(r"(?<=com/)[^/]+(?=/status)")
_JSFIDDLE_ID = re.compile(r"(?<=jsfiddle\.net/).*(?=/)")

_TWITTER_HOSTS = ("twitter.com", "x.com")

_USER_AGENT = "Mozilla/5.0 (compatible; notion-site; +https://github.com)"


# ---------------------------------------------------------------------------
# Pure parsers
# ---------------------------------------------------------------------------

def _host(url: str) -> str:
    host = urlparse(url).hostname or ""
    return host[4:] if host.startswith("www.") else host


def parse_video_url(url: str) -> VideoInfo:
    """Identify the hosting platform of a video URL.

    Only YouTube watch URLs and ``youtu.be`` short links are recognised;
    anything else is returned with an empty platform and rendered as a
    plain ``<video>`` element.
    """
    host = _host(url)
    if host.endswith("youtube.com"):
        match = _YOUTUBE_ID.search(url)
    elif host == "youtu.be":
        match = _YOUTU_BE_ID.search(url)
    else:
        match = None
    if match:
        return VideoInfo(platform="youtube", id=match.group(0), url=url)
    return VideoInfo(url=url)


def parse_embed_url(url: str) -> EmbedInfo:
    """Identify the platform and identifier of an embed URL.

    Parameters
    ----------
    url:
        The embed target.

    Returns
    -------
    EmbedInfo
        ``platform`` is one of ``"bilibili"``, ``"twitter"``, ``"gist"``,
        ``"jsfiddle"``, or ``""`` when the URL is not recognised.
    """
    host = _host(url)
    if host.endswith("bilibili.com"):
        match = _BILIBILI_ID.search(url)
        if match:
            return EmbedInfo(platform="bilibili", id=match.group(0), url=url)
    elif host in _TWITTER_HOSTS or host.endswith((".twitter.com", ".x.com")):
        tweet = _TWEET_ID.search(url)
        user = _TWEET_USER.search(url)
        if tweet:
            return EmbedInfo(
                platform="twitter",
                id=tweet.group(0),
                url=url,
                user=user.group(0) if user else "",
            )
    elif host == "gist.github.com":
        path = urlparse(url).path.strip("/")
        if path:
            return EmbedInfo(platform="gist", id=path.replace("/", " "), url=url)
    elif host == "jsfiddle.net":
        match = _JSFIDDLE_ID.search(url)
        if match:
            return EmbedInfo(platform="jsfiddle", id=match.group(0), url=url)
    return EmbedInfo(url=url)


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return ""
    return (tag.get("content") or "").strip()


def parse_opengraph(html: str, base_url: str) -> BookmarkInfo:
    """Extract OpenGraph data from a fetched HTML document.

    Falls back to ``<title>`` and ``<meta name="description">`` when the
    OpenGraph tags are missing.  Relative image and icon references are
    resolved against *base_url*.
    """
    soup = BeautifulSoup(html, "html.parser")

    title = _meta_content(soup, property="og:title")
    if not title and soup.title is not None and soup.title.string:
        title = soup.title.string.strip()

    description = (
        _meta_content(soup, property="og:description")
        or _meta_content(soup, name="description")
    )

    image = _meta_content(soup, property="og:image")
    if image:
        image = urljoin(base_url, image)

    icon = ""
    for link in soup.find_all("link", href=True):
        rel = link.get("rel") or []
        if isinstance(rel, str):
            rel = rel.split()
        if "icon" in [r.lower() for r in rel]:
            icon = urljoin(base_url, link["href"])
            break

    return BookmarkInfo(
        url=_meta_content(soup, property="og:url") or base_url,
        title=title,
        description=description,
        image=image,
        icon=icon,
    )


def file_display_name(url: str) -> str:
    """Return the last path segment of *url* without its extension."""
    segment = unquote(PurePosixPath(urlparse(url).path).name)
    return PurePosixPath(segment).stem if segment else ""


# ---------------------------------------------------------------------------
# Enricher
# ---------------------------------------------------------------------------

class Enricher:
    """Produces the typed side channel of a block.

    Parameters
    ----------
    config:
        Supplies the HTTP timeout and proxy for bookmark lookups.
    client:
        Optional shared :class:`httpx.Client`.  One is created (and owned)
        on first use otherwise.
    """

    def __init__(self, config: NotionSiteConfig, client: httpx.Client | None = None) -> None:
        self._config = config
        self._client = client
        self._owns_client = client is None

    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self._config.timeout_seconds),
                proxy=self._config.http_proxy,
                follow_redirects=True,
                headers={"User-Agent": _USER_AGENT},
            )
        return self._client

    def close(self) -> None:
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    # -- per kind ----------------------------------------------------------

    def bookmark(self, block: Block) -> BookmarkInfo:
        url = block.url
        if not url:
            raise NotionSiteEnrichmentError(
                message=f"Bookmark {block.id} has no URL",
                context={"url": url, "block_type": block.type_name},
            )
        try:
            response = self._http().get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise NotionSiteEnrichmentError(
                message=f"Could not fetch bookmark {url}: {exc}",
                context={"url": url, "block_type": block.type_name},
                cause=exc,
            ) from exc
        info = parse_opengraph(response.text, str(response.url))
        info.url = url
        return info

    def video(self, block: Block) -> VideoInfo:
        return parse_video_url(block.url)

    def embed(self, block: Block) -> EmbedInfo:
        return parse_embed_url(block.url)

    def file_info(self, block: Block, asset_url: str | None = None) -> FileInfo:
        source = block.url
        return FileInfo(
            url=asset_url if asset_url is not None else source,
            file_name=file_display_name(source),
        )

    def callout(self, block: Block) -> CalloutInfo:
        return CalloutInfo(emoji=block.icon_emoji, text=block.plain_text)

    # -- dispatch ----------------------------------------------------------

    def enrich(self, block: Block, asset_url: str | None = None) -> SideChannel | None:
        """Return the side channel for *block*, or ``None`` for block kinds
        that have none.

        Raises
        ------
        NotionSiteEnrichmentError
            When the data could not be produced.
        """
        kind = block.type
        if kind is BlockType.BOOKMARK:
            return self.bookmark(block)
        if kind is BlockType.VIDEO:
            info = self.video(block)
            if asset_url:
                info.url = asset_url
            return info
        if kind is BlockType.EMBED:
            return self.embed(block)
        if kind in (BlockType.FILE, BlockType.PDF, BlockType.AUDIO):
            return self.file_info(block, asset_url)
        if kind is BlockType.CALLOUT:
            return self.callout(block)
        return None
