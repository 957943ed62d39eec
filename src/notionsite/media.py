"""Media materialization: download remote assets into a page bundle.

Notion-hosted file URLs are signed and expire after an hour, so every image,
file, cover and avatar a document references is copied next to the document
and the reference is rewritten to the local copy.

Filenames are derived from the URL: ``<hostname>_<last path segment>``.
Notion names pasted images ``Untitled.png``; for those the parent segment
(a per-file UUID) is used instead so that two pasted images never collide.
"""

from __future__ import annotations

import os
from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urlparse

import httpx

from notionsite.config import NotionSiteConfig
from notionsite.errors import NotionSiteMediaError
from notionsite.observability import NoopMetricsHook, get_logger

log = get_logger("notionsite.media")


class MediaMaterializer:
    """Downloads assets into *dest_dir* and returns their public reference.

    Parameters
    ----------
    config:
        Supplies timeout, proxy and the metrics hook.
    dest_dir:
        Directory receiving the files.  Created on first download.
    public_prefix:
        Prefix of the rewritten reference (``<prefix>/<filename>``).
    client:
        Optional shared :class:`httpx.Client`.
    """

    def __init__(
        self,
        config: NotionSiteConfig,
        dest_dir: str | os.PathLike[str],
        public_prefix: str = "media",
        client: httpx.Client | None = None,
    ) -> None:
        self._config = config
        self.dest_dir = Path(dest_dir)
        self.public_prefix = public_prefix.strip("/")
        self._client = client
        self._owns_client = client is None
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()

    @staticmethod
    def filename_for(url: str) -> str:
        """Return the local filename for *url*.

        Raises
        ------
        NotionSiteMediaError
            If the URL is malformed or has no host or path segment to name
            the file by.
        """
        try:
            parsed = urlparse(url)
            host = parsed.hostname or ""
        except ValueError as exc:
            raise NotionSiteMediaError(
                message=f"Malformed URL {url!r}: {exc}",
                context={"url": url},
                cause=exc,
            ) from exc
        parts = [unquote(p) for p in PurePosixPath(parsed.path).parts if p != "/"]
        if not host or not parts:
            raise NotionSiteMediaError(
                message=f"Cannot derive a filename from {url!r}",
                context={"url": url},
            )
        name = parts[-1]
        if name.startswith("Untitled.") and len(parts) > 1:
            name = parts[-2] + PurePosixPath(name).suffix
        return f"{host}_{name}"

    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self._config.timeout_seconds),
                proxy=self._config.http_proxy,
                follow_redirects=True,
            )
        return self._client

    def download(self, url: str, kind: str = "file") -> Path:
        """Fetch *url* and write it under :attr:`dest_dir`.

        Existing files are overwritten.

        Raises
        ------
        NotionSiteMediaError
            On any HTTP, transport or filesystem failure.
        """
        filename = self.filename_for(url)
        target = self.dest_dir / filename
        try:
            response = self._http().get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise NotionSiteMediaError(
                message=f"Could not download {kind} {url}: {exc}",
                context={"url": url, "kind": kind},
                cause=exc,
            ) from exc
        try:
            self.dest_dir.mkdir(parents=True, exist_ok=True)
            target.write_bytes(response.content)
        except OSError as exc:
            raise NotionSiteMediaError(
                message=f"Could not write {target}: {exc}",
                context={"url": url, "kind": kind, "path": str(target)},
                cause=exc,
            ) from exc
        return target

    def materialize(self, url: str, kind: str = "file") -> str | None:
        """Download *url* and return its rewritten reference.

        Parameters
        ----------
        url:
            Remote asset URL.
        kind:
            ``image``, ``video``, ``file``, ``pdf``, ``audio``, ``cover``,
            ``avatar`` or ``banner``; used for logging and metrics only.

        Returns
        -------
        str | None
            ``"<public_prefix>/<filename>"``, or ``None`` when the asset
            could not be materialized.  Never raises.
        """
        if not url:
            return None
        try:
            path = self.download(url, kind)
        except NotionSiteMediaError as exc:
            self._metrics.increment(
                "notionsite.media_download_total", tags={"kind": kind, "status": "error"},
            )
            log.warning(
                "Media download failed",
                extra={"extra_fields": {
                    "op": "materialize", "url": url, "kind": kind, "error": exc.message,
                }},
            )
            return None

        self._metrics.increment(
            "notionsite.media_download_total", tags={"kind": kind, "status": "ok"},
        )
        log.debug(
            "Media downloaded",
            extra={"extra_fields": {"op": "materialize", "kind": kind, "path": str(path)}},
        )
        if not self.public_prefix:
            return path.name
        return f"{self.public_prefix}/{path.name}"

    def close(self) -> None:
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> MediaMaterializer:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
