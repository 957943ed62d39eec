"""notionsite.notion_api -- Notion API transport and endpoint wrappers.

* :mod:`.rate_limit` -- token bucket pacing.
* :mod:`.retries` -- retry decisions and exponential backoff.
* :mod:`.transport` -- HTTP transport with auth, retries and rate limiting.
* :mod:`.blocks` -- block children listing.
* :mod:`.pages` -- page retrieval and property updates.
* :mod:`.databases` -- database queries.
"""

from __future__ import annotations

from .blocks import BlockAPI
from .databases import DatabaseAPI, build_select_filter
from .pages import PageAPI
from .rate_limit import TokenBucket
from .retries import compute_backoff, should_retry
from .transport import NotionTransport

__all__ = [
    "BlockAPI",
    "DatabaseAPI",
    "NotionTransport",
    "PageAPI",
    "TokenBucket",
    "build_select_filter",
    "compute_backoff",
    "should_retry",
]
