"""Block tree fetcher.

Retrieves a page's content tree from the Notion API.  Every parent's
children are listed with sequential cursor pagination; nested children are
expanded with an explicit work stack, so arbitrarily deep pages never grow
the Python call stack.

Any API error aborts the whole fetch.  Nothing is retried here: the
transport already retried transient failures, and the generator decides
what to do with the page.
"""

from __future__ import annotations

from dataclasses import dataclass

from notionsite.config import NotionSiteConfig
from notionsite.models import Block
from notionsite.notion_api.blocks import BlockAPI
from notionsite.observability import NoopMetricsHook, get_logger

log = get_logger("notionsite.fetcher")


@dataclass
class FetchStats:
    """Counters for the most recent :meth:`BlockTreeFetcher.fetch`.

    Attributes
    ----------
    rounds:
        Pagination requests issued, over all parents.
    parents:
        Parents whose children were listed (the root included).
    blocks:
        Blocks returned, at every depth.
    """

    rounds: int = 0
    parents: int = 0
    blocks: int = 0


class BlockTreeFetcher:
    """Fetches a complete block tree rooted at a page or block.

    Not thread-safe: the generator creates one per page.

    Parameters
    ----------
    blocks:
        Block endpoint wrapper.
    config:
        Supplies ``page_size`` and the metrics hook.
    """

    def __init__(self, blocks: BlockAPI, config: NotionSiteConfig) -> None:
        self._blocks = blocks
        self._page_size = config.page_size
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()
        self.stats = FetchStats()

    def fetch(self, root_id: str) -> list[Block]:
        """Return the ordered children of *root_id* with nested children
        attached.

        Parameters
        ----------
        root_id:
            ID of the page (or block) whose content is wanted.

        Returns
        -------
        list[Block]
            Direct children in source order.  Every expandable child has
            its :attr:`Block.children` populated, recursively.

        Raises
        ------
        NotionSiteError
            Whatever the transport raised for any parent; the partial tree
            is discarded.
        """
        self.stats = FetchStats()
        roots = self.list_children(root_id)

        pending: list[Block] = [b for b in reversed(roots) if b.expandable]
        while pending:
            block = pending.pop()
            block.children = self.list_children(block.id)
            pending.extend(c for c in reversed(block.children) if c.expandable)

        self._metrics.increment("notionsite.fetch_rounds_total", self.stats.rounds)
        log.debug(
            "Block tree fetched",
            extra={"extra_fields": {
                "op": "fetch",
                "root_id": root_id,
                "rounds": self.stats.rounds,
                "parents": self.stats.parents,
                "blocks": self.stats.blocks,
            }},
        )
        return roots

    def list_children(self, parent_id: str) -> list[Block]:
        """List the direct children of *parent_id*, following cursors.

        Stops when Notion reports no more pages, returns an empty page, or
        omits the next cursor.
        """
        children: list[Block] = []
        cursor: str | None = None
        self.stats.parents += 1

        while True:
            response = self._blocks.list_children(
                parent_id, start_cursor=cursor, page_size=self._page_size,
            )
            self.stats.rounds += 1
            results = response.get("results") or []
            if not results:
                break
            children.extend(Block.from_api(obj) for obj in results)
            if not response.get("has_more", False):
                break
            cursor = response.get("next_cursor")
            if not cursor:
                break

        self.stats.blocks += len(children)
        return children
