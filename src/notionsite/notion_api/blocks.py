"""Block API wrapper for the Notion API.

Only reading is needed: the fetcher drives pagination itself through
:meth:`BlockAPI.list_children` so that it can thread cursors and count
rounds per parent.
"""

from __future__ import annotations

from typing import Any

from .transport import NotionTransport


class BlockAPI:
    """Thin wrapper around the ``/blocks`` endpoints.

    Parameters
    ----------
    transport:
        A configured :class:`NotionTransport` instance.
    """

    def __init__(self, transport: NotionTransport) -> None:
        self._transport = transport

    def retrieve(self, block_id: str) -> dict[str, Any]:
        """Retrieve a single block by its ID."""
        return self._transport.request("GET", f"/blocks/{block_id}")

    def list_children(
        self,
        block_id: str,
        start_cursor: str | None = None,
        page_size: int = 100,
    ) -> dict[str, Any]:
        """Fetch one page of a block's children.

        Parameters
        ----------
        block_id:
            The UUID of the parent block (or page).
        start_cursor:
            ``next_cursor`` of the previous round, ``None`` for the first.
        page_size:
            Maximum number of children returned (Notion caps it at 100).

        Returns
        -------
        dict
            The raw list response with ``results``, ``has_more`` and
            ``next_cursor``.
        """
        params: dict[str, Any] = {"page_size": page_size}
        if start_cursor is not None:
            params["start_cursor"] = start_cursor
        return self._transport.request(
            "GET", f"/blocks/{block_id}/children", params=params,
        )
