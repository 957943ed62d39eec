"""Database query wrapper for the Notion API."""

from __future__ import annotations

from typing import Any

from .transport import NotionTransport


def build_select_filter(prop: str, values: list[str]) -> dict[str, Any] | None:
    """Build an ``or`` filter matching *prop* against any of *values*.

    Returns ``None`` (no filter) when *prop* or *values* is empty.

    Examples
    --------
    >>> build_select_filter("Status", ["Finished"])
    {'or': [{'property': 'Status', 'select': {'equals': 'Finished'}}]}
    """
    if not prop or not values:
        return None
    return {
        "or": [
            {"property": prop, "select": {"equals": value}}
            for value in values
        ],
    }


class DatabaseAPI:
    """Thin wrapper around ``POST /databases/{id}/query``.

    Parameters
    ----------
    transport:
        A configured :class:`NotionTransport` instance.
    """

    def __init__(self, transport: NotionTransport) -> None:
        self._transport = transport

    def query(
        self,
        database_id: str,
        filter: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Return every page of a database matching *filter*.

        Parameters
        ----------
        database_id:
            The UUID of the database.
        filter:
            A Notion filter object, or ``None`` for all entries.

        Returns
        -------
        list[dict]
            Page objects in the order Notion returns them.
        """
        body: dict[str, Any] = {}
        if filter is not None:
            body["filter"] = filter
        return list(self._transport.paginate(
            f"/databases/{database_id}/query",
            method="POST",
            json=body,
        ))
