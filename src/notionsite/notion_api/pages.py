"""Page API wrapper for the Notion API."""

from __future__ import annotations

from typing import Any

from .transport import NotionTransport


class PageAPI:
    """Thin wrapper around the ``/pages`` endpoints.

    Parameters
    ----------
    transport:
        A configured :class:`NotionTransport` instance.
    """

    def __init__(self, transport: NotionTransport) -> None:
        self._transport = transport

    def retrieve(self, page_id: str) -> dict[str, Any]:
        """Retrieve a page by its ID.

        Parameters
        ----------
        page_id:
            The UUID of the page (with or without hyphens).

        Returns
        -------
        dict
            The full page object.
        """
        return self._transport.request("GET", f"/pages/{page_id}")

    def update_properties(
        self,
        page_id: str,
        properties: dict[str, Any],
    ) -> dict[str, Any]:
        """Update some of a page's properties.

        Parameters
        ----------
        page_id:
            The UUID of the page to update.
        properties:
            Property values keyed by property name.  Omitted properties are
            left untouched.

        Returns
        -------
        dict
            The updated page object.
        """
        return self._transport.request(
            "PATCH", f"/pages/{page_id}", json={"properties": properties},
        )
