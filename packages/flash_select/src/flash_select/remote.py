"""
HTTP fetch function for list endpoints.

``RemoteSource`` is the bridge between a ``Query`` and a paginated list
endpoint: it builds the request parameters, performs the GET with ``httpx``
and normalizes the response envelope into a ``Page``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from .config import select_settings
from .exceptions import PageShapeError
from .schemas import IndexResponse, Page, Query

logger = logging.getLogger(__name__)


class RemoteSource:
    """
    Async fetch function backed by a paginated list endpoint.

    Requests carry ``page``, the query's extra params and, when the search
    text is not empty, ``<search_param>=<text>``. Transport errors and non-2xx
    responses propagate as ``httpx`` exceptions; the coordinator turns them
    into an error state.

    Examples:
        >>> async with httpx.AsyncClient(base_url="https://api.example.com") as client:
        ...     source = RemoteSource("/private/companies/list", client=client)
        ...     page = await source(Query(text="acme"), 1)
    """

    def __init__(
        self,
        url: str,
        client: httpx.AsyncClient | None = None,
        search_param: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Args:
            url: Endpoint path, relative to the client's base_url.
            client: Shared client. A private one is created lazily if omitted.
            search_param: Name of the search parameter. Defaults to settings.
            timeout: Request timeout in seconds. Defaults to settings.
        """
        self.url = url
        self.search_param = search_param or select_settings.SEARCH_PARAM
        self.timeout = (
            timeout if timeout is not None else select_settings.REQUEST_TIMEOUT_SECONDS
        )
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    def build_params(self, query: Query, page_number: int) -> dict[str, Any]:
        """
        Query string parameters of one page request.

        >>> RemoteSource("/users").build_params(Query(text="ann"), 2)
        {'page': 2, 'search': 'ann'}
        """
        params: dict[str, Any] = {"page": page_number, **query.extra_params}
        if query.text:
            params[self.search_param] = query.text
        return params

    async def __call__(self, query: Query, page_number: int) -> Page[Any]:
        params = self.build_params(query, page_number)
        logger.debug("GET %s %s", self.url, params)

        response = await self.client.get(self.url, params=params, timeout=self.timeout)
        response.raise_for_status()
        return self.parse(response.json())

    @staticmethod
    def parse(payload: Any) -> Page[Any]:
        """Normalize a list envelope into a page."""
        try:
            return IndexResponse.model_validate(payload).to_page()
        except ValidationError as e:
            msg = "Response is not a paginated list envelope"
            raise PageShapeError(msg) from e

    async def aclose(self) -> None:
        """Close the client if this source created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
