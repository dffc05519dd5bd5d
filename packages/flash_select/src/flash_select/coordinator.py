"""
Generation-guarded page fetching.

Requests are never aborted at the transport level. Every request is stamped
with the generation current when it was issued, and its result is applied
only if that generation is still current when it completes: the last request
wins, not the last response.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from pydantic import ValidationError

from .exceptions import FetchCancelledError, PageShapeError
from .schemas import Page, PageRequest, Query

if TYPE_CHECKING:
    from .window import PageWindow

logger = logging.getLogger(__name__)

FetchFunction = Callable[[Query, int], Awaitable[Any]]
ErrorHook = Callable[[Exception], None]


class FetchStatus(Enum):
    """How a fetch ended."""

    APPLIED = "APPLIED"
    STALE = "STALE"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


@dataclass
class FetchOutcome:
    """
    Result of one ``fetch_page`` call.

    Attributes:
        request: The stamped request.
        status: Whether the page was applied, discarded, or never fetched.
        page: The page, when one was received.
        error: The transport error, for FAILED outcomes.
    """

    request: PageRequest
    status: FetchStatus
    page: Page[Any] | None = None
    error: Exception | None = None

    @property
    def applied(self) -> bool:
        return self.status is FetchStatus.APPLIED


def coerce_page(raw: Any) -> Page[Any]:
    """Accept a Page or anything shaped like one (``items`` and ``next_page``)."""
    if isinstance(raw, Page):
        return raw
    try:
        return Page.model_validate(raw)
    except ValidationError as e:
        msg = f"Fetch function returned a malformed page: {type(raw).__name__}"
        raise PageShapeError(msg) from e


class RequestCoordinator:
    """
    Issues page fetches and applies only those of the current generation.

    Transport failures never escape ``fetch_page``: they empty the window,
    are logged, and are reported through ``on_error``.

    Examples:
        >>> window = PageWindow()
        >>> coordinator = RequestCoordinator(fetch_customers, window)
        >>> coordinator.reset(Query(text="acme"))
        >>> outcome = await coordinator.fetch_page(window.query, 1)
        >>> outcome.applied
        True
    """

    def __init__(
        self,
        fetch: FetchFunction,
        window: PageWindow[Any],
        min_query_length: int = 0,
        on_error: ErrorHook | None = None,
    ) -> None:
        if min_query_length < 0:
            raise ValueError("min_query_length must not be negative")
        self._fetch = fetch
        self._window = window
        self.min_query_length = min_query_length
        self.on_error = on_error
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def window(self) -> PageWindow[Any]:
        return self._window

    def invalidate(self) -> int:
        """
        Make every in-flight request stale.

        The window keeps its pages and moves to the new generation, so later
        fetches of the same query apply normally.
        """
        self._generation += 1
        self._window.rebase(self._generation)
        logger.debug("Generation advanced to %s", self._generation)
        return self._generation

    def reset(self, query: Query) -> None:
        """Advance the generation and give ``query`` a fresh window."""
        generation = self.invalidate()
        self._window.reset(
            query, generation, awaiting_input=self.is_below_minimum(query)
        )

    def is_below_minimum(self, query: Query) -> bool:
        return len(query.text) < self.min_query_length

    def is_current(self, request: PageRequest) -> bool:
        return request.generation == self._generation

    async def fetch_page(self, query: Query, page_number: int = 1) -> FetchOutcome:
        """
        Fetch one page of ``query`` and apply it if still current.

        Args:
            query: The committed query.
            page_number: 1-indexed page to fetch.

        Returns:
            The outcome; never raises for transport errors.
        """
        request = PageRequest(
            query=query, page_number=page_number, generation=self._generation
        )

        if self.is_below_minimum(query):
            if self._window.matches(request):
                self._window.reset(query, request.generation, awaiting_input=True)
            return FetchOutcome(request=request, status=FetchStatus.SKIPPED)

        self._window.begin(request)
        try:
            page = coerce_page(await self._fetch(query, page_number))
        except FetchCancelledError:
            logger.debug("Fetch of page %s was cancelled", page_number)
            return FetchOutcome(request=request, status=FetchStatus.CANCELLED)
        except Exception as e:
            if not self.is_current(request):
                logger.debug("Ignoring failure of stale page %s", page_number)
                return FetchOutcome(request=request, status=FetchStatus.STALE, error=e)
            logger.exception("Failed to fetch page %s for %r", page_number, query.text)
            self._window.fail(request, e)
            self._notify_error(e)
            return FetchOutcome(request=request, status=FetchStatus.FAILED, error=e)
        finally:
            self._window.settle(request)

        if not self.is_current(request) or not self._window.append_page(request, page):
            logger.debug(
                "Discarding stale page %s of generation %s",
                page_number,
                request.generation,
            )
            return FetchOutcome(request=request, status=FetchStatus.STALE, page=page)

        return FetchOutcome(request=request, status=FetchStatus.APPLIED, page=page)

    def _notify_error(self, error: Exception) -> None:
        if self.on_error is None:
            return
        try:
            self.on_error(error)
        except Exception:
            logger.exception("Error in on_error hook")
