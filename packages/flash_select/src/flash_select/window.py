"""Accumulated pages of the current query."""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, Iterable, TypeVar

from .schemas import Query

if TYPE_CHECKING:
    from .schemas import Page, PageRequest

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WindowStatus(Enum):
    """What the list area of the control should show."""

    IDLE = "IDLE"
    LOADING = "LOADING"
    BELOW_MINIMUM = "BELOW_MINIMUM"
    ERROR = "ERROR"
    EMPTY = "EMPTY"
    READY = "READY"


class PageWindow(Generic[T]):
    """
    Ordered accumulation of the pages fetched for one query.

    The window belongs to exactly one (query, generation) pair. Requests
    stamped with any other pair are ignored, so a late reply can never
    append to the window of a newer query. Items are exposed in fetch order
    and never de-duplicated.
    """

    def __init__(self, query: Query | None = None, generation: int = 0) -> None:
        self.query: Query = query or Query()
        self.generation = generation
        self.pages: list[Page[T]] = []
        self.is_loading_first = False
        self.is_loading_next = False
        self.error: Exception | None = None
        self.awaiting_input = False
        self.requested = False

    def reset(self, query: Query, generation: int, awaiting_input: bool = False) -> None:
        """Start over for ``query``; everything fetched so far is dropped."""
        self.query = query
        self.generation = generation
        self.pages = []
        self.is_loading_first = False
        self.is_loading_next = False
        self.error = None
        self.awaiting_input = awaiting_input
        self.requested = False

    def rebase(self, generation: int) -> None:
        """
        Move to ``generation`` keeping the pages fetched so far.

        Requests in flight belong to the old generation and can no longer
        settle here, so their loading flags are cleared now.
        """
        self.generation = generation
        self.is_loading_first = False
        self.is_loading_next = False
        if not self.pages:
            self.requested = False

    def matches(self, request: PageRequest) -> bool:
        return request.query == self.query and request.generation == self.generation

    def mark_pending(self, page_number: int) -> None:
        """Flag a fetch as scheduled before its task gets to run."""
        self.requested = True
        if page_number == 1:
            self.is_loading_first = True
        else:
            self.is_loading_next = True

    def begin(self, request: PageRequest) -> None:
        """Mark ``request`` in flight."""
        if not self.matches(request):
            return
        self.requested = True
        self.awaiting_input = False
        if request.page_number == 1:
            self.is_loading_first = True
            self.error = None
        else:
            self.is_loading_next = True

    def settle(self, request: PageRequest) -> None:
        """Clear the loading flag ``request`` set, whatever its outcome."""
        if not self.matches(request):
            return
        if request.page_number == 1:
            self.is_loading_first = False
        else:
            self.is_loading_next = False

    def append_page(self, request: PageRequest, page: Page[T]) -> bool:
        """
        Append ``page`` if it was fetched for this window.

        Returns:
            True if the page was appended, False if it was ignored.
        """
        if not self.matches(request):
            logger.debug(
                "Ignoring page %s of generation %s (window is at %s)",
                request.page_number,
                request.generation,
                self.generation,
            )
            return False
        if request.page_number == 1:
            # A refetch of the first page replaces the window content.
            self.pages = []
        self.pages.append(page)
        self.error = None
        return True

    def fail(self, request: PageRequest, error: Exception) -> None:
        """Empty the window and record ``error``."""
        if not self.matches(request):
            return
        self.pages = []
        self.error = error
        self.is_loading_first = False
        self.is_loading_next = False

    def items(self) -> list[T]:
        return [item for page in self.pages for item in page.items]

    def has_next(self) -> bool:
        return bool(self.pages) and self.pages[-1].next_page is not None

    @property
    def current_page(self) -> int:
        return self.pages[-1].current_page if self.pages else 0

    @property
    def next_page(self) -> int | None:
        return self.pages[-1].next_page if self.pages else None

    @property
    def is_loading(self) -> bool:
        return self.is_loading_first or self.is_loading_next

    @property
    def status(self) -> WindowStatus:
        if self.awaiting_input:
            return WindowStatus.BELOW_MINIMUM
        if self.is_loading_first:
            return WindowStatus.LOADING
        if self.error is not None:
            return WindowStatus.ERROR
        if self.pages:
            return WindowStatus.READY if self.items() else WindowStatus.EMPTY
        return WindowStatus.IDLE


class StaticWindow(Generic[T]):
    """
    Window over a fixed item list supplied by the caller.

    Nothing is ever fetched: the window is never loading and never has a
    next page.
    """

    is_loading_first = False
    is_loading_next = False
    is_loading = False
    error = None
    awaiting_input = False
    requested = True

    def __init__(self, items: Iterable[T]) -> None:
        self._items: list[T] = list(items)
        self.query = Query()
        self.generation = 0

    def reset(self, query: Query, generation: int, awaiting_input: bool = False) -> None:
        self.query = query
        self.generation = generation

    def append_page(self, request: Any, page: Any) -> bool:
        return False

    def items(self) -> list[T]:
        return list(self._items)

    def has_next(self) -> bool:
        return False

    @property
    def current_page(self) -> int:
        return 1

    @property
    def status(self) -> WindowStatus:
        return WindowStatus.READY if self._items else WindowStatus.EMPTY
