"""
Open/close lifecycle of one select control.

The controller is the facade callers drive: it forwards keystrokes to the
debouncer, turns committed queries and scroll events into coordinated page
fetches, and applies selection transitions. Every public transition is a
plain method that never blocks; fetches run as tracked tasks.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Final, Generic, Mapping, TypeVar

from .config import SelectConfig
from .coordinator import FetchOutcome, RequestCoordinator
from .debounce import QueryDebouncer
from .formatters import format_select_default, label_of
from .logging import scoped_control_id
from .schemas import Option, Query
from .selection import CustomSelect, SelectionReconciler, SelectionValue, find_option
from .window import PageWindow, StaticWindow, WindowStatus

if TYPE_CHECKING:
    from .coordinator import ErrorHook, FetchFunction
    from .formatters import Formatter

logger = logging.getLogger(__name__)

T = TypeVar("T")

CommitCallback = Callable[[SelectionValue, Any], None]
DataCallback = Callable[[list[Any]], None]


class SessionPhase(Enum):
    """Lifecycle phases of the dropdown."""

    CLOSED = "CLOSED"
    OPENING_FIRST_FETCH = "OPENING_FIRST_FETCH"
    IDLE = "IDLE"
    FETCHING_NEXT = "FETCHING_NEXT"


class SessionEvent(Enum):
    OPEN = "OPEN"
    FIRST_PAGE_REQUESTED = "FIRST_PAGE_REQUESTED"
    FIRST_PAGE_SETTLED = "FIRST_PAGE_SETTLED"
    NEXT_PAGE_REQUESTED = "NEXT_PAGE_REQUESTED"
    NEXT_PAGE_SETTLED = "NEXT_PAGE_SETTLED"
    CLOSE = "CLOSE"


_OPEN_PHASES: Final = (
    SessionPhase.OPENING_FIRST_FETCH,
    SessionPhase.IDLE,
    SessionPhase.FETCHING_NEXT,
)

_TRANSITIONS: dict[tuple[SessionPhase, SessionEvent], SessionPhase] = {
    (SessionPhase.CLOSED, SessionEvent.OPEN): SessionPhase.IDLE,
    (SessionPhase.IDLE, SessionEvent.FIRST_PAGE_REQUESTED): SessionPhase.OPENING_FIRST_FETCH,
    (SessionPhase.FETCHING_NEXT, SessionEvent.FIRST_PAGE_REQUESTED): SessionPhase.OPENING_FIRST_FETCH,
    (SessionPhase.OPENING_FIRST_FETCH, SessionEvent.FIRST_PAGE_SETTLED): SessionPhase.IDLE,
    (SessionPhase.IDLE, SessionEvent.NEXT_PAGE_REQUESTED): SessionPhase.FETCHING_NEXT,
    (SessionPhase.FETCHING_NEXT, SessionEvent.NEXT_PAGE_SETTLED): SessionPhase.IDLE,
    **{(phase, SessionEvent.CLOSE): SessionPhase.CLOSED for phase in _OPEN_PHASES},
}


def transition(phase: SessionPhase, event: SessionEvent) -> SessionPhase:
    """
    Next phase for ``event``; events invalid in ``phase`` leave it unchanged.

    >>> transition(SessionPhase.CLOSED, SessionEvent.OPEN)
    <SessionPhase.IDLE: 'IDLE'>
    >>> transition(SessionPhase.CLOSED, SessionEvent.NEXT_PAGE_REQUESTED)
    <SessionPhase.CLOSED: 'CLOSED'>
    """
    return _TRANSITIONS.get((phase, event), phase)


class SessionController(Generic[T]):
    """
    Selection engine behind one infinite select or async combobox.

    Examples:
        >>> async def fetch(query, page):
        ...     return await api.list_customers(query.text, page)
        >>>
        >>> controller = SessionController(
        ...     fetch,
        ...     SelectConfig(multiple=True),
        ...     value=["7"],
        ...     on_change=lambda value, items: form.set("customers", value),
        ... )
        >>> await controller.start()
        >>> controller.open()
        >>> controller.set_search("acm")
        >>> controller.toggle_multi("9")
        >>> controller.apply_multi()  # on_change(["7", "9"], [...])
    """

    def __init__(
        self,
        fetch: FetchFunction | None = None,
        config: SelectConfig | None = None,
        *,
        value: Any = None,
        formatter: Formatter = format_select_default,
        on_change: CommitCallback | None = None,
        on_error: ErrorHook | None = None,
        on_data: DataCallback | None = None,
        custom_select: CustomSelect | None = None,
    ) -> None:
        """
        Args:
            fetch: Async ``(query, page_number) -> Page``. Optional only when
                ``config.custom_data`` is set.
            config: Control configuration. Defaults to ``SelectConfig()``.
            value: Initial committed value (id or list of ids).
            formatter: Turns raw items into options.
            on_change: Commit callback ``(value, item)``.
            on_error: Receives transport failures.
            on_data: Receives the raw item list whenever it changes.
            custom_select: ``(item, fallback_value) -> label`` override.

        Raises:
            ValueError: If no fetch function is given for a remote control.
        """
        self.config = config or SelectConfig()
        if fetch is None and not self.config.is_static:
            msg = "A fetch function is required unless custom_data is configured"
            raise ValueError(msg)

        self._formatter = formatter
        self.on_change = on_change
        self.on_data = on_data

        self._query_params: dict[str, Any] = dict(self.config.query_params)
        self.window: PageWindow[T] | StaticWindow[T]
        self.coordinator: RequestCoordinator | None
        if self.config.is_static:
            self.window = StaticWindow(self.config.custom_data or [])
            self.coordinator = None
        else:
            self.window = PageWindow(Query.build("", self._query_params))
            self.coordinator = RequestCoordinator(
                fetch,  # type: ignore[arg-type]
                self.window,
                min_query_length=self.config.min_search_length,
                on_error=on_error,
            )

        self.reconciler = SelectionReconciler(
            self.config, value=value, custom_select=custom_select
        )
        self.debouncer = QueryDebouncer(self._commit_query, self.config.debounce_ms)

        self.phase = SessionPhase.CLOSED
        self._search_text = ""
        self._started = False
        self._tasks: set[asyncio.Task[Any]] = set()

    async def __aenter__(self) -> "SessionController[T]":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # --- lifecycle ---

    async def start(self) -> None:
        """
        Eagerly load the first page unless fetching is deferred to ``open``.

        Static controls report their data through ``on_data`` instead.
        """
        if self._started:
            return
        self._started = True

        if self.coordinator is None:
            self._notify_data()
            return
        if not self.config.call_on_open:
            self._request_first_page()

    def open(self) -> None:
        """
        Open the dropdown.

        Fetches page 1 if the current query has none yet, or if its last
        fetch failed: reopening is the retry path after a transport error.
        """
        if self.phase is not SessionPhase.CLOSED:
            return
        self._set_phase(SessionEvent.OPEN)
        self.reconciler.update(self.reconciler.selection.open())

        if self.coordinator is None:
            return
        if self.window.is_loading_first:
            self._set_phase(SessionEvent.FIRST_PAGE_REQUESTED)
        elif self.debouncer.is_pending:
            return
        elif not self.window.requested or self.window.error is not None:
            self._request_first_page()

    def close(self) -> None:
        """Close without applying; a provisional multi selection is dropped."""
        if self.phase is SessionPhase.CLOSED:
            return
        self.reconciler.update(self.reconciler.selection.discard())
        self._set_phase(SessionEvent.CLOSE)

    def cancel_multi(self) -> None:
        self.close()

    async def wait_idle(self) -> None:
        """Wait for every in-flight fetch to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Drop the pending search and cancel in-flight fetches."""
        self.debouncer.cancel()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self.phase = SessionPhase.CLOSED

    # --- search & pagination ---

    def set_search(self, text: str) -> None:
        """Record a keystroke; the query commits after the debounce delay."""
        self._search_text = text
        if self.coordinator is None:
            return
        self.debouncer.push(text)

    def flush_search(self) -> None:
        """Commit the pending search text without waiting for the delay."""
        self.debouncer.flush()

    def set_query_params(self, params: Mapping[str, Any]) -> None:
        """Replace the extra filter params; a changed query refetches."""
        self._query_params = dict(params)
        if self.coordinator is None:
            return
        self._apply_query(Query.build(self.window.query.text, self._query_params))

    def refresh(self) -> None:
        """Refetch the current query from page 1."""
        if self.coordinator is None:
            return
        self._restart(self.window.query)

    def invalidate(self) -> None:
        """Ignore every in-flight response without refetching."""
        if self.coordinator is None:
            return
        self.coordinator.reset(self.window.query)

    def on_scroll(self, scroll_top: float, scroll_height: float, client_height: float) -> bool:
        """Scroll handler of the list; fetches the next page near the bottom."""
        near_bottom = scroll_top + client_height >= scroll_height - self.config.scroll_threshold
        if not near_bottom:
            return False
        return self.on_scroll_near_bottom()

    def on_scroll_near_bottom(self) -> bool:
        """
        Fetch the next page if there is one and none is being fetched.

        Returns:
            True if a fetch was started.
        """
        if self.coordinator is None:
            return False
        if self.phase not in (SessionPhase.IDLE, SessionPhase.FETCHING_NEXT):
            logger.debug("Ignoring scroll in phase %s", self.phase.value)
            return False
        if self.phase is SessionPhase.FETCHING_NEXT or self.window.is_loading:
            return False
        if not self.window.has_next():
            return False

        page_number = self.window.current_page + 1
        self._set_phase(SessionEvent.NEXT_PAGE_REQUESTED)
        self.window.mark_pending(page_number)
        self._schedule_fetch(page_number, SessionEvent.NEXT_PAGE_SETTLED)
        return True

    # --- selection ---

    def select(self, item_id: Any, item: Any = None) -> None:
        """Item click: commits in single mode, toggles in multi mode."""
        if self.config.multiple:
            self.toggle_multi(item_id)
        else:
            self.select_single(item_id, item)

    def select_single(self, item_id: Any, item: Any = None) -> None:
        """Commit ``item_id``, or clear it when it is already selected."""
        if self.config.multiple:
            logger.debug("select_single ignored in multi mode")
            return

        item_id = str(item_id)
        option = find_option(self.items, item_id)
        if item is None and option is not None:
            item = option.item

        selection = self.reconciler.update(
            self.reconciler.selection.select(item_id, self.config.toggle_deselect)
        )
        if selection.committed:
            label = (
                self.reconciler.label_for_option(option)
                if option is not None
                else label_of(item)
            )
            self.reconciler.remember(item_id, label, item)

        self._set_phase(SessionEvent.CLOSE)
        self._reset_search()
        self._commit(selection.value, item if selection.committed else None)

    def toggle_multi(self, item_id: Any) -> None:
        """Add or remove ``item_id`` from the provisional selection."""
        selection = self.reconciler.selection
        if not selection.is_multi or selection.provisional is None:
            logger.debug("toggle_multi ignored outside an open multi session")
            return

        item_id = str(item_id)
        selection = self.reconciler.update(selection.toggle(item_id))
        option = find_option(self.items, item_id)
        if item_id in selection.provisional and option is not None:
            self.reconciler.remember(
                item_id, self.reconciler.label_for_option(option), option.item
            )

    def apply_multi(self) -> None:
        """Commit the provisional selection and close."""
        selection = self.reconciler.selection
        if not selection.is_multi or selection.provisional is None:
            logger.debug("apply_multi ignored outside an open multi session")
            return

        selection = self.reconciler.update(selection.apply())
        items = self.reconciler.items_for(selection.committed, self.items)
        self._set_phase(SessionEvent.CLOSE)
        self._commit(selection.value, items)

    def clear(self) -> None:
        """Empty the selection, reset the search, commit the empty value."""
        if not self.config.clearable:
            logger.debug("clear ignored: control is not clearable")
            return

        selection = self.reconciler.update(self.reconciler.selection.cleared())
        self.reconciler.forget()
        self._search_text = ""
        self.debouncer.cancel()
        self._set_phase(SessionEvent.CLOSE)
        self._commit(selection.value, None)

        if self.coordinator is not None:
            self._restart(Query.build("", self._query_params))

    def set_value(self, value: Any) -> None:
        """Adopt a committed value pushed by the caller (form reset, etc)."""
        self.reconciler.update(self.reconciler.selection.with_value(value))

    # --- derived state ---

    @property
    def is_open(self) -> bool:
        return self.phase is not SessionPhase.CLOSED

    @property
    def search_text(self) -> str:
        return self._search_text

    @property
    def query(self) -> Query:
        return self.window.query

    @property
    def generation(self) -> int:
        return self.coordinator.generation if self.coordinator else 0

    @property
    def raw_items(self) -> list[T]:
        return self.window.items()

    @property
    def items(self) -> list[Option]:
        return self._formatter(self.window.items())

    @property
    def is_debouncing(self) -> bool:
        return self.debouncer.is_pending

    @property
    def is_loading(self) -> bool:
        if self.coordinator is None:
            return False
        if self.window.is_loading_first:
            return True
        return self.is_debouncing and not self.window.items()

    @property
    def is_loading_next(self) -> bool:
        return self.window.is_loading_next

    @property
    def has_more(self) -> bool:
        return self.window.has_next()

    @property
    def status(self) -> WindowStatus:
        if self.coordinator is None:
            return self.window.status
        if len(self._search_text) < self.config.min_search_length:
            return WindowStatus.BELOW_MINIMUM
        if self.is_loading:
            return WindowStatus.LOADING
        return self.window.status

    @property
    def status_message(self) -> str | None:
        """
        Message for the list area, distinct per cause.

        While items show it is None, or the loading-more line when the next
        page is being fetched below them.
        """
        status = self.status
        if status is WindowStatus.READY:
            return self.config.loading_more_message if self.is_loading_next else None
        if status is WindowStatus.BELOW_MINIMUM:
            return self.config.min_search_message()
        if status is WindowStatus.LOADING:
            return self.config.loading_message
        if status is WindowStatus.ERROR:
            return self.config.error_message
        if status is WindowStatus.EMPTY:
            return self.config.empty_message
        return None

    @property
    def value(self) -> SelectionValue:
        return self.reconciler.selection.value

    @property
    def selected_values(self) -> list[str]:
        """Ids checked in the list: provisional while a multi session is open."""
        return list(self.reconciler.selection.active)

    def is_selected(self, item_id: Any) -> bool:
        return self.reconciler.selection.is_selected(item_id)

    @property
    def display_value(self) -> str:
        return self.reconciler.display_value(self.items)

    # --- internals ---

    def _set_phase(self, event: SessionEvent) -> None:
        self.phase = transition(self.phase, event)

    def _should_fetch(self) -> bool:
        return self.is_open or not self.config.call_on_open

    def _commit_query(self, text: str) -> None:
        self._apply_query(Query.build(text, self._query_params))

    def _apply_query(self, query: Query) -> None:
        if query == self.window.query and self.window.requested:
            return
        self._restart(query)

    def _restart(self, query: Query) -> None:
        assert self.coordinator is not None
        self.coordinator.reset(query)
        if self._should_fetch():
            self._request_first_page()

    def _reset_search(self) -> None:
        self._search_text = ""
        self.debouncer.cancel()
        if self.coordinator is not None and self.window.query.text:
            self._apply_query(Query.build("", self._query_params))

    def _request_first_page(self) -> None:
        self._set_phase(SessionEvent.FIRST_PAGE_REQUESTED)
        self.window.mark_pending(1)
        self._schedule_fetch(1, SessionEvent.FIRST_PAGE_SETTLED)

    def _schedule_fetch(self, page_number: int, settled: SessionEvent) -> None:
        assert self.coordinator is not None
        coro = self._run_fetch(
            self.window.query, page_number, settled, self.coordinator.generation
        )
        with scoped_control_id(self.config.name):
            task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_fetch(
        self, query: Query, page_number: int, settled: SessionEvent, generation: int
    ) -> FetchOutcome | None:
        assert self.coordinator is not None
        if generation != self.coordinator.generation:
            # Superseded before the task got to run.
            return None

        try:
            outcome = await self.coordinator.fetch_page(query, page_number)
        finally:
            if generation == self.coordinator.generation:
                self._set_phase(settled)

        if outcome.applied:
            self._notify_data()
        return outcome

    def _notify_data(self) -> None:
        if self.on_data is None:
            return
        try:
            self.on_data(self.window.items())
        except Exception:
            logger.exception("Error in on_data callback")

    def _commit(self, value: SelectionValue, item: Any) -> None:
        logger.debug("Committing %r", value)
        if self.on_change is None:
            return
        try:
            self.on_change(value, item)
        except Exception:
            logger.exception("Error in on_change callback")

