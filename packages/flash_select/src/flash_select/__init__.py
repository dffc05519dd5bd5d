from .config import SelectConfig, SelectSettings, select_settings
from .coordinator import FetchOutcome, FetchStatus, RequestCoordinator
from .debounce import QueryDebouncer
from .exceptions import FetchCancelledError, FlashSelectError, PageShapeError
from .formatters import format_select_default
from .logging import scoped_control_id, setup_logging
from .remote import RemoteSource
from .schemas import IndexResponse, Option, Page, PageRequest, Query
from .selection import Selection, SelectionMode, SelectionReconciler
from .session import SessionController, SessionEvent, SessionPhase, transition
from .window import PageWindow, StaticWindow, WindowStatus

__all__ = [
    "FetchCancelledError",
    "FetchOutcome",
    "FetchStatus",
    "FlashSelectError",
    "IndexResponse",
    "Option",
    "Page",
    "PageRequest",
    "PageShapeError",
    "PageWindow",
    "Query",
    "QueryDebouncer",
    "RemoteSource",
    "RequestCoordinator",
    "SelectConfig",
    "SelectSettings",
    "Selection",
    "SelectionMode",
    "SelectionReconciler",
    "SessionController",
    "SessionEvent",
    "SessionPhase",
    "StaticWindow",
    "WindowStatus",
    "format_select_default",
    "scoped_control_id",
    "select_settings",
    "setup_logging",
    "transition",
]
