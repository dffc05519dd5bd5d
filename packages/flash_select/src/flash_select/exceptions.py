class FlashSelectError(Exception):
    """Base class for all Flash Select exceptions."""


class FetchCancelledError(FlashSelectError):
    """Raised by a fetch function that aborted because a newer query superseded it."""


class PageShapeError(FlashSelectError, ValueError):
    """Raised when a remote response cannot be normalized into a page."""
