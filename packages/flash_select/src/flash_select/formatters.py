"""Item formatters turning domain objects into select options."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Callable, Sequence

from .schemas import Option

logger = logging.getLogger(__name__)

Formatter = Callable[[Sequence[Any]], list[Option]]


def _read(item: Any, key: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(key)
    return getattr(item, key, None)


def format_select_default(
    items: Sequence[Any], name_with_id: bool = False
) -> list[Option]:
    """
    Format items exposing ``id`` and ``name`` (keys or attributes).

    Args:
        items: Raw items from a page or from ``custom_data``.
        name_with_id: Prefix labels with the id, e.g. ``"7 - Acme"``.

    >>> [o.label for o in format_select_default([{"id": 7, "name": "Acme"}], True)]
    ['7 - Acme']
    """
    options: list[Option] = []
    for item in items:
        item_id = _read(item, "id")
        if item_id is None or item_id == "":
            logger.warning("Skipping item without an id: %r", item)
            continue
        name = _read(item, "name") or _read(item, "label") or ""
        label = f"{item_id} - {name}" if name_with_id else str(name)
        options.append(Option(label=label, value=item_id, item=item))
    return options


def label_of(item: Any) -> str:
    """Best-effort label of a raw item: ``label``, then ``name``."""
    if item is None:
        return ""
    return str(_read(item, "label") or _read(item, "name") or "")
