"""
Selection state and label resolution.

``Selection`` is an immutable value: every transition returns a new instance,
so the controller can swap states atomically and tests can assert on plain
values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterable, Sequence

from .config import select_settings

if TYPE_CHECKING:
    from .config import SelectConfig
    from .schemas import Option

logger = logging.getLogger(__name__)

SelectionValue = str | list[str]
CustomSelect = Callable[[Any, str | None], str | None]


class SelectionMode(Enum):
    SINGLE = "single"
    MULTI = "multi"


def _normalize_ids(value: Any) -> tuple[str, ...]:
    if value is None or value == "":
        return ()
    if isinstance(value, (list, tuple, set, frozenset)):
        ids: list[str] = []
        for v in value:
            if v is None or v == "":
                continue
            if str(v) not in ids:
                ids.append(str(v))
        return tuple(ids)
    return (str(value),)


@dataclass(frozen=True)
class Selection:
    """
    Committed and provisional selected ids.

    Attributes:
        mode: Single or multi selection.
        committed: Ids owned by the caller, in the order they were chosen.
        provisional: Ids of an open multi-select session; None otherwise.
    """

    mode: SelectionMode = SelectionMode.SINGLE
    committed: tuple[str, ...] = ()
    provisional: tuple[str, ...] | None = None

    @classmethod
    def from_value(cls, value: Any, multiple: bool = False) -> "Selection":
        """
        Build a closed selection from an external value.

        >>> Selection.from_value("item-1").committed
        ('item-1',)
        >>> Selection.from_value(["a", "b"], multiple=True).value
        ['a', 'b']
        """
        ids = _normalize_ids(value)
        if multiple:
            return cls(mode=SelectionMode.MULTI, committed=ids)
        return cls(mode=SelectionMode.SINGLE, committed=ids[:1])

    @property
    def is_multi(self) -> bool:
        return self.mode is SelectionMode.MULTI

    @property
    def active(self) -> tuple[str, ...]:
        """Ids a list should render as checked right now."""
        return self.provisional if self.provisional is not None else self.committed

    @property
    def value(self) -> SelectionValue:
        """The committed value in the shape the commit callback uses."""
        if self.is_multi:
            return list(self.committed)
        return self.committed[0] if self.committed else ""

    def is_selected(self, item_id: Any) -> bool:
        return str(item_id) in self.active

    def open(self) -> "Selection":
        """Seed the provisional selection of a multi session."""
        if not self.is_multi:
            return self
        return replace(self, provisional=self.committed)

    def select(self, item_id: Any, toggle_deselect: bool = True) -> "Selection":
        """Single mode commit; re-selecting the current id clears it."""
        item_id = str(item_id)
        if toggle_deselect and self.committed == (item_id,):
            return replace(self, committed=(), provisional=None)
        return replace(self, committed=(item_id,), provisional=None)

    def toggle(self, item_id: Any) -> "Selection":
        """Add or remove ``item_id`` from the provisional set."""
        if self.provisional is None:
            return self
        item_id = str(item_id)
        if item_id in self.provisional:
            ids = tuple(i for i in self.provisional if i != item_id)
        else:
            ids = self.provisional + (item_id,)
        return replace(self, provisional=ids)

    def apply(self) -> "Selection":
        if self.provisional is None:
            return self
        return replace(self, committed=self.provisional, provisional=None)

    def discard(self) -> "Selection":
        return replace(self, provisional=None)

    def cleared(self) -> "Selection":
        return replace(self, committed=(), provisional=None)

    def with_value(self, value: Any) -> "Selection":
        """Replace the committed ids, keeping an open session open."""
        fresh = Selection.from_value(value, multiple=self.is_multi)
        return replace(self, committed=fresh.committed)


def find_option(options: Sequence[Option], item_id: str) -> Option | None:
    for option in options:
        if option.value == item_id:
            return option
    return None


class SelectionReconciler:
    """
    Owns the selection of one control and derives what the trigger shows.

    Labels resolve in strict priority order: the label cached when the user
    picked the item, a matching option of the loaded items (optionally
    through ``custom_select``), the caller's fallback option, the raw value,
    and finally the placeholder.
    """

    def __init__(
        self,
        config: SelectConfig,
        value: Any = None,
        custom_select: CustomSelect | None = None,
    ) -> None:
        self.config = config
        self.custom_select = custom_select
        self.selection = Selection.from_value(value, multiple=config.multiple)
        self._labels: dict[str, str] = {}
        self._items: dict[str, Any] = {}

    # --- state ---

    def update(self, selection: Selection) -> Selection:
        previous, self.selection = self.selection, selection
        if previous != selection:
            logger.debug("Selection %s -> %s", previous.active, selection.active)
        self._prune()
        return selection

    def remember(self, item_id: Any, label: str | None, item: Any = None) -> None:
        """Cache the label shown at the moment ``item_id`` was picked."""
        item_id = str(item_id)
        if label:
            self._labels[item_id] = label
        if item is not None:
            self._items[item_id] = item

    def forget(self) -> None:
        self._labels.clear()
        self._items.clear()

    def _prune(self) -> None:
        keep = set(self.selection.committed) | set(self.selection.provisional or ())
        for cache in (self._labels, self._items):
            for item_id in list(cache):
                if item_id not in keep:
                    del cache[item_id]

    # --- derivations ---

    def label_for_option(self, option: Option) -> str:
        if self.custom_select is not None:
            label = self.custom_select(option.item, self.config.fallback_value)
            if label:
                return label
        return option.label

    def resolve_label(self, item_id: str, options: Sequence[Option]) -> str:
        """Label of one selected id; never empty for a non-empty id."""
        cached = self._labels.get(item_id)
        if cached:
            return cached

        option = find_option(options, item_id)
        if self.custom_select is not None:
            item = option.item if option is not None else self._items.get(item_id)
            label = self.custom_select(item, self.config.fallback_value)
            if label:
                return label
        if option is not None and option.label:
            return option.label

        fallback = self.config.fallback_option
        if fallback is not None and fallback.value == item_id and fallback.label:
            return fallback.label

        if not self.selection.is_multi and self.config.fallback_value:
            return self.config.fallback_value
        return item_id

    def display_value(self, options: Sequence[Option]) -> str:
        """Text of the trigger button for the committed value."""
        committed = self.selection.committed
        if not committed:
            return self.config.placeholder

        if not self.selection.is_multi:
            return self.resolve_label(committed[0], options)

        if self.config.multi_display == "count":
            noun = (
                select_settings.SELECTED_ONE_LABEL
                if len(committed) == 1
                else select_settings.SELECTED_MANY_LABEL
            )
            return f"{len(committed)} {noun}"

        labels = [self.resolve_label(item_id, options) for item_id in committed]
        shown = self.config.max_selected_display
        if len(labels) <= shown:
            return ", ".join(labels)
        return f"{', '.join(labels[:shown])} +{len(labels) - shown}"

    def items_for(self, ids: Iterable[str], options: Sequence[Option]) -> list[Any]:
        """Raw items of ``ids`` that are loaded or were cached on selection."""
        items: list[Any] = []
        for item_id in ids:
            option = find_option(options, item_id)
            if option is not None and option.item is not None:
                items.append(option.item)
            elif item_id in self._items:
                items.append(self._items[item_id])
        return items
