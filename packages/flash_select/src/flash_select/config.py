"""
Settings and per-control configuration for Flash Select.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from flash_select.schemas import Option


class SelectSettings(BaseSettings):
    """
    Process-wide defaults for every select control.

    Values can be overridden through environment variables or a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Timing ---
    SELECT_DEBOUNCE_MS: int = 300
    COMBOBOX_DEBOUNCE_MS: int = 500

    # --- Scrolling & Display ---
    SCROLL_THRESHOLD_PX: int = 10
    MAX_SELECTED_DISPLAY: int = 2

    # --- Messages ---
    PLACEHOLDER: str = "Select an option"
    EMPTY_MESSAGE: str = "No results found."
    LOADING_MESSAGE: str = "Loading..."
    LOADING_MORE_MESSAGE: str = "Loading more..."
    ERROR_MESSAGE: str = "Could not load results."
    MIN_SEARCH_MESSAGE: str = "Type at least {count} characters to search."
    SELECTED_ONE_LABEL: str = "item selected"
    SELECTED_MANY_LABEL: str = "items selected"

    # --- Remote Source ---
    SEARCH_PARAM: str = "search"
    REQUEST_TIMEOUT_SECONDS: float = 10.0

    @model_validator(mode="after")
    def validate_bounds(self) -> "SelectSettings":
        """Rejects settings that would break debouncing or label truncation."""
        if self.SELECT_DEBOUNCE_MS < 0 or self.COMBOBOX_DEBOUNCE_MS < 0:
            raise ValueError("Debounce delays must not be negative.")
        if self.MAX_SELECTED_DISPLAY < 1:
            raise ValueError("MAX_SELECTED_DISPLAY must be at least 1.")
        return self


select_settings = SelectSettings()


class SelectConfig(BaseModel):
    """
    Configuration of a single select control.

    Examples
    --------
    Paginated multi select with a search threshold::

        >>> config = SelectConfig(multiple=True, min_search_length=3)
        >>> config.debounce_ms
        300

    Static options, no remote source::

        >>> config = SelectConfig(custom_data=[{"id": "1", "name": "Acme"}])
        >>> config.is_static
        True
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(default="select", description="Control id used in logs")
    multiple: bool = Field(default=False, description="Multi selection with apply/cancel")
    clearable: bool = Field(default=True, description="Enables the clear action")
    min_search_length: int = Field(default=0, ge=0)
    call_on_open: bool = Field(
        default=False, description="Defer the first fetch until the session opens"
    )
    custom_data: list[Any] | None = Field(
        default=None, description="Static items; bypasses the remote source"
    )
    debounce_ms: int = Field(
        default_factory=lambda: select_settings.SELECT_DEBOUNCE_MS, ge=0
    )
    fallback_value: str | None = None
    fallback_option: Option | None = None
    placeholder: str = Field(default_factory=lambda: select_settings.PLACEHOLDER)
    empty_message: str = Field(default_factory=lambda: select_settings.EMPTY_MESSAGE)
    loading_message: str = Field(
        default_factory=lambda: select_settings.LOADING_MESSAGE
    )
    loading_more_message: str = Field(
        default_factory=lambda: select_settings.LOADING_MORE_MESSAGE
    )
    error_message: str = Field(default_factory=lambda: select_settings.ERROR_MESSAGE)
    query_params: dict[str, Any] = Field(default_factory=dict)
    toggle_deselect: bool = Field(
        default=True, description="Re-selecting the chosen item clears it"
    )
    multi_display: Literal["count", "labels"] = "count"
    max_selected_display: int = Field(
        default_factory=lambda: select_settings.MAX_SELECTED_DISPLAY, ge=1
    )
    scroll_threshold: int = Field(
        default_factory=lambda: select_settings.SCROLL_THRESHOLD_PX, ge=0
    )

    @property
    def is_static(self) -> bool:
        return self.custom_data is not None

    @classmethod
    def combobox(cls, **overrides: Any) -> "SelectConfig":
        """Defaults of the form combobox: longer debounce, fetch on open."""
        values: dict[str, Any] = {
            "debounce_ms": select_settings.COMBOBOX_DEBOUNCE_MS,
            "call_on_open": True,
        }
        values.update(overrides)
        return cls(**values)

    def min_search_message(self) -> str:
        return select_settings.MIN_SEARCH_MESSAGE.format(count=self.min_search_length)
