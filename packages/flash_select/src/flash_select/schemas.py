"""
Pydantic schemas shared by the selection engine.
"""

from typing import Annotated, Any, Generic, Mapping, TypeVar

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field

T = TypeVar("T")


def _as_id(value: Any) -> Any:
    """Ids arrive as ints, UUIDs and the like; the engine compares strings."""
    if value is not None and not isinstance(value, str):
        return str(value)
    return value


Id = Annotated[str, BeforeValidator(_as_id)]


class Query(BaseModel):
    """
    Committed search text plus extra filter parameters.

    Queries compare and hash structurally, so a debounced keystroke that gives the
    same text is not a new query.

    >>> Query(text="acme") == Query(text="acme")
    True
    >>> Query.build("acme", {"status": "active", "region": ""}).extra_params
    {'status': 'active'}
    """

    model_config = ConfigDict(frozen=True)

    text: str = ""
    extra_params: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def build(cls, text: str, params: Mapping[str, Any] | None = None) -> "Query":
        """Build a query, dropping falsy filter values the backend should not see."""
        cleaned = {key: str(value) for key, value in (params or {}).items() if value}
        return cls(text=text, extra_params=cleaned)

    def __hash__(self) -> int:
        return hash((self.text, tuple(sorted(self.extra_params.items()))))


class PageRequest(BaseModel):
    """One fetch of one page, stamped with the generation that issued it."""

    model_config = ConfigDict(frozen=True)

    query: Query
    page_number: int = Field(default=1, ge=1)
    generation: int = Field(default=0, ge=0)


class Page(BaseModel, Generic[T]):
    """
    Normalized result of one fetch.

    ``next_page`` of ``None`` terminates pagination. Fetch functions may
    return the camelCase keys of the list endpoints as well.

    >>> Page(items=["a", "b"], current_page=1, next_page=2).next_page
    2
    >>> Page.model_validate({"items": [], "currentPage": 1, "nextPage": 2}).next_page
    2
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    items: list[T] = Field(..., description="Items of this page in backend order")
    current_page: int = Field(
        default=1,
        ge=1,
        validation_alias=AliasChoices("current_page", "currentPage"),
    )
    next_page: int | None = Field(
        default=None,
        validation_alias=AliasChoices("next_page", "nextPage"),
        description="None on the last page",
    )


class Option(BaseModel):
    """The label/value/item triple a formatter produces for one item."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    label: str
    value: Id
    item: Any = None


class PaginationMeta(BaseModel):
    """Pagination block of the list endpoints."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    current_page: int = Field(..., alias="currentPage", ge=1)
    last_page: int = Field(..., alias="lastPage", ge=0)
    total_items: int | None = Field(default=None, alias="totalItems")
    next_page: int | None = Field(default=None, alias="nextPage")
    prev_page: int | None = Field(default=None, alias="prevPage")


class IndexData(BaseModel):
    model_config = ConfigDict(extra="allow")

    items: list[Any]
    pagination: PaginationMeta


class IndexResponse(BaseModel):
    """
    Envelope returned by the list endpoints.

    Example:
        >>> envelope = IndexResponse.model_validate(
        ...     {"data": {"items": [{"id": 1}], "pagination": {"currentPage": 1, "lastPage": 3}}}
        ... )
        >>> envelope.to_page().next_page
        2
    """

    model_config = ConfigDict(extra="ignore")

    status: int | None = None
    success: bool | None = None
    message: str | None = None
    code: str | None = None
    data: IndexData

    def to_page(self) -> Page[Any]:
        meta = self.data.pagination
        next_page = meta.current_page + 1 if meta.current_page < meta.last_page else None
        return Page(
            items=self.data.items,
            current_page=meta.current_page,
            next_page=next_page,
        )
