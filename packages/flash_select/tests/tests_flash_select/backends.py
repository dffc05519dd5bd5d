"""Fake fetch functions shared by the engine tests."""

import asyncio
import math
from dataclasses import dataclass, field
from typing import Any

from flash_select.schemas import Page, Query

CUSTOMERS = [
    {"id": "item-1", "name": "Acme"},
    {"id": "item-2", "name": "Globex"},
    {"id": "item-3", "name": "Initech"},
    {"id": "item-4", "name": "Umbrella"},
    {"id": "item-5", "name": "Hooli"},
]


class FakeBackend:
    """
    In-memory list endpoint: filters names by the query text and pages the
    matches by ``page_size``. Records every call it receives.
    """

    def __init__(self, records: list[dict[str, Any]] | None = None, page_size: int = 2):
        self.records = records if records is not None else list(CUSTOMERS)
        self.page_size = page_size
        self.calls: list[tuple[Query, int]] = []

    async def __call__(self, query: Query, page_number: int) -> Page[Any]:
        self.calls.append((query, page_number))
        await asyncio.sleep(0)

        needle = query.text.lower()
        matching = [r for r in self.records if needle in r["name"].lower()]
        start = (page_number - 1) * self.page_size
        last_page = max(1, math.ceil(len(matching) / self.page_size))
        return Page(
            items=matching[start : start + self.page_size],
            current_page=page_number,
            next_page=page_number + 1 if page_number < last_page else None,
        )

    @property
    def texts(self) -> list[str]:
        return [query.text for query, _ in self.calls]


@dataclass
class PendingCall:
    query: Query
    page_number: int
    future: asyncio.Future = field(repr=False)

    def resolve(self, items: list[Any], next_page: int | None = None) -> None:
        self.future.set_result(
            Page(items=items, current_page=self.page_number, next_page=next_page)
        )

    def fail(self, error: BaseException) -> None:
        self.future.set_exception(error)


class GatedBackend:
    """Fetch function whose replies are released one by one by the test."""

    def __init__(self) -> None:
        self.pending: list[PendingCall] = []

    async def __call__(self, query: Query, page_number: int) -> Page[Any]:
        future = asyncio.get_running_loop().create_future()
        self.pending.append(PendingCall(query, page_number, future))
        return await future

    def call(self, text: str, page_number: int = 1) -> PendingCall:
        for pending in self.pending:
            if pending.query.text == text and pending.page_number == page_number:
                return pending
        msg = f"No call for {text!r} page {page_number}"
        raise AssertionError(msg)


async def drain(rounds: int = 10) -> None:
    """Let scheduled tasks run until they block."""
    for _ in range(rounds):
        await asyncio.sleep(0)
