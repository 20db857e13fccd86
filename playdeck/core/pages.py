"""Cache of sequentially fetched result pages."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")
ItemT = TypeVar("ItemT")


@dataclass(slots=True, frozen=True)
class Page(Generic[ItemT]):
    """One page of a server paginated collection."""

    items: tuple[ItemT, ...] = ()
    offset: int = 0
    limit: int = 0
    total: int = 0
    next_cursor: str | None = None
    cursor_paged: bool = False

    def __len__(self) -> int:
        return len(self.items)

    @property
    def next_offset(self) -> int:
        return self.offset + self.limit

    @property
    def has_more(self) -> bool:
        if self.cursor_paged or self.next_cursor is not None:
            return self.next_cursor is not None
        return self.next_offset < self.total

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any] | None,
        parse_item: Callable[[Mapping[str, Any]], ItemT | None],
    ) -> Page[ItemT]:
        if not payload:
            return cls()
        items: list[ItemT] = []
        for raw in payload.get("items") or []:
            if not isinstance(raw, Mapping):
                continue
            parsed = parse_item(raw)
            if parsed is not None:
                items.append(parsed)
        cursors = payload.get("cursors") or {}
        next_cursor = cursors.get("after") if isinstance(cursors, Mapping) else None
        return cls(
            items=tuple(items),
            offset=int(payload.get("offset") or 0),
            limit=int(payload.get("limit") or len(items)),
            total=int(payload.get("total") or 0),
            next_cursor=str(next_cursor) if next_cursor else None,
            cursor_paged="cursors" in payload,
        )


@dataclass(slots=True)
class PagedResultCache(Generic[T]):
    """Append-only list of pages with a cursor on the page in view.

    Pages are assumed immutable for the session: going back never re-fetches
    and a freshly appended page always becomes the current one.
    """

    pages: list[T] = field(default_factory=list)
    cursor: int = 0

    def __len__(self) -> int:
        return len(self.pages)

    @property
    def is_empty(self) -> bool:
        return not self.pages

    def get(self, at: int | None = None) -> T | None:
        index = self.cursor if at is None else at
        if index < 0 or index >= len(self.pages):
            return None
        return self.pages[index]

    def append(self, page: T) -> None:
        self.pages.append(page)
        self.cursor = len(self.pages) - 1

    def advance(self) -> T | None:
        """Move to the next cached page, returning it, or ``None`` when absent."""

        page = self.get(self.cursor + 1)
        if page is not None:
            self.cursor += 1
        return page

    def retreat(self) -> T | None:
        if self.cursor > 0:
            self.cursor -= 1
        return self.get()

    def items(self) -> Sequence[Any]:
        current = self.get()
        if current is None:
            return ()
        return getattr(current, "items", ())


__all__ = ["Page", "PagedResultCache"]
