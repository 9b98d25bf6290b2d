"""Generic cursor-following aggregation of paged API collections.

Every list endpoint of the API returns one page of items plus a link to the
next page. :func:`paginate` turns any page-fetch function into the complete,
ordered collection. The element type is chosen by the caller's closure, so
one implementation serves droplets, drives, images, actions and kernels.

Example::

    def fetch(token: str | None) -> Page[Drive]:
        ...

    drives = paginate(fetch)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Generic, Optional, TypeVar

from oceanctl.exceptions import PaginationError

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One slice of a remote collection.

    Attributes:
        items: The items on this page, in the order the API returned them.
        next_token: Opaque continuation token; empty or ``None`` on the
            last page.
    """

    items: list[T] = field(default_factory=list)
    next_token: Optional[str] = None

    @property
    def is_last(self) -> bool:
        return not self.next_token


def paginate(fetch_page: Callable[[Optional[str]], Page[T]]) -> list[T]:
    """Call *fetch_page* until the API reports no further pages.

    The first call receives ``None``; each later call receives the previous
    page's ``next_token``. Items are concatenated in arrival order.

    Args:
        fetch_page: Function returning the page for a token. It must raise
            on failure, including when handed a token it cannot use.

    Returns:
        All items of the collection. A first page with no items and no
        token yields an empty list.

    Raises:
        PaginationError: If fetching any page after the first one fails.
            Items collected so far are discarded.
        Exception: Whatever *fetch_page* raised for the first page.
    """
    items: list[T] = []
    token: Optional[str] = None
    pages = 0
    while True:
        try:
            page = fetch_page(token)
        except Exception as exc:
            if pages == 0:
                raise
            raise PaginationError(
                f"failed to fetch page {pages + 1} of the collection: {exc}", exc
            ) from exc
        pages += 1
        items.extend(page.items)
        if page.is_last:
            return items
        token = page.next_token
