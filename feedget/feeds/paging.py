"""Forward-only paged enumeration with one page prefetched."""

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable, Generic, TypeVar

T = TypeVar("T")

PAGE_SIZE = 40

_logging = logging.getLogger(__name__)

PageFetcher = Callable[[int, int], Awaitable[list]]


class PagedEnumerator(Generic[T]):
    """Iterate a remote result set page by page.

    ``fetch_page(skip, take)`` returns one page. While the caller consumes
    a page, the next one is already being fetched. Enumeration stops at
    the first short or empty page. The enumerator is single-pass: once
    exhausted or closed it yields nothing more.
    """

    def __init__(self, fetch_page: PageFetcher, page_size: int = PAGE_SIZE):
        self._fetch_page = fetch_page
        self.page_size = page_size
        self._next: asyncio.Task | None = None
        self._started = False
        self._closed = False

    def _prefetch(self, skip: int) -> asyncio.Task:
        return asyncio.create_task(self._fetch_page(skip, self.page_size))

    def __aiter__(self) -> AsyncIterator[T]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[T]:
        if self._started or self._closed:
            return
        self._started = True
        skip = 0
        self._next = self._prefetch(skip)
        try:
            while self._next is not None:
                page = await self._next
                self._next = None
                if len(page) >= self.page_size:
                    skip += self.page_size
                    self._next = self._prefetch(skip)
                _logging.debug(f"Fetched page of {len(page)} items")
                for item in page:
                    yield item
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        self._closed = True
        task, self._next = self._next, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass


__all__ = ["PAGE_SIZE", "PagedEnumerator"]
