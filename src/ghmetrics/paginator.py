"""Cursor-following pagination over a replay cache and query executor."""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Iterator, Optional, Set

from .cache import QueryExecutor, ReplayCache
from .models import QueryRequest, QueryResponse

logger = logging.getLogger(__name__)


class PaginatorState(str, Enum):
    START = "start"
    FETCHING = "fetching"
    DONE = "done"


class Paginator:
    """Lazily yields the pages of one query identity in cursor order.

    The paginator is a one-shot state machine: ``START`` moves to
    ``FETCHING`` on the first ``step()``, stays there while the API reports
    another page, and ends in ``DONE``. Each page is resolved (and cached)
    independently, so abandoning iteration leaves the cache consistent.
    """

    def __init__(
        self,
        request: QueryRequest,
        cache: ReplayCache,
        executor: Optional[QueryExecutor] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self._request = request.with_cursor(None)
        self._cache = cache
        self._executor = executor
        self._cancel_event = cancel_event
        self._cursor: Optional[str] = None
        self._seen_cursors: Set[str] = set()
        self.state = PaginatorState.START
        self.pages_fetched = 0
        self.cancelled = False

    @property
    def cursor(self) -> Optional[str]:
        return self._cursor

    def step(self) -> Optional[QueryResponse]:
        """Fetch the next page, or return ``None`` once pagination is done.

        Errors from the cache or executor move the paginator to ``DONE`` and
        propagate to the caller.
        """
        if self.state is PaginatorState.DONE:
            return None

        if self._cancel_event is not None and self._cancel_event.is_set():
            logger.info(
                "Pagination cancelled",
                extra={"request": self._request.describe(), "pages_fetched": self.pages_fetched},
            )
            self.cancelled = True
            self.state = PaginatorState.DONE
            return None

        self.state = PaginatorState.FETCHING
        request = self._request.with_cursor(self._cursor)
        try:
            page = self._cache.resolve(request, self._executor)
        except Exception:
            self.state = PaginatorState.DONE
            raise

        self.pages_fetched += 1
        self._advance(page)
        return page

    def _advance(self, page: QueryResponse) -> None:
        if not page.has_next_page:
            self.state = PaginatorState.DONE
            return

        if page.end_cursor is None:
            logger.warning(
                "Page reports more results but no end cursor; stopping pagination",
                extra={"request": self._request.describe(), "pages_fetched": self.pages_fetched},
            )
            self.state = PaginatorState.DONE
            return

        if page.end_cursor in self._seen_cursors:
            logger.warning(
                "Cursor repeated; stopping pagination",
                extra={"request": self._request.describe(), "cursor": page.end_cursor},
            )
            self.state = PaginatorState.DONE
            return

        self._seen_cursors.add(page.end_cursor)
        self._cursor = page.end_cursor

    def __iter__(self) -> Iterator[QueryResponse]:
        return self

    def __next__(self) -> QueryResponse:
        page = self.step()
        if page is None:
            raise StopIteration
        return page
