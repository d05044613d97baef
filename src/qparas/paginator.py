"""Drive successive requests until the API runs out of new records."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable

from .accumulator import Accumulator, entry_count
from .continuation import Continuation, ContinuationState, derive_continuation
from .errors import ParasError
from .query import SKIP_KEY, QuerySpec, merge_params
from .shapes import CursorPage, ResponseShape, SingleValue, Window, classify_response

log = logging.getLogger(__name__)

Fetch = Callable[[list], object]
ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class PaginationResult:
    value: object
    pages: int

    @property
    def entries(self) -> int:
        return entry_count(self.value)


class Paginator:
    """One pagination session.

    ``fetch`` receives the full ordered parameter list for a request and
    returns the decoded body; it is the only I/O the loop performs.
    ``on_progress(page, entries)`` is called after every page.
    """

    def __init__(
        self,
        fetch: Fetch,
        query: QuerySpec,
        *,
        on_progress: ProgressCallback | None = None,
        max_pages: int | None = None,
    ):
        self.fetch = fetch
        self.query = query
        self.on_progress = on_progress
        self.max_pages = max_pages
        self.pages = 0
        self.continuation = Continuation.start()
        self._accumulator = Accumulator(query.min_count)
        self._single: SingleValue | None = None
        self._array_mode = False

    @property
    def value(self) -> object:
        if self._single is not None:
            return self._single.value
        return self._accumulator.records

    def next_params(self) -> list[tuple[str, str]]:
        params = self.query.request_params()
        if self.continuation.state is ContinuationState.CONTINUE:
            params = merge_params(params, list(self.continuation.params))
        return params

    def run(self) -> PaginationResult:
        while not self.continuation.stopped:
            if self.max_pages is not None and self.pages >= self.max_pages:
                log.info("page limit %d reached, stopping", self.max_pages)
                break

            params = self.next_params()
            log.debug("request params: %s", params)
            body = self.fetch(params)
            self.pages += 1

            self.continuation = self._route(classify_response(body))
            log.info(
                "got page %d, total entries = %d, continuation = %s",
                self.pages,
                entry_count(self.value),
                list(self.continuation.params) if not self.continuation.stopped else None,
            )
            if self.on_progress is not None:
                self.on_progress(self.pages, entry_count(self.value))

        return PaginationResult(self.value, self.pages)

    def _route(self, shape: ResponseShape) -> Continuation:
        if isinstance(shape, SingleValue):
            if self._array_mode:
                raise ParasError("UNEXPECTED", "unpaged response received after paged results", 0)
            log.info("received unpaged response")
            self._single = shape
            return Continuation.stop()

        self._array_mode = True
        if isinstance(shape, CursorPage):
            return self._route_cursor_page(shape)
        return self._route_window(shape)

    def _route_cursor_page(self, page: CursorPage) -> Continuation:
        last = page.records[-1] if page.records else None
        continuation = derive_continuation(last, self.query.sort)
        if not self._accumulator.add_cursor_page(page.records):
            return Continuation.stop()
        if self._accumulator.min_satisfied:
            return Continuation.stop()
        return continuation

    def _route_window(self, page: Window) -> Continuation:
        # No growth wins over an unsatisfied minimum.
        if not self._accumulator.add_window(page.records):
            return Continuation.stop()
        if self._accumulator.min_satisfied:
            return Continuation.stop()
        return Continuation.of([(SKIP_KEY, str(self.query.skip + len(self._accumulator)))])
