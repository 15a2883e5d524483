"""
State holder that keeps a record table and its URL in step.

TableController owns the current QueryState, the row selection and the
search debouncer, and pushes canonical query strings to a ``navigate``
callback supplied by the UI layer.
"""

import asyncio
from collections.abc import Callable

from hkidash.core.config import settings
from hkidash.core.logging import get_logger
from hkidash.table.selection import SelectionTracker
from hkidash.table.state import QueryState, SortField
from hkidash.table.url_sync import DEFAULT_STATE, from_query_string, to_query_string

logger = get_logger(__name__)


class DebouncedCommit:
    """
    Run ``callback`` once input has been quiet for ``delay`` seconds.

    Each ``schedule()`` cancels the commit still pending from earlier input,
    so only the settled value is ever committed. Must be used from inside
    a running event loop.
    """

    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> bool:
        """Drop a pending commit. Returns True if one was pending."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True

    def flush(self) -> None:
        """Commit now if something is pending."""
        if self.cancel():
            self._callback()

    def _fire(self) -> None:
        self._handle = None
        self._callback()


class TableController:
    """
    Explicit state holder for one table view.

    Reset trigger: every state change that alters what is shown (filters,
    sort, page, page size) clears the selection. Search text updates the
    state immediately but reaches the URL only after the debounce delay;
    any other change is committed at once and supersedes a pending search
    commit.
    """

    def __init__(
        self,
        navigate: Callable[[str], None],
        defaults: QueryState = DEFAULT_STATE,
        debounce_seconds: float | None = None,
        initial_query: str = "",
        max_page_size: int | None = None,
    ) -> None:
        if debounce_seconds is None:
            debounce_seconds = settings.search_debounce_seconds
        self.defaults = defaults
        self.max_page_size = max_page_size or settings.max_page_size
        self.selection = SelectionTracker()
        self._navigate = navigate
        self._debouncer = DebouncedCommit(debounce_seconds, self._commit)
        self.state = from_query_string(initial_query, defaults, self.max_page_size)
        self._committed = to_query_string(self.state, defaults)

    @property
    def query_string(self) -> str:
        """Query string currently in the address bar."""
        return self._committed

    @property
    def commit_pending(self) -> bool:
        return self._debouncer.pending

    def load(self, query_string: str) -> None:
        """Adopt a URL the browser navigated to (back/forward, pasted link)."""
        self._debouncer.cancel()
        state = from_query_string(query_string, self.defaults, self.max_page_size)
        if state != self.state:
            self.selection.clear()
        self.state = state
        self._committed = to_query_string(state, self.defaults)

    def set_search(self, text: str) -> None:
        self._apply(self.state.with_search(text), debounce=True)

    def set_type(self, type_id: int | None) -> None:
        self._apply(self.state.with_type(type_id))

    def set_status(self, status_id: int | None) -> None:
        self._apply(self.state.with_status(status_id))

    def set_year(self, year: int | None) -> None:
        self._apply(self.state.with_year(year))

    def set_agency(self, agency_id: int | None) -> None:
        self._apply(self.state.with_agency(agency_id))

    def toggle_sort(self, field: SortField) -> None:
        self._apply(self.state.toggle_sort(field))

    def set_page(self, page: int) -> None:
        self._apply(self.state.with_page(page))

    def set_page_size(self, page_size: int) -> None:
        self._apply(self.state.with_page_size(page_size, self.max_page_size))

    def clear_filters(self) -> None:
        self._apply(self.state.cleared())

    def flush(self) -> None:
        """Commit a pending search immediately (e.g. on Enter)."""
        self._debouncer.flush()

    def _apply(self, state: QueryState, debounce: bool = False) -> None:
        if state == self.state:
            return
        self.state = state
        self.selection.clear()
        if debounce:
            self._debouncer.schedule()
        else:
            self._debouncer.cancel()
            self._commit()

    def _commit(self) -> None:
        query = to_query_string(self.state, self.defaults)
        if query == self._committed:
            return
        self._committed = query
        logger.debug("Committing table state", extra={"query": query})
        self._navigate(query)
