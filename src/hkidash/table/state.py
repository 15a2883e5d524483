"""
Immutable description of what the record table is showing.

A QueryState answers "which filing records, in what order, which page".
Every change goes through one of the ``with_*`` reducers, which return a
new state; any change to what matches also sends the table back to page 1.
"""

from dataclasses import dataclass, replace
from enum import Enum

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class SortField(str, Enum):
    """Columns the table may be ordered by. Nothing else reaches SQL."""

    CREATED_AT = "createdAt"
    TITLE = "title"
    YEAR = "year"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class RecordFilters:
    """The filter portion of a QueryState, without sort or pagination."""

    search: str = ""
    type_id: int | None = None
    status_id: int | None = None
    year: int | None = None
    agency_id: int | None = None

    @property
    def search_text(self) -> str:
        """Search text as it is matched: surrounding whitespace ignored."""
        return self.search.strip()

    def active_keys(self) -> list[str]:
        """Names of the filters that currently narrow the result."""
        keys = []
        if self.search_text:
            keys.append("search")
        for key in ("type_id", "status_id", "year", "agency_id"):
            if getattr(self, key) is not None:
                keys.append(key)
        return keys

    @property
    def is_empty(self) -> bool:
        return not self.active_keys()


@dataclass(frozen=True)
class QueryState:
    search: str = ""
    type_id: int | None = None
    status_id: int | None = None
    year: int | None = None
    agency_id: int | None = None
    sort_field: SortField = SortField.CREATED_AT
    sort_direction: SortDirection = SortDirection.DESC
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    @property
    def filters(self) -> RecordFilters:
        return RecordFilters(
            search=self.search,
            type_id=self.type_id,
            status_id=self.status_id,
            year=self.year,
            agency_id=self.agency_id,
        )

    @property
    def has_filters(self) -> bool:
        return not self.filters.is_empty

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    # ------------------------------------------------------------------
    # Reducers
    # ------------------------------------------------------------------

    def with_search(self, search: str) -> "QueryState":
        if not search.strip():
            search = ""
        return replace(self, search=search, page=1)

    def with_type(self, type_id: int | None) -> "QueryState":
        return replace(self, type_id=type_id, page=1)

    def with_status(self, status_id: int | None) -> "QueryState":
        return replace(self, status_id=status_id, page=1)

    def with_year(self, year: int | None) -> "QueryState":
        return replace(self, year=year, page=1)

    def with_agency(self, agency_id: int | None) -> "QueryState":
        return replace(self, agency_id=agency_id, page=1)

    def with_sort(self, field: SortField, direction: SortDirection) -> "QueryState":
        return replace(self, sort_field=field, sort_direction=direction, page=1)

    def toggle_sort(self, field: SortField) -> "QueryState":
        """
        Column-header click: the active column flips direction, a new
        column starts ascending.
        """
        if field == self.sort_field and self.sort_direction == SortDirection.ASC:
            return self.with_sort(field, SortDirection.DESC)
        return self.with_sort(field, SortDirection.ASC)

    def with_page(self, page: int) -> "QueryState":
        return replace(self, page=max(1, page))

    def with_page_size(self, page_size: int, max_page_size: int = MAX_PAGE_SIZE) -> "QueryState":
        """Kept within ``1..max_page_size``, the same bound parsing applies."""
        return replace(self, page_size=min(max(1, page_size), max_page_size), page=1)

    def cleared(self) -> "QueryState":
        """Drop every filter and sort, keeping the page size."""
        return QueryState(page_size=self.page_size)
