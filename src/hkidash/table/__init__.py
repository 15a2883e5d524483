"""Record table state: query intent, URL sync, selection."""

from hkidash.table.controller import DebouncedCommit, TableController
from hkidash.table.selection import SelectionTracker
from hkidash.table.state import QueryState, RecordFilters, SortDirection, SortField
from hkidash.table.url_sync import default_state, from_query_string, to_query_string

__all__ = [
    "DebouncedCommit",
    "QueryState",
    "RecordFilters",
    "SelectionTracker",
    "SortDirection",
    "SortField",
    "TableController",
    "default_state",
    "from_query_string",
    "to_query_string",
]
