"""
Mapping between QueryState and its canonical query string.

Only values that differ from the defaults are written, so the default
table view is the bare URL. Parsing is forgiving: anything unknown or
malformed falls back to the default for that key.
"""

from urllib.parse import parse_qsl, urlencode

from hkidash.table.state import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    QueryState,
    SortDirection,
    SortField,
)

DEFAULT_STATE = QueryState()

# Canonical key order of the emitted query string.
PARAM_SEARCH = "search"
PARAM_TYPE = "typeId"
PARAM_STATUS = "statusId"
PARAM_YEAR = "year"
PARAM_AGENCY = "agencyId"
PARAM_SORT_BY = "sortBy"
PARAM_SORT_ORDER = "sortOrder"
PARAM_PAGE = "page"
PARAM_PAGE_SIZE = "pageSize"

QUERY_PARAMS = (
    PARAM_SEARCH,
    PARAM_TYPE,
    PARAM_STATUS,
    PARAM_YEAR,
    PARAM_AGENCY,
    PARAM_SORT_BY,
    PARAM_SORT_ORDER,
    PARAM_PAGE,
    PARAM_PAGE_SIZE,
)


def default_state(page_size: int = DEFAULT_PAGE_SIZE) -> QueryState:
    return QueryState(page_size=page_size)


def _parse_int(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


def _parse_positive_int(raw: str | None) -> int | None:
    value = _parse_int(raw)
    if value is None or value < 1:
        return None
    return value


def to_query_string(state: QueryState, defaults: QueryState = DEFAULT_STATE) -> str:
    """
    Serialize a state, leaving out every key that equals its default.
    Whitespace-only search text matches nothing and is left out too.

    Returns:
        Query string without the leading ``?``; empty for the default view
    """
    pairs: list[tuple[str, str]] = []

    if state.search.strip() and state.search != defaults.search:
        pairs.append((PARAM_SEARCH, state.search))
    for param, value, default in (
        (PARAM_TYPE, state.type_id, defaults.type_id),
        (PARAM_STATUS, state.status_id, defaults.status_id),
        (PARAM_YEAR, state.year, defaults.year),
        (PARAM_AGENCY, state.agency_id, defaults.agency_id),
    ):
        if value is not None and value != default:
            pairs.append((param, str(value)))
    if state.sort_field != defaults.sort_field:
        pairs.append((PARAM_SORT_BY, state.sort_field.value))
    if state.sort_direction != defaults.sort_direction:
        pairs.append((PARAM_SORT_ORDER, state.sort_direction.value))
    if state.page != defaults.page:
        pairs.append((PARAM_PAGE, str(state.page)))
    if state.page_size != defaults.page_size:
        pairs.append((PARAM_PAGE_SIZE, str(state.page_size)))

    return urlencode(pairs)


def from_query_string(
    query_string: str,
    defaults: QueryState = DEFAULT_STATE,
    max_page_size: int = MAX_PAGE_SIZE,
) -> QueryState:
    """
    Rebuild a state from a query string.

    Unknown keys are ignored. The first occurrence of a repeated key wins.
    A sortBy outside the allowed fields becomes createdAt; a page below 1
    becomes 1; a pageSize is kept within ``1..max_page_size``.
    """
    params: dict[str, str] = {}
    for key, value in parse_qsl(query_string.lstrip("?"), keep_blank_values=True):
        if key in QUERY_PARAMS and key not in params:
            params[key] = value

    try:
        sort_field = SortField(params[PARAM_SORT_BY])
    except (KeyError, ValueError):
        sort_field = SortField.CREATED_AT if PARAM_SORT_BY in params else defaults.sort_field

    try:
        sort_direction = SortDirection(params[PARAM_SORT_ORDER])
    except (KeyError, ValueError):
        sort_direction = defaults.sort_direction

    page = _parse_int(params.get(PARAM_PAGE))
    page = defaults.page if page is None else max(1, page)

    page_size = _parse_int(params.get(PARAM_PAGE_SIZE))
    if page_size is None:
        page_size = defaults.page_size
    page_size = min(max(1, page_size), max_page_size)

    def _filter(param: str, default: int | None) -> int | None:
        value = _parse_positive_int(params.get(param))
        return default if value is None else value

    search = params.get(PARAM_SEARCH, defaults.search)
    if not search.strip():
        search = ""

    return QueryState(
        search=search,
        type_id=_filter(PARAM_TYPE, defaults.type_id),
        status_id=_filter(PARAM_STATUS, defaults.status_id),
        year=_filter(PARAM_YEAR, defaults.year),
        agency_id=_filter(PARAM_AGENCY, defaults.agency_id),
        sort_field=sort_field,
        sort_direction=sort_direction,
        page=page,
        page_size=page_size,
    )
