"""
Read side of filing records: list, search, hydrate, filter options.

Listing picks one of two strategies:

* unfiltered - one count query plus one page query with all relations
  joined, ordered and sliced by the database;
* filtered - an explicit two-step pipeline. ``search_record_ids`` finds
  every matching id together with the total count in a single statement
  (search text matches the title OR the applicant's name), then
  ``hydrate_records`` loads details for those ids only, re-applying sort
  and the page slice.

The total shown with a page always comes from the same id set the page
was drawn from. Rows changing between the two steps is accepted.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from sqlalchemy import Select, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from hkidash.core.exceptions import (
    FilterQueryError,
    HydrationError,
    NotFoundError,
    UpstreamFailure,
)
from hkidash.core.logging import get_logger
from hkidash.models import (
    Applicant,
    FilingRecord,
    FilingStatus,
    IPClass,
    IPType,
    ProposingAgency,
)
from hkidash.table.state import QueryState, RecordFilters, SortDirection, SortField

logger = get_logger(__name__)


class Relation(str, Enum):
    """Many-to-one relations of FilingRecord that a query may load."""

    APPLICANT = "applicant"
    TYPE = "ip_type"
    STATUS = "status"
    AGENCY = "agency"
    CLASS = "ip_class"


ALL_RELATIONS: frozenset[Relation] = frozenset(Relation)

_RELATION_ATTRS = {
    Relation.APPLICANT: FilingRecord.applicant,
    Relation.TYPE: FilingRecord.ip_type,
    Relation.STATUS: FilingRecord.status,
    Relation.AGENCY: FilingRecord.agency,
    Relation.CLASS: FilingRecord.ip_class,
}

# The only columns a caller-chosen sort can ever reach.
SORT_COLUMNS = {
    SortField.CREATED_AT: FilingRecord.created_at,
    SortField.TITLE: FilingRecord.title,
    SortField.YEAR: FilingRecord.year,
}


def resolve_sort_field(value: Any) -> SortField:
    """Map any input onto the sort allow-list; unknown values sort by createdAt."""
    if isinstance(value, SortField):
        return value
    try:
        return SortField(value)
    except ValueError:
        logger.debug(f"Rejected sort field {value!r}, using createdAt")
        return SortField.CREATED_AT


def _order_by(sort_field: Any, sort_direction: SortDirection) -> list[Any]:
    column = SORT_COLUMNS[resolve_sort_field(sort_field)]
    if sort_direction == SortDirection.ASC:
        return [column.asc().nulls_last(), FilingRecord.id.asc()]
    return [column.desc().nulls_last(), FilingRecord.id.desc()]


def _load_options(relations: Iterable[Relation]) -> list[Any]:
    return [joinedload(_RELATION_ATTRS[relation]) for relation in relations]


def _filter_clauses(filters: RecordFilters) -> list[Any]:
    clauses: list[Any] = []
    text = filters.search_text
    if text:
        clauses.append(
            or_(
                FilingRecord.title.icontains(text, autoescape=True),
                Applicant.name.icontains(text, autoescape=True),
            )
        )
    if filters.type_id is not None:
        clauses.append(FilingRecord.type_id == filters.type_id)
    if filters.status_id is not None:
        clauses.append(FilingRecord.status_id == filters.status_id)
    if filters.year is not None:
        clauses.append(FilingRecord.year == filters.year)
    if filters.agency_id is not None:
        clauses.append(FilingRecord.agency_id == filters.agency_id)
    return clauses


@dataclass
class IdSearchResult:
    """Every id matching a filter set, in no particular order, plus the count."""

    ids: list[int]
    total_count: int


@dataclass
class RecordPage:
    records: list[FilingRecord]
    total_count: int


@dataclass
class FilterOptions:
    """Choices for the filter dropdowns above the record table."""

    types: list[IPType] = field(default_factory=list)
    statuses: list[FilingStatus] = field(default_factory=list)
    years: list[int] = field(default_factory=list)
    agencies: list[ProposingAgency] = field(default_factory=list)
    classes: list[IPClass] = field(default_factory=list)


async def search_record_ids(db: AsyncSession, filters: RecordFilters) -> IdSearchResult:
    """
    Find all ids matching ``filters`` and the true total count.

    The count is a window aggregate over the same statement, so it always
    equals ``len(ids)``.

    Raises:
        FilterQueryError: If the query fails. A failure is never reported
            as zero matches.
    """
    stmt = (
        select(FilingRecord.id, func.count().over().label("total_count"))
        .select_from(FilingRecord)
        .outerjoin(Applicant, FilingRecord.applicant_id == Applicant.id)
        .where(*_filter_clauses(filters))
    )
    try:
        rows = (await db.execute(stmt)).all()
    except SQLAlchemyError as e:
        logger.error(f"Identifier search failed: {e}", extra={"filters": filters.active_keys()})
        raise FilterQueryError(e) from e

    ids = [row.id for row in rows]
    total_count = rows[0].total_count if rows else 0
    return IdSearchResult(ids=ids, total_count=total_count)


async def hydrate_records(
    db: AsyncSession,
    ids: list[int],
    sort_field: Any = SortField.CREATED_AT,
    sort_direction: SortDirection = SortDirection.DESC,
    offset: int = 0,
    limit: int | None = None,
    relations: Iterable[Relation] = ALL_RELATIONS,
) -> list[FilingRecord]:
    """
    Load records for ``ids`` with only the requested relations joined.

    The id list arrives unordered, so ordering and the page slice are
    applied here, after the IN filter.

    Raises:
        HydrationError: If the query fails
    """
    if not ids:
        return []

    stmt = (
        select(FilingRecord)
        .where(FilingRecord.id.in_(ids))
        .options(*_load_options(relations))
        .order_by(*_order_by(sort_field, sort_direction))
        .offset(offset)
    )
    if limit is not None:
        stmt = stmt.limit(limit)

    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as e:
        logger.error(f"Hydration of {len(ids)} records failed: {e}")
        raise HydrationError(e) from e
    return list(result.scalars().unique().all())


async def list_records(db: AsyncSession, state: QueryState) -> RecordPage:
    """Return one page of records and the total count for a table state."""
    if state.has_filters:
        found = await search_record_ids(db, state.filters)
        records = await hydrate_records(
            db,
            found.ids,
            sort_field=state.sort_field,
            sort_direction=state.sort_direction,
            offset=state.offset,
            limit=state.page_size,
        )
        return RecordPage(records=records, total_count=found.total_count)

    page_stmt: Select = (
        select(FilingRecord)
        .options(*_load_options(ALL_RELATIONS))
        .order_by(*_order_by(state.sort_field, state.sort_direction))
        .offset(state.offset)
        .limit(state.page_size)
    )
    try:
        total_count = await db.scalar(select(func.count()).select_from(FilingRecord))
        result = await db.execute(page_stmt)
    except SQLAlchemyError as e:
        logger.error(f"Record listing failed: {e}")
        raise UpstreamFailure("Gagal memuat data HKI.", e) from e
    return RecordPage(records=list(result.scalars().unique().all()), total_count=total_count or 0)


async def get_record(
    db: AsyncSession,
    record_id: int,
    relations: Iterable[Relation] = ALL_RELATIONS,
) -> FilingRecord:
    """
    Fetch one record with its relations.

    ``populate_existing`` refreshes relations of an instance already in the
    session, e.g. right after its foreign keys were changed.

    Raises:
        NotFoundError: If no record has this id
    """
    stmt = (
        select(FilingRecord)
        .where(FilingRecord.id == record_id)
        .options(*_load_options(relations))
        .execution_options(populate_existing=True)
    )
    record = (await db.execute(stmt)).scalars().unique().one_or_none()
    if record is None:
        raise NotFoundError("Filing record", record_id)
    return record


async def get_filter_options(db: AsyncSession) -> FilterOptions:
    """
    Load dropdown choices.

    The five queries are independent of each other and of the record
    query; they run one after another because an AsyncSession does not
    allow concurrent statements.
    """
    try:
        types = (await db.execute(select(IPType).order_by(IPType.name))).scalars().all()
        statuses = (
            await db.execute(select(FilingStatus).order_by(FilingStatus.id))
        ).scalars().all()
        years = (
            await db.execute(
                select(FilingRecord.year)
                .where(FilingRecord.year.is_not(None))
                .distinct()
                .order_by(FilingRecord.year.desc())
            )
        ).scalars().all()
        agencies = (
            await db.execute(select(ProposingAgency).order_by(ProposingAgency.name))
        ).scalars().all()
        classes = (await db.execute(select(IPClass).order_by(IPClass.id))).scalars().all()
    except SQLAlchemyError as e:
        raise UpstreamFailure("Gagal memuat pilihan filter.", e) from e

    return FilterOptions(
        types=list(types),
        statuses=list(statuses),
        years=list(years),
        agencies=list(agencies),
        classes=list(classes),
    )
