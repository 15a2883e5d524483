"""
Exportable column catalog and the per-request projection plan.

Each column key maps to a label and a source: either an attribute of the
record itself or a field of one of its many-to-one relations. A plan
lists the columns a caller picked, knows which relations must be loaded
for them, and flattens a record into one row.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from hkidash.core.exceptions import NoColumnsSelectedError
from hkidash.models import FilingRecord
from hkidash.services.record_query import Relation


@dataclass(frozen=True)
class ColumnSource:
    """Where a column's value lives. ``relation`` is None for direct columns."""

    field: str
    relation: Relation | None = None

    def read(self, record: FilingRecord) -> Any:
        if self.relation is None:
            return getattr(record, self.field)
        related = getattr(record, self.relation.value)
        if related is None:
            return None
        return getattr(related, self.field)


@dataclass(frozen=True)
class ExportColumn:
    key: str
    label: str
    source: ColumnSource


def _direct(key: str, label: str, attribute: str | None = None) -> ExportColumn:
    return ExportColumn(key, label, ColumnSource(attribute or key))


def _related(key: str, label: str, relation: Relation, field: str) -> ExportColumn:
    return ExportColumn(key, label, ColumnSource(field, relation))


COLUMN_CATALOG: tuple[ExportColumn, ...] = (
    _direct("id", "ID"),
    _direct("title", "Nama HKI"),
    _direct("product_category", "Jenis Produk"),
    _related("applicant_name", "Nama Pemohon", Relation.APPLICANT, "name"),
    _related("applicant_address", "Alamat Pemohon", Relation.APPLICANT, "address"),
    _related("type_name", "Jenis HKI", Relation.TYPE, "name"),
    _direct("class_id", "ID Kelas"),
    _related("class_name", "Kelas HKI", Relation.CLASS, "name"),
    _related("class_kind", "Tipe Kelas", Relation.CLASS, "kind"),
    _related("agency_name", "Pengusul (OPD)", Relation.AGENCY, "name"),
    _related("status_name", "Status", Relation.STATUS, "name"),
    _direct("year", "Tahun Fasilitasi"),
    _direct("notes", "Keterangan"),
    _direct("certificate_path", "Sertifikat"),
    _direct("created_at", "Dibuat Pada"),
)

COLUMNS_BY_KEY: dict[str, ExportColumn] = {column.key: column for column in COLUMN_CATALOG}


@dataclass(frozen=True)
class ExportPlan:
    columns: tuple[ExportColumn, ...]

    @property
    def labels(self) -> list[str]:
        return [column.label for column in self.columns]

    @property
    def relations(self) -> frozenset[Relation]:
        """Relations the chosen columns read from; nothing else gets joined."""
        return frozenset(
            column.source.relation
            for column in self.columns
            if column.source.relation is not None
        )

    def flatten(self, record: FilingRecord) -> list[Any]:
        """One value per chosen column. A missing relation yields None."""
        return [column.source.read(record) for column in self.columns]


def plan_columns(requested: Iterable[str] | None) -> ExportPlan:
    """
    Build a plan from the caller's column keys.

    None selects the whole catalog. Unknown keys are dropped silently and
    duplicates keep their first position.

    Raises:
        NoColumnsSelectedError: If nothing known is left
    """
    if requested is None:
        return ExportPlan(COLUMN_CATALOG)

    requested = [key.strip() for key in requested]
    chosen: list[ExportColumn] = []
    for key in requested:
        column = COLUMNS_BY_KEY.get(key)
        if column is not None and column not in chosen:
            chosen.append(column)

    if not chosen:
        raise NoColumnsSelectedError([key for key in requested if key])
    return ExportPlan(tuple(chosen))
