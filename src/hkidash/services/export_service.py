"""Export of filtered filing records to CSV or Excel."""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from io import BytesIO
from typing import Any, Optional

from openpyxl import Workbook
from openpyxl.styles import Font
from sqlalchemy.ext.asyncio import AsyncSession

from hkidash.core.config import settings
from hkidash.core.exceptions import (
    ExportTooLargeError,
    NoMatchingRecordsError,
    ValidationError,
)
from hkidash.core.logging import get_logger
from hkidash.services.csv_encoder import encode_csv
from hkidash.services.export_columns import ExportPlan, plan_columns
from hkidash.services.record_query import hydrate_records, search_record_ids
from hkidash.table.state import RecordFilters, SortDirection, SortField

logger = get_logger(__name__)

XLSX_SHEET_TITLE = "Data HKI"
XLSX_MAX_COLUMN_WIDTH = 100


class ExportFormat(str, Enum):
    CSV = "csv"
    XLSX = "xlsx"

    @property
    def content_type(self) -> str:
        if self is ExportFormat.CSV:
            return "text/csv; charset=utf-8"
        return "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@dataclass
class ExportFile:
    """A fully built export, ready to send."""

    filename: str
    content_type: str
    body: bytes
    row_count: int


def parse_export_format(value: Optional[str]) -> ExportFormat:
    if not value:
        return ExportFormat.CSV
    try:
        return ExportFormat(value.strip().lower())
    except ValueError:
        raise ValidationError(
            f"Format file tidak valid: {value}",
            errors=[{"field": "format", "allowed": [f.value for f in ExportFormat]}],
        ) from None


def parse_column_keys(value: Optional[str]) -> Optional[list[str]]:
    """``a,b,c`` to a key list; an absent parameter means every column."""
    if value is None:
        return None
    return value.split(",")


def export_filename(filters: RecordFilters, export_format: ExportFormat, today: date) -> str:
    """``hki-export_{scope}_{YYYY-MM-DD}.{ext}``; scope names the active filters."""
    active = filters.active_keys()
    scope = "-".join(key.replace("_id", "").replace("_", "-") for key in active) or "semua-data"
    return f"hki-export_{scope}_{today.isoformat()}.{export_format.value}"


def _excel_value(value: Any) -> Any:
    # openpyxl refuses timezone-aware datetimes
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    if isinstance(value, Enum):
        return value.value
    return value


def encode_xlsx(labels: list[str], rows: list[list[Any]]) -> bytes:
    """Single-sheet workbook with a bold header row and fitted column widths."""
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = XLSX_SHEET_TITLE

    worksheet.append(labels)
    for cell in worksheet[1]:
        cell.font = Font(bold=True)
    for row in rows:
        worksheet.append([_excel_value(value) for value in row])

    for column_cells in worksheet.columns:
        longest = max(len(str(cell.value)) if cell.value is not None else 0 for cell in column_cells)
        width = min(longest, XLSX_MAX_COLUMN_WIDTH)
        worksheet.column_dimensions[column_cells[0].column_letter].width = max(12, width + 2)

    output = BytesIO()
    workbook.save(output)
    return output.getvalue()


class ExportService:
    """Builds complete export files for the records matching a filter set."""

    def __init__(self, max_rows: Optional[int] = None) -> None:
        self.max_rows = max_rows if max_rows is not None else settings.export_max_rows

    async def export_records(
        self,
        db: AsyncSession,
        filters: RecordFilters,
        columns: Optional[list[str]] = None,
        export_format: ExportFormat = ExportFormat.CSV,
        today: Optional[date] = None,
    ) -> ExportFile:
        """
        Export every record matching ``filters``; pagination never applies.

        Args:
            db: Database session
            filters: Filter portion of the table state
            columns: Column keys to include, None for all
            export_format: CSV or XLSX
            today: Date used in the filename, defaults to today (UTC)

        Returns:
            The built file. Nothing is sent before the whole body exists.

        Raises:
            NoColumnsSelectedError: If no requested column is known
            NoMatchingRecordsError: If the filters match nothing
            ExportTooLargeError: If more than ``max_rows`` records match
            FilterQueryError: If the identifier search fails
            HydrationError: If loading the matched records fails
        """
        plan = plan_columns(columns)

        found = await search_record_ids(db, filters)
        if found.total_count == 0:
            raise NoMatchingRecordsError()
        if found.total_count > self.max_rows:
            raise ExportTooLargeError(found.total_count, self.max_rows)

        records = await hydrate_records(
            db,
            found.ids,
            sort_field=SortField.CREATED_AT,
            sort_direction=SortDirection.ASC,
            relations=plan.relations,
        )
        rows = [plan.flatten(record) for record in records]
        body = self._encode(plan, rows, export_format)

        today = today or datetime.now(timezone.utc).date()
        logger.info(
            f"Exported {len(rows)} records as {export_format.value}",
            extra={"columns": [c.key for c in plan.columns], "filters": filters.active_keys()},
        )
        return ExportFile(
            filename=export_filename(filters, export_format, today),
            content_type=export_format.content_type,
            body=body,
            row_count=len(rows),
        )

    def _encode(self, plan: ExportPlan, rows: list[list[Any]], export_format: ExportFormat) -> bytes:
        if export_format is ExportFormat.XLSX:
            return encode_xlsx(plan.labels, rows)
        return encode_csv(plan.labels, rows).encode("utf-8")
