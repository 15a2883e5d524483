"""
Filing record endpoints.

The list and export endpoints rebuild the table state from the raw query
string, so a URL copied from the dashboard reproduces the same view.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.responses import StreamingResponse
from pydantic import ValidationError as PydanticValidationError

from hkidash.api.deps import AdminUser, CurrentUser, DbSession, Storage
from hkidash.core.config import settings
from hkidash.core.exceptions import ValidationError
from hkidash.core.logging import get_logger
from hkidash.schemas.record import (
    BulkDeleteRequest,
    BulkDeleteResponse,
    CertificateUrlResponse,
    DeleteResponse,
    FilterOptionsResponse,
    IPClassResponse,
    RecordInput,
    RecordListResponse,
    RecordResponse,
    ReferenceResponse,
    StatusUpdateRequest,
)
from hkidash.services.bulk_delete import BulkDeletePlanner
from hkidash.services.export_service import ExportService, parse_column_keys, parse_export_format
from hkidash.services.record_query import get_filter_options, get_record, list_records
from hkidash.services.record_service import CertificateUpload, RecordService
from hkidash.table.state import QueryState
from hkidash.table.url_sync import default_state, from_query_string, to_query_string

logger = get_logger(__name__)

router = APIRouter()


# =============================================================================
# Dependencies
# =============================================================================


def table_defaults() -> QueryState:
    return default_state(settings.default_page_size)


def query_state(request: Request) -> QueryState:
    """Table state encoded in the request's query string."""
    return from_query_string(
        request.url.query,
        defaults=table_defaults(),
        max_page_size=settings.max_page_size,
    )


def get_record_service(storage: Storage) -> RecordService:
    return RecordService(storage)


async def record_form(
    title: Annotated[Optional[str], Form()] = None,
    product_category: Annotated[Optional[str], Form(alias="productCategory")] = None,
    applicant_name: Annotated[Optional[str], Form(alias="applicantName")] = None,
    applicant_address: Annotated[Optional[str], Form(alias="applicantAddress")] = None,
    type_id: Annotated[Optional[str], Form(alias="typeId")] = None,
    status_id: Annotated[Optional[str], Form(alias="statusId")] = None,
    agency_id: Annotated[Optional[str], Form(alias="agencyId")] = None,
    class_id: Annotated[Optional[str], Form(alias="classId")] = None,
    year: Annotated[Optional[str], Form()] = None,
    notes: Annotated[Optional[str], Form()] = None,
) -> RecordInput:
    """
    Collect the record form fields.

    Every field arrives as text and is validated here, so a missing or
    malformed value is a 400 like every other input error.
    """
    try:
        return RecordInput(
            title=title,
            product_category=product_category,
            applicant_name=applicant_name,
            applicant_address=applicant_address,
            type_id=type_id,
            status_id=status_id,
            agency_id=agency_id,
            class_id=class_id,
            year=year,
            notes=notes,
        )
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e, "Data formulir tidak valid.") from e


async def read_certificate(upload: Optional[UploadFile]) -> Optional[CertificateUpload]:
    # Browsers send an empty part when no file was chosen
    if upload is None or not upload.filename:
        return None
    return CertificateUpload(
        filename=upload.filename,
        data=await upload.read(),
        content_type=upload.content_type,
    )


RecordServiceDep = Annotated[RecordService, Depends(get_record_service)]
RecordForm = Annotated[RecordInput, Depends(record_form)]
CertificateFile = Annotated[Optional[UploadFile], File()]


# =============================================================================
# Listing
# =============================================================================


@router.get("", response_model=RecordListResponse)
async def list_filing_records(
    db: DbSession,
    current_user: CurrentUser,
    state: Annotated[QueryState, Depends(query_state)],
) -> RecordListResponse:
    """
    List one page of records.

    Accepts ``search``, ``typeId``, ``statusId``, ``year``, ``agencyId``,
    ``sortBy``, ``sortOrder``, ``page`` and ``pageSize``. Malformed values
    fall back to their defaults. ``query`` in the response is the
    canonical query string for the state that was served.
    """
    page = await list_records(db, state)
    return RecordListResponse(
        records=[RecordResponse.model_validate(record) for record in page.records],
        total_count=page.total_count,
        page=state.page,
        page_size=state.page_size,
        query=to_query_string(state, table_defaults()),
    )


@router.get("/options", response_model=FilterOptionsResponse)
async def filter_options(db: DbSession, current_user: CurrentUser) -> FilterOptionsResponse:
    """Choices for the filter dropdowns."""
    options = await get_filter_options(db)
    return FilterOptionsResponse(
        types=[ReferenceResponse.model_validate(t) for t in options.types],
        statuses=[ReferenceResponse.model_validate(s) for s in options.statuses],
        years=options.years,
        agencies=[ReferenceResponse.model_validate(a) for a in options.agencies],
        classes=[IPClassResponse.model_validate(c) for c in options.classes],
    )


@router.get("/export")
async def export_filing_records(
    db: DbSession,
    current_user: AdminUser,
    state: Annotated[QueryState, Depends(query_state)],
    export_format: Annotated[Optional[str], Query(alias="format")] = None,
    columns: Annotated[Optional[str], Query(description="Comma-separated column keys")] = None,
) -> StreamingResponse:
    """
    Download every record matching the current filters.

    Sort and pagination in the query string are ignored. The file is
    built completely before the response starts, so a failure never
    yields a truncated download.
    """
    export_file = await ExportService().export_records(
        db,
        state.filters,
        columns=parse_column_keys(columns),
        export_format=parse_export_format(export_format),
    )
    return StreamingResponse(
        iter([export_file.body]),
        media_type=export_file.content_type,
        headers={
            "Content-Disposition": f'attachment; filename="{export_file.filename}"',
        },
    )


@router.post("/bulk-delete", response_model=BulkDeleteResponse)
async def bulk_delete_records(
    request_obj: BulkDeleteRequest,
    db: DbSession,
    current_user: CurrentUser,
    storage: Storage,
) -> BulkDeleteResponse:
    """Delete several records, then their certificates."""
    ids = BulkDeletePlanner.parse_identifiers(request_obj.ids)
    result = await BulkDeletePlanner(storage).execute(db, ids)
    return BulkDeleteResponse(deleted_ids=result.deleted_ids, warnings=result.warnings)


# =============================================================================
# Record CRUD Endpoints
# =============================================================================


@router.post("", response_model=RecordResponse, status_code=status.HTTP_201_CREATED)
async def create_filing_record(
    db: DbSession,
    current_user: CurrentUser,
    record_service: RecordServiceDep,
    data: RecordForm,
    certificate: CertificateFile = None,
) -> RecordResponse:
    """Create a record from a multipart form with an optional certificate."""
    record = await record_service.create_record(db, data, await read_certificate(certificate))
    return RecordResponse.model_validate(record)


@router.get("/{record_id}", response_model=RecordResponse)
async def get_filing_record(
    record_id: int,
    db: DbSession,
    current_user: CurrentUser,
) -> RecordResponse:
    return RecordResponse.model_validate(await get_record(db, record_id))


@router.patch("/{record_id}", response_model=RecordResponse)
async def update_filing_record(
    record_id: int,
    db: DbSession,
    current_user: CurrentUser,
    record_service: RecordServiceDep,
    data: RecordForm,
    certificate: CertificateFile = None,
    remove_certificate: Annotated[bool, Form(alias="removeCertificate")] = False,
) -> RecordResponse:
    """
    Replace every field of a record.

    A new certificate replaces the old one; ``removeCertificate`` drops it
    without a replacement.
    """
    record = await record_service.update_record(
        db,
        record_id,
        data,
        certificate=await read_certificate(certificate),
        remove_certificate=remove_certificate,
    )
    return RecordResponse.model_validate(record)


@router.patch("/{record_id}/status", response_model=RecordResponse)
async def update_filing_status(
    record_id: int,
    request_obj: StatusUpdateRequest,
    db: DbSession,
    current_user: AdminUser,
    record_service: RecordServiceDep,
) -> RecordResponse:
    record = await record_service.update_status(db, record_id, request_obj.status_id)
    return RecordResponse.model_validate(record)


@router.delete("/{record_id}", response_model=DeleteResponse)
async def delete_filing_record(
    record_id: int,
    db: DbSession,
    current_user: CurrentUser,
    record_service: RecordServiceDep,
) -> DeleteResponse:
    """Delete a record; its certificate is removed best-effort afterwards."""
    result = await record_service.delete_record(db, record_id)
    return DeleteResponse(
        id=record_id,
        message="Data HKI berhasil dihapus.",
        warnings=result.warnings,
    )


@router.get("/{record_id}/certificate-url", response_model=CertificateUrlResponse)
async def certificate_url(
    record_id: int,
    db: DbSession,
    current_user: CurrentUser,
    record_service: RecordServiceDep,
) -> CertificateUrlResponse:
    """Short-lived signed download link for the record's certificate."""
    url, expires = await record_service.certificate_url(db, record_id)
    return CertificateUrlResponse(signed_url=url, expires_in_seconds=expires)
