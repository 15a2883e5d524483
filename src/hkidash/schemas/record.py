"""
Schemas for filing record endpoints.

Response bodies use camelCase keys; field names stay snake_case in
Python and ORM objects validate straight into them.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from hkidash.models.reference import MAX_CLASS_ID, MIN_CLASS_ID

MIN_YEAR = 1900
MAX_YEAR = 2100


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# Responses
# =============================================================================


class ReferenceResponse(CamelModel):
    """Id and name of a type, status or agency."""

    id: int
    name: str


class ApplicantResponse(CamelModel):
    id: int
    name: str
    address: Optional[str] = None


class IPClassResponse(CamelModel):
    id: int
    name: str
    kind: str
    label: str


class RecordResponse(CamelModel):
    id: int
    title: str
    product_category: Optional[str] = None
    year: Optional[int] = None
    certificate_path: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    applicant: ApplicantResponse
    ip_type: ReferenceResponse
    status: ReferenceResponse
    agency: ReferenceResponse
    ip_class: Optional[IPClassResponse] = None


class RecordListResponse(CamelModel):
    records: list[RecordResponse]
    total_count: int
    page: int
    page_size: int
    query: str = Field(description="Canonical query string of the table state")


class FilterOptionsResponse(CamelModel):
    types: list[ReferenceResponse]
    statuses: list[ReferenceResponse]
    years: list[int]
    agencies: list[ReferenceResponse]
    classes: list[IPClassResponse]


class BulkDeleteRequest(BaseModel):
    # Element validation happens in BulkDeletePlanner so bad ids get a 400
    ids: Any = None


class BulkDeleteResponse(CamelModel):
    deleted_ids: list[int]
    warnings: list[str] = []


class DeleteResponse(CamelModel):
    id: int
    message: str
    warnings: list[str] = []


class CertificateUrlResponse(CamelModel):
    signed_url: str
    expires_in_seconds: int


class StatusUpdateRequest(BaseModel):
    status_id: int = Field(gt=0, validation_alias=AliasChoices("statusId", "status_id"))


# =============================================================================
# Form input
# =============================================================================


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class RecordInput(BaseModel):
    """All fields of a record form, after stripping and blank-to-None."""

    title: str = Field(min_length=1, max_length=500)
    product_category: Optional[str] = Field(default=None, max_length=255)
    applicant_name: str = Field(min_length=1, max_length=255)
    applicant_address: Optional[str] = None
    type_id: int = Field(gt=0)
    status_id: int = Field(gt=0)
    agency_id: int = Field(gt=0)
    class_id: Optional[int] = Field(default=None, ge=MIN_CLASS_ID, le=MAX_CLASS_ID)
    year: Optional[int] = Field(default=None, ge=MIN_YEAR, le=MAX_YEAR)
    notes: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def strip_blanks(cls, value: Any) -> Any:
        return _blank_to_none(value)
