"""
CRUD for the reference tables behind filing records.

The set of writable tables is closed: MasterTable enumerates them and
each member carries its model, schemas and the record column that points
at it. A table name from the URL is only ever used to pick an enum
member, never interpolated into SQL.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from hkidash.core.exceptions import (
    ConflictError,
    DependencyError,
    NotFoundError,
    UpstreamFailure,
    ValidationError,
)
from hkidash.core.logging import get_logger
from hkidash.db.base import Base
from hkidash.models import FilingRecord, FilingStatus, IPClass, IPType, ProposingAgency
from hkidash.schemas.master import IPClassCreate, IPClassUpdate, NamedCreate, NamedUpdate
from hkidash.schemas.record import IPClassResponse, ReferenceResponse

logger = get_logger(__name__)


class MasterTable(str, Enum):
    IP_TYPES = "ip-types"
    IP_CLASSES = "ip-classes"
    AGENCIES = "agencies"


@dataclass(frozen=True)
class MasterTableSpec:
    label: str
    model: type[Base]
    create_schema: type[BaseModel]
    update_schema: type[BaseModel]
    response_schema: type[BaseModel]
    # Record column referencing this table; a row in use cannot be deleted
    referenced_by: InstrumentedAttribute
    order_by: InstrumentedAttribute
    # The original web form sends the id under this name too
    id_field: str


MASTER_TABLES: dict[MasterTable, MasterTableSpec] = {
    MasterTable.IP_TYPES: MasterTableSpec(
        label="Jenis HKI",
        model=IPType,
        create_schema=NamedCreate,
        update_schema=NamedUpdate,
        response_schema=ReferenceResponse,
        referenced_by=FilingRecord.type_id,
        order_by=IPType.name,
        id_field="id_jenis_hki",
    ),
    MasterTable.IP_CLASSES: MasterTableSpec(
        label="Kelas HKI",
        model=IPClass,
        create_schema=IPClassCreate,
        update_schema=IPClassUpdate,
        response_schema=IPClassResponse,
        referenced_by=FilingRecord.class_id,
        order_by=IPClass.id,
        id_field="id_kelas",
    ),
    MasterTable.AGENCIES: MasterTableSpec(
        label="Pengusul",
        model=ProposingAgency,
        create_schema=NamedCreate,
        update_schema=NamedUpdate,
        response_schema=ReferenceResponse,
        referenced_by=FilingRecord.agency_id,
        order_by=ProposingAgency.name,
        id_field="id_pengusul",
    ),
}


def resolve_table(name: str) -> MasterTable:
    """
    Map a URL segment onto the safelist.

    Raises:
        ValidationError: For any table outside the safelist
    """
    try:
        return MasterTable(name)
    except ValueError:
        raise ValidationError(
            f"Tabel '{name}' tidak diizinkan.",
            errors=[{"field": "table", "allowed": [t.value for t in MasterTable]}],
        ) from None


def _validate(schema: type[BaseModel], payload: Any) -> BaseModel:
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e) from e


class MasterDataService:
    """Service for reference table maintenance."""

    def serialize(self, table: MasterTable, row: Base) -> dict[str, Any]:
        return MASTER_TABLES[table].response_schema.model_validate(row).model_dump(by_alias=True)

    async def list_rows(self, db: AsyncSession, table: MasterTable) -> list[Base]:
        spec = MASTER_TABLES[table]
        result = await db.execute(select(spec.model).order_by(spec.order_by))
        return list(result.scalars().all())

    async def list_statuses(self, db: AsyncSession) -> list[FilingStatus]:
        """Filing statuses are read-only reference data."""
        result = await db.execute(select(FilingStatus).order_by(FilingStatus.id))
        return list(result.scalars().all())

    async def create_row(self, db: AsyncSession, table: MasterTable, payload: Any) -> Base:
        """
        Insert a reference row.

        Raises:
            ValidationError: If the payload does not fit the table's schema
            ConflictError: If the id (IP classes) or name already exists
        """
        spec = MASTER_TABLES[table]
        if isinstance(payload, dict) and spec.id_field in payload and "id" not in payload:
            payload = {("id" if k == spec.id_field else k): v for k, v in payload.items()}
        data = _validate(spec.create_schema, payload).model_dump(mode="json")

        if "id" in data and await db.get(spec.model, data["id"]) is not None:
            raise ConflictError(
                f"{spec.label} dengan ID {data['id']} sudah ada.", resource=table.value
            )

        row = spec.model(**data)
        db.add(row)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise ConflictError(f"{spec.label} dengan nama tersebut sudah ada.", resource=table.value) from e
        except SQLAlchemyError as e:
            await db.rollback()
            raise UpstreamFailure(f"Gagal menambah {spec.label}.", e) from e

        logger.info(f"Created {table.value} row {row.id}")
        return row

    async def update_row(
        self,
        db: AsyncSession,
        table: MasterTable,
        row_id: int,
        payload: Any,
    ) -> Base:
        """
        Partially update a reference row. Id fields in the payload are ignored.

        Raises:
            ValidationError: Empty or invalid payload
            NotFoundError: If the row does not exist
            ConflictError: If the new name is already taken
        """
        spec = MASTER_TABLES[table]
        if isinstance(payload, dict):
            payload = {k: v for k, v in payload.items() if k not in ("id", spec.id_field)}
        if not payload:
            raise ValidationError("Tidak ada data untuk diperbarui.")
        changes = _validate(spec.update_schema, payload).model_dump(mode="json", exclude_unset=True)
        changes = {k: v for k, v in changes.items() if v is not None}
        if not changes:
            raise ValidationError("Tidak ada data untuk diperbarui.")

        row = await db.get(spec.model, row_id)
        if row is None:
            raise NotFoundError(spec.label, row_id)

        for key, value in changes.items():
            setattr(row, key, value)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise ConflictError(f"{spec.label} dengan nama tersebut sudah ada.", resource=table.value) from e
        except SQLAlchemyError as e:
            await db.rollback()
            raise UpstreamFailure(f"Gagal memperbarui {spec.label}.", e) from e

        logger.info(f"Updated {table.value} row {row_id}", extra={"fields": list(changes)})
        return row

    async def delete_row(self, db: AsyncSession, table: MasterTable, row_id: int) -> None:
        """
        Delete a reference row that no filing record uses.

        Raises:
            NotFoundError: If the row does not exist
            DependencyError: If filing records still reference it
        """
        spec = MASTER_TABLES[table]
        row = await db.get(spec.model, row_id)
        if row is None:
            raise NotFoundError(spec.label, row_id)

        in_use = await db.scalar(
            select(func.count()).select_from(FilingRecord).where(spec.referenced_by == row_id)
        )
        if in_use:
            raise DependencyError(table.value, row_id)

        await db.delete(row)
        try:
            await db.commit()
        except IntegrityError as e:
            # A record may have started using the row since the check above
            await db.rollback()
            raise DependencyError(table.value, row_id) from e
        except SQLAlchemyError as e:
            await db.rollback()
            raise UpstreamFailure(f"Gagal menghapus {spec.label}.", e) from e

        logger.info(f"Deleted {table.value} row {row_id}")
