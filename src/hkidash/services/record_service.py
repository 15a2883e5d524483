"""Write side of filing records: create, update, delete, status, certificate links."""

import uuid
from dataclasses import dataclass
from pathlib import PurePath
from typing import Optional, Protocol

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hkidash.core.config import settings
from hkidash.core.exceptions import (
    NotFoundError,
    StorageError,
    UpstreamFailure,
    ValidationError,
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
from hkidash.schemas.record import RecordInput
from hkidash.services.bulk_delete import BulkDeletePlanner, BulkDeleteResult
from hkidash.services.record_query import get_record

logger = get_logger(__name__)


class CertificateStore(Protocol):
    def upload_bytes(self, data: bytes, object_key: str, content_type: Optional[str] = None) -> str: ...

    def delete_file(self, object_key: str) -> None: ...

    def delete_files(self, object_keys: list[str]) -> list[str]: ...

    def generate_presigned_url(self, object_key: str, expiration_seconds: int = 60) -> str: ...


@dataclass
class CertificateUpload:
    """An uploaded certificate file, read fully into memory."""

    filename: str
    data: bytes
    content_type: Optional[str] = None

    @property
    def extension(self) -> str:
        return PurePath(self.filename).suffix.lower().lstrip(".")


class RecordService:
    """Service for filing record mutations."""

    def __init__(self, storage: CertificateStore) -> None:
        self.storage = storage

    # -------------------------------------------------------------------------
    # Applicants
    # -------------------------------------------------------------------------

    async def upsert_applicant(
        self,
        db: AsyncSession,
        name: str,
        address: Optional[str],
    ) -> int:
        """
        Return the id of the applicant called ``name``, creating it if needed.

        A non-null ``address`` overwrites the stored one, so the most
        recent write wins; a null address leaves it alone.
        """
        insert = postgresql.insert if db.get_bind().dialect.name == "postgresql" else sqlite.insert
        stmt = insert(Applicant).values(name=name, address=address)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Applicant.name],
            set_={"address": func.coalesce(stmt.excluded.address, Applicant.address)},
        ).returning(Applicant.id)
        return (await db.execute(stmt)).scalar_one()

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    async def _check_references(self, db: AsyncSession, data: RecordInput) -> None:
        checks = [
            ("typeId", IPType, data.type_id),
            ("statusId", FilingStatus, data.status_id),
            ("agencyId", ProposingAgency, data.agency_id),
            ("classId", IPClass, data.class_id),
        ]
        errors = []
        for field_name, model, identifier in checks:
            if identifier is not None and await db.get(model, identifier) is None:
                errors.append({"field": field_name, "message": f"unknown id {identifier}"})
        if errors:
            raise ValidationError("Data referensi tidak ditemukan.", errors=errors)

    def _check_certificate(self, certificate: CertificateUpload) -> None:
        if certificate.extension not in settings.allowed_extensions:
            raise ValidationError(
                f"Tipe berkas .{certificate.extension or '?'} tidak diizinkan.",
                errors=[{"field": "certificate", "allowed": settings.allowed_extensions}],
            )
        if not certificate.data:
            raise ValidationError(
                "Berkas sertifikat kosong.",
                errors=[{"field": "certificate", "message": "empty file"}],
            )
        if len(certificate.data) > settings.max_upload_size_bytes:
            raise ValidationError(
                f"Ukuran berkas melebihi {settings.max_upload_size_mb} MB.",
                errors=[{"field": "certificate", "size": len(certificate.data)}],
            )

    # -------------------------------------------------------------------------
    # Blobs
    # -------------------------------------------------------------------------

    def _upload(self, certificate: CertificateUpload) -> str:
        object_key = f"{uuid.uuid4()}.{certificate.extension}"
        return self.storage.upload_bytes(certificate.data, object_key, certificate.content_type)

    def _discard(self, object_key: str, reason: str) -> None:
        """Best-effort removal; a failure only leaves an orphaned blob."""
        try:
            self.storage.delete_file(object_key)
        except StorageError as e:
            logger.warning(
                f"Could not remove certificate {object_key} ({reason}): {e.message}",
                extra={"object_key": object_key},
            )

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def create_record(
        self,
        db: AsyncSession,
        data: RecordInput,
        certificate: Optional[CertificateUpload] = None,
    ) -> FilingRecord:
        """
        Create a record, uploading its certificate first.

        If the row cannot be written the freshly uploaded blob is removed
        again.

        Raises:
            ValidationError: Unknown reference id or unacceptable file
            StorageError: If the upload fails; nothing is written
            UpstreamFailure: If the insert fails
        """
        await self._check_references(db, data)
        if certificate is not None:
            self._check_certificate(certificate)

        object_key = self._upload(certificate) if certificate is not None else None
        try:
            applicant_id = await self.upsert_applicant(db, data.applicant_name, data.applicant_address)
            record = FilingRecord(
                title=data.title,
                product_category=data.product_category,
                year=data.year,
                notes=data.notes,
                certificate_path=object_key,
                applicant_id=applicant_id,
                type_id=data.type_id,
                status_id=data.status_id,
                agency_id=data.agency_id,
                class_id=data.class_id,
            )
            db.add(record)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            if object_key:
                self._discard(object_key, "create failed")
            raise UpstreamFailure("Gagal menyimpan data HKI.", e) from e

        logger.info(f"Created filing record {record.id}", extra={"record_id": record.id})
        return await get_record(db, record.id)

    async def update_record(
        self,
        db: AsyncSession,
        record_id: int,
        data: RecordInput,
        certificate: Optional[CertificateUpload] = None,
        remove_certificate: bool = False,
    ) -> FilingRecord:
        """
        Replace every field of a record, optionally swapping its certificate.

        Certificate replacement order: upload the new blob, commit the row
        pointing at it, and only then remove the old blob. A failed upload
        leaves the record untouched; a failed commit removes the new blob;
        a failed removal of the old blob is only logged.

        Raises:
            NotFoundError: If the record does not exist
            ValidationError: Unknown reference id or unacceptable file
            StorageError: If the new certificate cannot be uploaded
            UpstreamFailure: If the update fails
        """
        record = await db.get(FilingRecord, record_id)
        if record is None:
            raise NotFoundError("Filing record", record_id)

        await self._check_references(db, data)
        if certificate is not None:
            self._check_certificate(certificate)

        old_key = record.certificate_path
        new_key = self._upload(certificate) if certificate is not None else None

        try:
            applicant_id = await self.upsert_applicant(db, data.applicant_name, data.applicant_address)
            record.title = data.title
            record.product_category = data.product_category
            record.year = data.year
            record.notes = data.notes
            record.applicant_id = applicant_id
            record.type_id = data.type_id
            record.status_id = data.status_id
            record.agency_id = data.agency_id
            record.class_id = data.class_id
            if new_key is not None:
                record.certificate_path = new_key
            elif remove_certificate:
                record.certificate_path = None
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            if new_key:
                self._discard(new_key, "update failed")
            raise UpstreamFailure("Gagal memperbarui data HKI.", e) from e

        if old_key and old_key != record.certificate_path:
            self._discard(old_key, "replaced")

        logger.info(f"Updated filing record {record_id}", extra={"record_id": record_id})
        return await get_record(db, record_id)

    async def delete_record(self, db: AsyncSession, record_id: int) -> BulkDeleteResult:
        """
        Delete one record, then its certificate (best-effort).

        Raises:
            NotFoundError: If the record does not exist
        """
        if await db.get(FilingRecord, record_id) is None:
            raise NotFoundError("Filing record", record_id)
        return await BulkDeletePlanner(self.storage).execute(db, [record_id])

    async def update_status(self, db: AsyncSession, record_id: int, status_id: int) -> FilingRecord:
        """
        Move a record to another filing status.

        Raises:
            NotFoundError: If the record does not exist
            ValidationError: If the status id is unknown
        """
        record = await db.get(FilingRecord, record_id)
        if record is None:
            raise NotFoundError("Filing record", record_id)
        if await db.get(FilingStatus, status_id) is None:
            raise ValidationError(
                "Status tidak valid.",
                errors=[{"field": "statusId", "message": f"unknown id {status_id}"}],
            )

        record.status_id = status_id
        await db.commit()
        logger.info(
            f"Status of record {record_id} set to {status_id}",
            extra={"record_id": record_id, "status_id": status_id},
        )
        return await get_record(db, record_id)

    async def certificate_url(self, db: AsyncSession, record_id: int) -> tuple[str, int]:
        """
        Sign a short-lived download URL for a record's certificate.

        Returns:
            Tuple of (url, lifetime in seconds)

        Raises:
            NotFoundError: If the record or its certificate does not exist
        """
        record = await db.get(FilingRecord, record_id)
        if record is None:
            raise NotFoundError("Filing record", record_id)
        if not record.certificate_path:
            raise NotFoundError("Certificate", record_id)

        expires = settings.certificate_url_expire_seconds
        url = self.storage.generate_presigned_url(record.certificate_path, expires)
        return url, expires
