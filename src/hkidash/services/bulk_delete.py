"""
Deleting filing records together with their certificate blobs.

The rows are authoritative, so they go first. Blobs are removed only
after the rows are gone for good, and a blob that cannot be removed is
logged and reported as a warning instead of failing the request: an
orphaned file is preferable to a record that cannot be deleted because
of a storage hiccup.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hkidash.core.exceptions import HkiDashError, UpstreamFailure, ValidationError
from hkidash.core.logging import get_logger
from hkidash.models import FilingRecord

logger = get_logger(__name__)


class BlobRemover(Protocol):
    def delete_files(self, object_keys: list[str]) -> list[str]: ...


@dataclass
class BulkDeleteResult:
    deleted_ids: list[int]
    blob_failures: list[str] = field(default_factory=list)

    @property
    def warnings(self) -> list[str]:
        return [f"Sertifikat {key} gagal dihapus dari penyimpanan." for key in self.blob_failures]


def _parse_identifier(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())
        return parsed if parsed > 0 else None
    return None


class BulkDeletePlanner:
    """
    Two-step delete: rows in one statement, then blobs in batches.

    1. Collect the certificate keys of every requested row (one query).
    2. Delete the rows and commit. Any failure aborts before storage is
       touched, so every blob stays referenced by a surviving row.
    3. Delete the collected blobs. Failures become warnings.
    """

    def __init__(self, storage: BlobRemover) -> None:
        self.storage = storage

    @staticmethod
    def parse_identifiers(raw: Any) -> list[int]:
        """
        Validate a client-supplied id list before any store call.

        Raises:
            ValidationError: If the list is empty, not a list, or holds
                anything but positive integers
        """
        if not isinstance(raw, list) or not raw:
            raise ValidationError(
                "Daftar ID tidak valid atau kosong.",
                errors=[{"field": "ids", "message": "must be a non-empty list"}],
            )

        ids: list[int] = []
        invalid: list[Any] = []
        for value in raw:
            parsed = _parse_identifier(value)
            if parsed is None:
                invalid.append(value)
            elif parsed not in ids:
                ids.append(parsed)

        if invalid:
            raise ValidationError(
                "Daftar ID tidak valid atau kosong.",
                errors=[{"field": "ids", "invalid": [str(v)[:50] for v in invalid]}],
            )
        return ids

    async def execute(self, db: AsyncSession, ids: list[int]) -> BulkDeleteResult:
        """
        Delete ``ids`` and then their certificates.

        Returns:
            The ids that existed and were deleted, plus blob keys that
            could not be removed

        Raises:
            UpstreamFailure: If the row lookup or the row delete fails;
                no blob is touched in that case
        """
        try:
            rows = (
                await db.execute(
                    select(FilingRecord.id, FilingRecord.certificate_path).where(
                        FilingRecord.id.in_(ids)
                    )
                )
            ).all()
        except SQLAlchemyError as e:
            raise UpstreamFailure("Gagal membaca data HKI yang akan dihapus.", e) from e

        existing_ids = [row.id for row in rows]
        blob_keys = [row.certificate_path for row in rows if row.certificate_path]
        if not existing_ids:
            return BulkDeleteResult(deleted_ids=[])

        try:
            await db.execute(delete(FilingRecord).where(FilingRecord.id.in_(existing_ids)))
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Row delete failed for {len(existing_ids)} records: {e}")
            raise UpstreamFailure("Gagal menghapus data HKI.", e) from e

        logger.info(f"Deleted {len(existing_ids)} records", extra={"ids": existing_ids})

        failed = self._remove_blobs(blob_keys)
        return BulkDeleteResult(deleted_ids=existing_ids, blob_failures=failed)

    def _remove_blobs(self, blob_keys: list[str]) -> list[str]:
        if not blob_keys:
            return []
        try:
            failed = self.storage.delete_files(blob_keys)
        except HkiDashError as e:
            logger.warning(f"Certificate cleanup failed after row delete: {e.message}")
            return list(blob_keys)

        if failed:
            logger.warning(
                f"{len(failed)} certificate blobs left orphaned after row delete",
                extra={"keys": failed},
            )
        return failed
