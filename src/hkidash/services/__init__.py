"""Service layer modules."""

from hkidash.services.bulk_delete import BulkDeletePlanner, BulkDeleteResult
from hkidash.services.export_service import ExportFormat, ExportService
from hkidash.services.master_data import MasterDataService, MasterTable, resolve_table
from hkidash.services.record_service import CertificateUpload, RecordService
from hkidash.services.storage_service import StorageService, get_storage_service
from hkidash.services.user_service import UserService

__all__ = [
    "BulkDeletePlanner",
    "BulkDeleteResult",
    "CertificateUpload",
    "ExportFormat",
    "ExportService",
    "MasterDataService",
    "MasterTable",
    "RecordService",
    "StorageService",
    "UserService",
    "get_storage_service",
    "resolve_table",
]
