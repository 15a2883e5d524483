"""
Exception hierarchy for the HKI dashboard.

Every error raised deliberately by the service layer derives from
HkiDashError and carries the HTTP status it should surface as. The
handlers in ``hkidash.main`` turn them into ``{"error": {...}}`` bodies.
"""

from typing import Any


class HkiDashError(Exception):
    """Base exception for all dashboard errors."""

    status_code = 500

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code
            details: Additional error details
        """
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


# =============================================================================
# HTTP 400 - Validation Errors
# =============================================================================


class ValidationError(HkiDashError):
    """Malformed input: bad identifier, bad file, empty update body."""

    status_code = 400

    def __init__(
        self,
        message: str = "Validation error",
        errors: list[dict[str, Any]] | None = None,
        code: str = "VALIDATION_ERROR",
    ) -> None:
        super().__init__(
            message=message,
            code=code,
            details={"errors": errors or []},
        )

    @classmethod
    def from_pydantic(cls, error: Any, message: str = "Data tidak valid.") -> "ValidationError":
        """Wrap a pydantic ValidationError so it surfaces as a 400."""
        return cls(
            message,
            errors=[
                {"field": ".".join(str(loc) for loc in err["loc"]), "message": err["msg"]}
                for err in error.errors()
            ],
        )


class NoColumnsSelectedError(ValidationError):
    """Export requested with no known column."""

    def __init__(self, requested: list[str] | None = None) -> None:
        super().__init__(
            message="Pilih minimal satu kolom untuk diekspor.",
            errors=[{"field": "columns", "requested": requested or []}],
            code="NO_COLUMNS_SELECTED",
        )


# =============================================================================
# HTTP 401 / 403 - Authentication and Authorization
# =============================================================================


class AuthenticationError(HkiDashError):
    """Missing or invalid credentials."""

    status_code = 401

    def __init__(
        self,
        message: str = "Authentication required",
        code: str = "AUTHENTICATION_REQUIRED",
    ) -> None:
        super().__init__(message=message, code=code)


class InvalidCredentialsError(AuthenticationError):
    def __init__(self) -> None:
        super().__init__(message="Invalid email or password", code="INVALID_CREDENTIALS")


class AuthorizationError(HkiDashError):
    """Authenticated but not allowed to perform the action."""

    status_code = 403

    def __init__(
        self,
        message: str = "You don't have permission to perform this action",
        code: str = "PERMISSION_DENIED",
    ) -> None:
        super().__init__(message=message, code=code)


# =============================================================================
# HTTP 404 - Not Found
# =============================================================================


class NotFoundError(HkiDashError):
    """Identifier has no matching row."""

    status_code = 404

    def __init__(self, resource: str, identifier: Any | None = None) -> None:
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} with id '{identifier}' not found"
        super().__init__(
            message=message,
            code="NOT_FOUND",
            details={"resource": resource, "identifier": identifier},
        )


class NoMatchingRecordsError(NotFoundError):
    """Export filter matched zero records."""

    def __init__(self) -> None:
        HkiDashError.__init__(
            self,
            message="Tidak ada data yang cocok dengan filter yang Anda pilih.",
            code="NO_MATCHING_RECORDS",
        )


# =============================================================================
# HTTP 409 - Conflict
# =============================================================================


class ConflictError(HkiDashError):
    """Unique constraint violation."""

    status_code = 409

    def __init__(self, message: str, resource: str | None = None) -> None:
        super().__init__(
            message=message,
            code="CONFLICT",
            details={"resource": resource} if resource else {},
        )


class DependencyError(ConflictError):
    """Reference row is still used by filing records."""

    def __init__(self, resource: str, identifier: Any) -> None:
        HkiDashError.__init__(
            self,
            message="Data tidak dapat dihapus karena masih digunakan oleh entri HKI.",
            code="IN_USE",
            details={"resource": resource, "identifier": identifier},
        )


# =============================================================================
# HTTP 413 - Payload Too Large
# =============================================================================


class ExportTooLargeError(HkiDashError):
    status_code = 413

    def __init__(self, count: int, limit: int) -> None:
        super().__init__(
            message=(
                f"Data terlalu besar untuk diekspor ({count} baris, maksimum {limit}). "
                "Persempit filter Anda."
            ),
            code="EXPORT_TOO_LARGE",
            details={"count": count, "limit": limit},
        )


# =============================================================================
# HTTP 500 - Upstream Failures
# =============================================================================


class UpstreamFailure(HkiDashError):
    """Store or blob service failed for reasons outside input validity."""

    status_code = 500

    def __init__(
        self,
        message: str = "Upstream service failed",
        original_error: Exception | None = None,
        code: str | None = None,
    ) -> None:
        details = {}
        if original_error is not None:
            details["reason"] = str(original_error)
        super().__init__(message=message, code=code or "UPSTREAM_FAILURE", details=details)


class FilterQueryError(UpstreamFailure):
    """Identifier-search phase failed."""

    def __init__(self, original_error: Exception | None = None) -> None:
        super().__init__(
            message="Gagal mencari data HKI dengan filter yang diberikan.",
            original_error=original_error,
            code="FILTER_QUERY_FAILED",
        )


class HydrationError(UpstreamFailure):
    """Loading details for already-matched identifiers failed."""

    def __init__(self, original_error: Exception | None = None) -> None:
        super().__init__(
            message="Gagal memuat detail data HKI.",
            original_error=original_error,
            code="HYDRATION_FAILED",
        )


class StorageError(UpstreamFailure):
    """Blob store upload, removal or signing failed."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message=message, original_error=original_error, code="STORAGE_FAILED")
