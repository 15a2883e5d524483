"""SQLAlchemy models."""

from hkidash.models.record import FilingRecord
from hkidash.models.reference import (
    Applicant,
    ClassKind,
    FilingStatus,
    IPClass,
    IPType,
    ProposingAgency,
)
from hkidash.models.user import UserProfile, UserRole

__all__ = [
    "Applicant",
    "ClassKind",
    "FilingRecord",
    "FilingStatus",
    "IPClass",
    "IPType",
    "ProposingAgency",
    "UserProfile",
    "UserRole",
]
