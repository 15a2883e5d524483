"""
Reference tables that filing records point at.

IP types, IP classes and proposing agencies are maintained through the
master-data API. Filing statuses are seeded by migration and read-only.
Applicants are created implicitly, deduplicated by name.
"""

from enum import Enum

from sqlalchemy import CheckConstraint, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hkidash.db.base import Base

MIN_CLASS_ID = 1
MAX_CLASS_ID = 45


class ClassKind(str, Enum):
    """Whether an international class covers goods or services."""

    GOODS = "Goods"
    SERVICES = "Services"


class Applicant(Base):
    """Person or business the filing is made for (pemohon)."""

    __tablename__ = "applicants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Natural dedup key for the upsert-on-name policy
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Applicant {self.id} {self.name!r}>"


class IPType(Base):
    """Kind of IP right: Merek, Hak Cipta, Paten, ..."""

    __tablename__ = "ip_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)


class FilingStatus(Base):
    """Where a filing stands: Diterima, Didaftar, Dalam Proses, Ditolak."""

    __tablename__ = "filing_statuses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)


class ProposingAgency(Base):
    """Regional government unit (OPD) that proposed the filing."""

    __tablename__ = "proposing_agencies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)


class IPClass(Base):
    """
    Nice classification class.

    The id is the class number itself (1-45) and is supplied by the caller,
    never generated.
    """

    __tablename__ = "ip_classes"
    __table_args__ = (
        CheckConstraint(
            f"id >= {MIN_CLASS_ID} AND id <= {MAX_CLASS_ID}",
            name="id_range",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False, default=ClassKind.GOODS.value)

    @property
    def label(self) -> str:
        return f"{self.id} - {self.name} ({self.kind})"
