"""
FilingRecord model - the central HKI entry.
"""

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hkidash.db.base import Base, TimestampMixin
from hkidash.models.reference import (
    Applicant,
    FilingStatus,
    IPClass,
    IPType,
    ProposingAgency,
)


class FilingRecord(Base, TimestampMixin):
    """
    One IP-right filing facilitated by the regional office.

    Relationships are ``lazy="raise"``: every query must say which
    relations it loads, so exports never pull relations nobody asked for.
    """

    __tablename__ = "filing_records"
    __table_args__ = (
        Index("ix_filing_records_created_at", "created_at"),
        Index("ix_filing_records_year", "year"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    product_category: Mapped[str | None] = mapped_column(String(255), nullable=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Object key in the certificate bucket, not the file itself
    certificate_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    applicant_id: Mapped[int] = mapped_column(
        ForeignKey("applicants.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    type_id: Mapped[int] = mapped_column(
        ForeignKey("ip_types.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    status_id: Mapped[int] = mapped_column(
        ForeignKey("filing_statuses.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    agency_id: Mapped[int] = mapped_column(
        ForeignKey("proposing_agencies.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    class_id: Mapped[int | None] = mapped_column(
        ForeignKey("ip_classes.id", ondelete="RESTRICT"), nullable=True, index=True
    )

    applicant: Mapped[Applicant] = relationship(lazy="raise")
    ip_type: Mapped[IPType] = relationship(lazy="raise")
    status: Mapped[FilingStatus] = relationship(lazy="raise")
    agency: Mapped[ProposingAgency] = relationship(lazy="raise")
    ip_class: Mapped[IPClass | None] = relationship(lazy="raise")

    def __repr__(self) -> str:
        return f"<FilingRecord {self.id} {self.title!r}>"
