"""Initial schema

Revision ID: 3c1f6a2b9d10
Revises:
Create Date: 2026-10-18 09:00:00.000000+00:00
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# Revision identifiers, used by Alembic
revision: str = "3c1f6a2b9d10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

FILING_STATUSES = ["Diterima", "Didaftar", "Dalam Proses", "Ditolak"]


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Upgrade database schema."""
    # Reference tables
    op.create_table(
        "applicants",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_applicants"),
        sa.UniqueConstraint("name", name="uq_applicants_name"),
    )
    op.create_table(
        "ip_types",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_ip_types"),
        sa.UniqueConstraint("name", name="uq_ip_types_name"),
    )
    filing_statuses = op.create_table(
        "filing_statuses",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_filing_statuses"),
        sa.UniqueConstraint("name", name="uq_filing_statuses_name"),
    )
    op.create_table(
        "proposing_agencies",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_proposing_agencies"),
        sa.UniqueConstraint("name", name="uq_proposing_agencies_name"),
    )
    op.create_table(
        "ip_classes",
        sa.Column("id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.CheckConstraint("id >= 1 AND id <= 45", name="ck_ip_classes_id_range"),
        sa.PrimaryKeyConstraint("id", name="pk_ip_classes"),
    )

    # Filing records
    op.create_table(
        "filing_records",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("product_category", sa.String(255), nullable=True),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("certificate_path", sa.String(500), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("applicant_id", sa.Integer(), nullable=False),
        sa.Column("type_id", sa.Integer(), nullable=False),
        sa.Column("status_id", sa.Integer(), nullable=False),
        sa.Column("agency_id", sa.Integer(), nullable=False),
        sa.Column("class_id", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["applicant_id"], ["applicants.id"],
            name="fk_filing_records_applicant_id_applicants", ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["type_id"], ["ip_types.id"],
            name="fk_filing_records_type_id_ip_types", ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["status_id"], ["filing_statuses.id"],
            name="fk_filing_records_status_id_filing_statuses", ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["agency_id"], ["proposing_agencies.id"],
            name="fk_filing_records_agency_id_proposing_agencies", ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["class_id"], ["ip_classes.id"],
            name="fk_filing_records_class_id_ip_classes", ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_filing_records"),
    )
    op.create_index("ix_filing_records_created_at", "filing_records", ["created_at"])
    op.create_index("ix_filing_records_year", "filing_records", ["year"])
    for column in ("applicant_id", "type_id", "status_id", "agency_id", "class_id"):
        op.create_index(f"ix_filing_records_{column}", "filing_records", [column])

    # Dashboard accounts
    op.create_table(
        "user_profiles",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_user_profiles"),
    )
    op.create_index("ix_user_profiles_email", "user_profiles", ["email"], unique=True)

    op.bulk_insert(filing_statuses, [{"name": name} for name in FILING_STATUSES])


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index("ix_user_profiles_email", table_name="user_profiles")
    op.drop_table("user_profiles")
    for column in ("class_id", "agency_id", "status_id", "type_id", "applicant_id"):
        op.drop_index(f"ix_filing_records_{column}", table_name="filing_records")
    op.drop_index("ix_filing_records_year", table_name="filing_records")
    op.drop_index("ix_filing_records_created_at", table_name="filing_records")
    op.drop_table("filing_records")
    op.drop_table("ip_classes")
    op.drop_table("proposing_agencies")
    op.drop_table("filing_statuses")
    op.drop_table("ip_types")
    op.drop_table("applicants")
