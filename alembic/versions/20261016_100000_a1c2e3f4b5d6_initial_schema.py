"""Initial clinical trial admin schema

Creates:
- users, activity_logs: accounts and the per-user audit trail
- studies, study_designs, study_types, study_phases: studies and catalogs
- excel_files, excel_data_rows: excel intake
- shipment_acknowledgments
- stages, form_submissions, page_migration_logs: workflow bookkeeping

Revision ID: a1c2e3f4b5d6
Revises:
Create Date: 2026-10-16 10:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "a1c2e3f4b5d6"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JSON = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def _id() -> sa.Column:
    return sa.Column("id", sa.String(length=24), nullable=False)


def _dated() -> list[sa.Column]:
    return [
        sa.Column("date_created", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False),
    ]


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _slugged() -> list[sa.Column]:
    return [
        sa.Column("unique_id", sa.String(length=100), nullable=True),
        sa.Column("slug", sa.String(length=500), nullable=True),
    ]


def _create_catalog(table: str, name_column: str) -> None:
    op.create_table(
        table,
        _id(),
        sa.Column(name_column, sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("studies", JSON, nullable=False),
        sa.Column(
            "study_count",
            sa.Integer(),
            nullable=False,
            comment="len(studies), kept by normalization for sorting",
        ),
        *_dated(),
        *_slugged(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(name_column),
        sa.UniqueConstraint("slug"),
    )
    op.create_index(f"ix_{table}_is_active", table, ["is_active"])
    op.create_index(f"ix_{table}_date_created", table, ["date_created"])
    op.create_index(
        f"uq_{table}_name_lower",
        table,
        [sa.text(f"lower({name_column})")],
        unique=True,
    )


def upgrade() -> None:
    """Upgrade database schema."""
    # ==========================================================================
    # USERS AND AUDIT TRAIL
    # ==========================================================================
    op.create_table(
        "users",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.Enum("user", "admin", name="user_role"), nullable=False),
        sa.Column("has_access", sa.Boolean(), nullable=False),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column("login_count", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "activity_logs",
        _id(),
        sa.Column("user_id", sa.String(length=24), nullable=False),
        sa.Column("action", sa.String(length=500), nullable=False),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("user_agent", sa.String(length=500), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_activity_logs_user_id", "activity_logs", ["user_id"])

    # ==========================================================================
    # STUDIES AND CATALOGS
    # ==========================================================================
    op.create_table(
        "studies",
        _id(),
        sa.Column("study_name", sa.String(length=255), nullable=False),
        sa.Column("protocol_number", sa.String(length=100), nullable=False),
        sa.Column("study_title", sa.String(length=1000), nullable=False),
        sa.Column("study_initiation_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("study_start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("study_end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("studydesigns", JSON, nullable=False),
        sa.Column("studytypes", JSON, nullable=False),
        sa.Column("studyphases", JSON, nullable=False),
        *_dated(),
        *_slugged(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("protocol_number"),
        sa.UniqueConstraint("slug"),
    )
    op.create_index("ix_studies_date_created", "studies", ["date_created"])

    _create_catalog("study_designs", "study_design")
    _create_catalog("study_types", "study_type")
    _create_catalog("study_phases", "study_phase")

    # ==========================================================================
    # EXCEL INTAKE
    # ==========================================================================
    op.create_table(
        "excel_files",
        _id(),
        sa.Column("excel_name", sa.String(length=255), nullable=False),
        sa.Column(
            "file_name", sa.String(length=255), nullable=True, comment="Original upload filename"
        ),
        sa.Column(
            "file_path",
            sa.String(length=1000),
            nullable=True,
            comment="Storage path returned by the storage backend",
        ),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("selected_columns", JSON, nullable=True),
        sa.Column("temporary", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("file_uploaded", sa.Boolean(), nullable=False),
        sa.Column("unique_id", sa.String(length=100), nullable=True),
        sa.Column("studies", JSON, nullable=False),
        *_dated(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_excel_files_date_created", "excel_files", ["date_created"])

    op.create_table(
        "excel_data_rows",
        _id(),
        sa.Column("excel_file_id", sa.String(length=24), nullable=False),
        sa.Column("row_data", JSON, nullable=False),
        sa.Column("studies", JSON, nullable=False),
        sa.Column("sent", sa.Boolean(), nullable=False),
        sa.Column(
            "clinical_data_id",
            sa.String(length=24),
            nullable=True,
            comment="Optional one-to-one link to a clinical data record",
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(["excel_file_id"], ["excel_files.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("clinical_data_id"),
    )
    op.create_index("ix_excel_data_rows_excel_file_id", "excel_data_rows", ["excel_file_id"])
    op.create_index("ix_excel_data_rows_sent", "excel_data_rows", ["sent"])
    op.create_index("ix_excel_data_rows_created_at", "excel_data_rows", ["created_at"])

    # ==========================================================================
    # SHIPMENT ACKNOWLEDGMENTS
    # ==========================================================================
    op.create_table(
        "shipment_acknowledgments",
        _id(),
        sa.Column("shipment_id", sa.String(length=24), nullable=False),
        sa.Column("study_id", sa.String(length=24), nullable=True),
        sa.Column("drug_group_id", sa.String(length=24), nullable=True),
        sa.Column("drug_id", sa.String(length=24), nullable=True),
        sa.Column("excel_row_id", sa.String(length=24), nullable=True),
        sa.Column("acknowledged_quantity", sa.Integer(), nullable=True),
        sa.Column("received_quantity", sa.Integer(), nullable=False),
        sa.Column("missing_quantity", sa.Integer(), nullable=False),
        sa.Column("damaged_quantity", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("date_acknowledged", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("acknowledged_quantity >= 0", name="ck_ack_acknowledged_nonneg"),
        sa.CheckConstraint("received_quantity >= 0", name="ck_ack_received_nonneg"),
        sa.CheckConstraint("missing_quantity >= 0", name="ck_ack_missing_nonneg"),
        sa.CheckConstraint("damaged_quantity >= 0", name="ck_ack_damaged_nonneg"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_shipment_acknowledgments_shipment_id", "shipment_acknowledgments", ["shipment_id"]
    )
    op.create_index(
        "ix_shipment_acknowledgments_study_id", "shipment_acknowledgments", ["study_id"]
    )
    op.create_index("ix_shipment_acknowledgments_status", "shipment_acknowledgments", ["status"])
    op.create_index(
        "ix_shipment_acknowledgments_created_at", "shipment_acknowledgments", ["created_at"]
    )

    # ==========================================================================
    # WORKFLOW
    # ==========================================================================
    op.create_table(
        "stages",
        _id(),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("order_number", sa.Integer(), nullable=False),
        *_dated(),
        *_slugged(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
        sa.UniqueConstraint("order_number"),
        sa.UniqueConstraint("slug"),
    )
    op.create_index("ix_stages_date_created", "stages", ["date_created"])

    op.create_table(
        "form_submissions",
        _id(),
        sa.Column("form_id", sa.String(length=24), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=255), nullable=False),
        sa.Column("data", JSON, nullable=False),
        sa.Column("submitted_by", sa.String(length=24), nullable=True),
        *_timestamps(),
        *_slugged(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
    )
    op.create_index("ix_form_submissions_form_id", "form_submissions", ["form_id"])
    op.create_index("ix_form_submissions_created_at", "form_submissions", ["created_at"])

    op.create_table(
        "page_migration_logs",
        _id(),
        sa.Column("page_id", sa.String(length=24), nullable=False),
        sa.Column("migrated_by", sa.String(length=24), nullable=True),
        sa.Column("migration_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_dated(),
        *_slugged(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
    )
    op.create_index("ix_page_migration_logs_page_id", "page_migration_logs", ["page_id"])
    op.create_index(
        "ix_page_migration_logs_date_created", "page_migration_logs", ["date_created"]
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table("page_migration_logs")
    op.drop_table("form_submissions")
    op.drop_table("stages")
    op.drop_table("shipment_acknowledgments")
    op.drop_table("excel_data_rows")
    op.drop_table("excel_files")
    op.drop_table("study_phases")
    op.drop_table("study_types")
    op.drop_table("study_designs")
    op.drop_table("studies")
    op.drop_table("activity_logs")
    op.drop_table("users")
    sa.Enum(name="user_role").drop(op.get_bind(), checkfirst=True)
