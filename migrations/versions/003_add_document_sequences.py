"""Add document_sequences for journal entry numbering.

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "003"
down_revision = "002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "document_sequences",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("fiscal_year_id", sa.Integer(), sa.ForeignKey("fiscal_years.id"), nullable=False),
        sa.Column("series", sa.String(20), nullable=False),
        sa.Column("last_value", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_document_sequences_series",
        "document_sequences",
        ["fiscal_year_id", "series"],
        unique=True,
    )

    # Seed from entries numbered before sequences existed
    op.execute(
        """
        INSERT INTO document_sequences (company_id, fiscal_year_id, series, last_value)
        SELECT company_id, fiscal_year_id, 'JV', COUNT(*)
        FROM journal_entries
        GROUP BY company_id, fiscal_year_id
        """
    )


def downgrade() -> None:
    op.drop_table("document_sequences")
