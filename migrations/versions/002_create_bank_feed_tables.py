"""Create categorization_rules, bank_feed_transactions, bank_import_logs tables.

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── Categorization rules ──────────────────────────
    op.create_table(
        "categorization_rules",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("rule_name", sa.String(255), nullable=False),
        sa.Column("priority", sa.Integer(), server_default="0", nullable=False),
        sa.Column("conditions", JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("target_account_id", sa.Integer(), sa.ForeignKey("chart_of_accounts.id"), nullable=True),
        sa.Column("target_party_id", sa.Integer(), sa.ForeignKey("parties.id"), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("usage_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by_user_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_categorization_rules_company_active", "categorization_rules", ["company_id", "is_active"]
    )

    # ── Bank feed transactions ────────────────────────
    op.create_table(
        "bank_feed_transactions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("bank_account_id", sa.Integer(), sa.ForeignKey("bank_accounts.id"), nullable=False),
        sa.Column("transaction_date", sa.Date(), nullable=False),
        sa.Column("value_date", sa.Date(), nullable=True),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("reference_number", sa.String(100), nullable=True),
        sa.Column("debit_amount", sa.Numeric(18, 2), nullable=True),
        sa.Column("credit_amount", sa.Numeric(18, 2), nullable=True),
        sa.Column("running_balance", sa.Numeric(18, 2), nullable=True),
        sa.Column("suggested_account_id", sa.Integer(), sa.ForeignKey("chart_of_accounts.id"), nullable=True),
        sa.Column("suggested_party_id", sa.Integer(), sa.ForeignKey("parties.id"), nullable=True),
        sa.Column("confidence_score", sa.Integer(), server_default="0", nullable=False),
        sa.Column("categorization_source", sa.String(10), nullable=True),
        sa.Column("reconciliation_status", sa.String(20), server_default="pending", nullable=False),
        sa.Column("exclusion_reason", sa.Text(), nullable=True),
        sa.Column("matched_invoice_id", sa.Integer(), sa.ForeignKey("invoices.id"), nullable=True),
        sa.Column("matched_bill_id", sa.Integer(), sa.ForeignKey("bills.id"), nullable=True),
        sa.Column("matched_expense_id", sa.Integer(), sa.ForeignKey("expenses.id"), nullable=True),
        sa.Column(
            "matched_payment_received_id", sa.Integer(),
            sa.ForeignKey("payments_received.id"), nullable=True,
        ),
        sa.Column("matched_payment_made_id", sa.Integer(), sa.ForeignKey("payments_made.id"), nullable=True),
        sa.Column("matched_journal_entry_id", sa.Integer(), sa.ForeignKey("journal_entries.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "reconciliation_status IN ('pending', 'matched', 'created', 'excluded')",
            name="ck_bank_feed_reconciliation_status",
        ),
        sa.CheckConstraint(
            "(CASE WHEN matched_invoice_id IS NULL THEN 0 ELSE 1 END"
            " + CASE WHEN matched_bill_id IS NULL THEN 0 ELSE 1 END"
            " + CASE WHEN matched_expense_id IS NULL THEN 0 ELSE 1 END"
            " + CASE WHEN matched_payment_received_id IS NULL THEN 0 ELSE 1 END"
            " + CASE WHEN matched_payment_made_id IS NULL THEN 0 ELSE 1 END"
            " + CASE WHEN matched_journal_entry_id IS NULL THEN 0 ELSE 1 END) <= 1",
            name="ck_bank_feed_single_match",
        ),
    )
    op.create_index(
        "idx_bank_feed_company_status", "bank_feed_transactions", ["company_id", "reconciliation_status"]
    )
    op.create_index(
        "idx_bank_feed_dedup",
        "bank_feed_transactions",
        ["company_id", "bank_account_id", "transaction_date", "description"],
    )

    # ── Import logs ───────────────────────────────────
    op.create_table(
        "bank_import_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("bank_account_id", sa.Integer(), sa.ForeignKey("bank_accounts.id"), nullable=False),
        sa.Column("filename", sa.String(255), nullable=True),
        sa.Column("format", sa.String(20), nullable=False),
        sa.Column("total_rows", sa.Integer(), server_default="0", nullable=False),
        sa.Column("imported_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("duplicate_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("matched_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("error_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("errors_detail", JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("bank_import_logs")
    op.drop_table("bank_feed_transactions")
    op.drop_table("categorization_rules")
