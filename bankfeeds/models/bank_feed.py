"""Bank feed transaction and import log models."""

from datetime import date
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bankfeeds.models.base import Base, JSONType, TimestampMixin

RECONCILIATION_STATUSES = ("pending", "matched", "created", "excluded")

# match type -> BankFeedTransaction column holding the matched record id
MATCH_LINK_COLUMNS: dict[str, str] = {
    "invoice": "matched_invoice_id",
    "bill": "matched_bill_id",
    "expense": "matched_expense_id",
    "payment_received": "matched_payment_received_id",
    "payment_made": "matched_payment_made_id",
    "journal_entry": "matched_journal_entry_id",
}


class BankFeedTransaction(Base, TimestampMixin):
    """A line imported from a bank statement.

    Date, description and amounts are the bank's facts and never change.
    The suggested_* fields hold the categorization result and the matched_*
    fields at most one reconciliation link, consistent with
    ``reconciliation_status``.
    """

    __tablename__ = "bank_feed_transactions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False)
    bank_account_id: Mapped[int] = mapped_column(ForeignKey("bank_accounts.id"), nullable=False)
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    value_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    debit_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    credit_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    running_balance: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)

    # Categorization
    suggested_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("chart_of_accounts.id"), nullable=True
    )
    suggested_party_id: Mapped[int | None] = mapped_column(ForeignKey("parties.id"), nullable=True)
    confidence_score: Mapped[int] = mapped_column(Integer, default=0)
    categorization_source: Mapped[str | None] = mapped_column(
        String(10), nullable=True
    )  # rule, ml, manual

    # Reconciliation
    reconciliation_status: Mapped[str] = mapped_column(
        String(20), default="pending", nullable=False
    )  # pending, matched, created, excluded
    exclusion_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    matched_invoice_id: Mapped[int | None] = mapped_column(ForeignKey("invoices.id"), nullable=True)
    matched_bill_id: Mapped[int | None] = mapped_column(ForeignKey("bills.id"), nullable=True)
    matched_expense_id: Mapped[int | None] = mapped_column(ForeignKey("expenses.id"), nullable=True)
    matched_payment_received_id: Mapped[int | None] = mapped_column(
        ForeignKey("payments_received.id"), nullable=True
    )
    matched_payment_made_id: Mapped[int | None] = mapped_column(
        ForeignKey("payments_made.id"), nullable=True
    )
    matched_journal_entry_id: Mapped[int | None] = mapped_column(
        ForeignKey("journal_entries.id"), nullable=True
    )

    bank_account = relationship("BankAccount")

    __table_args__ = (
        Index("idx_bank_feed_company_status", "company_id", "reconciliation_status"),
        Index(
            "idx_bank_feed_dedup",
            "company_id", "bank_account_id", "transaction_date", "description",
        ),
        CheckConstraint(
            "reconciliation_status IN ('pending', 'matched', 'created', 'excluded')",
            name="ck_bank_feed_reconciliation_status",
        ),
        CheckConstraint(
            "("
            + " + ".join(
                f"CASE WHEN {column} IS NULL THEN 0 ELSE 1 END"
                for column in MATCH_LINK_COLUMNS.values()
            )
            + ") <= 1",
            name="ck_bank_feed_single_match",
        ),
    )

    @property
    def amount(self) -> Decimal:
        """Unsigned amount: the debit if there is one, otherwise the credit."""
        if self.debit_amount:
            return Decimal(self.debit_amount)
        if self.credit_amount:
            return Decimal(self.credit_amount)
        return Decimal("0")

    @property
    def is_credit(self) -> bool:
        return self.credit_amount is not None and self.credit_amount > 0

    @property
    def is_debit(self) -> bool:
        return self.debit_amount is not None and self.debit_amount > 0

    @property
    def matched_entity(self) -> tuple[str, int] | None:
        """The (match_type, id) this transaction is linked to, if any."""
        for match_type, column in MATCH_LINK_COLUMNS.items():
            value = getattr(self, column)
            if value is not None:
                return match_type, value
        return None


class BankImportLog(Base, TimestampMixin):
    __tablename__ = "bank_import_logs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False)
    bank_account_id: Mapped[int] = mapped_column(ForeignKey("bank_accounts.id"), nullable=False)
    filename: Mapped[str | None] = mapped_column(String(255), nullable=True)
    format: Mapped[str] = mapped_column(String(20), nullable=False)  # csv, excel, ofx
    total_rows: Mapped[int] = mapped_column(Integer, default=0)
    imported_count: Mapped[int] = mapped_column(Integer, default=0)
    duplicate_count: Mapped[int] = mapped_column(Integer, default=0)
    matched_count: Mapped[int] = mapped_column(Integer, default=0)
    error_count: Mapped[int] = mapped_column(Integer, default=0)
    errors_detail: Mapped[dict | None] = mapped_column(JSONType, default=None, nullable=True)
