"""Journal entries and document number sequences."""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bankfeeds.models.base import Base, TimestampMixin


class JournalEntry(Base, TimestampMixin):
    __tablename__ = "journal_entries"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False)
    fiscal_year_id: Mapped[int] = mapped_column(ForeignKey("fiscal_years.id"), nullable=False, index=True)
    entry_number: Mapped[str] = mapped_column(String(50), nullable=False)  # JV/2024-25/0001
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    entry_type: Mapped[str] = mapped_column(String(30), default="manual")  # manual, bank_import, ...
    narration: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_debit: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0.00"))
    total_credit: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0.00"))
    source_type: Mapped[str | None] = mapped_column(String(50), nullable=True)  # bank_feed, ...
    source_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="draft")  # draft, posted
    created_by_user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    lines = relationship(
        "JournalEntryLine",
        back_populates="journal_entry",
        order_by="JournalEntryLine.sort_order",
        lazy="select",
    )

    __table_args__ = (
        Index("idx_je_entry_number", "company_id", "entry_number"),
    )


class JournalEntryLine(Base):
    __tablename__ = "journal_entry_lines"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    journal_entry_id: Mapped[int] = mapped_column(
        ForeignKey("journal_entries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    account_id: Mapped[int] = mapped_column(ForeignKey("chart_of_accounts.id"), nullable=False)
    debit_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0.00"))
    credit_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0.00"))
    party_id: Mapped[int | None] = mapped_column(ForeignKey("parties.id"), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    journal_entry = relationship("JournalEntry", back_populates="lines")


class DocumentSequence(Base, TimestampMixin):
    """Last number handed out for a document series within a fiscal year.

    Rows are read with SELECT ... FOR UPDATE, so two requests allocating in
    the same series are serialized by the row lock.
    """

    __tablename__ = "document_sequences"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False)
    fiscal_year_id: Mapped[int] = mapped_column(ForeignKey("fiscal_years.id"), nullable=False)
    series: Mapped[str] = mapped_column(String(20), nullable=False)  # JV
    last_value: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = (
        Index("idx_document_sequences_series", "fiscal_year_id", "series", unique=True),
    )
