"""Receivable/payable documents the bank feed is reconciled against.

These tables are owned by the invoicing and payables modules; the bank
feed engine only reads them.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from bankfeeds.models.base import Base, TimestampMixin

OPEN_INVOICE_STATUSES = ("sent", "partially_paid", "overdue")
OPEN_BILL_STATUSES = ("pending", "partially_paid", "overdue")


class Invoice(Base, TimestampMixin):
    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False)
    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    customer_id: Mapped[int | None] = mapped_column(ForeignKey("parties.id"), nullable=True)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    balance_due: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default="draft"
    )  # draft, sent, paid, partially_paid, overdue, cancelled, void

    __table_args__ = (
        Index("idx_invoice_number", "company_id", "invoice_number"),
    )


class Bill(Base, TimestampMixin):
    __tablename__ = "bills"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False)
    bill_number: Mapped[str] = mapped_column(String(50), nullable=False)
    vendor_bill_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bill_date: Mapped[date] = mapped_column(Date, nullable=False)
    vendor_id: Mapped[int | None] = mapped_column(ForeignKey("parties.id"), nullable=True)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    balance_due: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default="draft"
    )  # draft, pending, paid, partially_paid, overdue, cancelled

    __table_args__ = (
        Index("idx_bill_number", "company_id", "bill_number"),
    )


class PaymentReceived(Base, TimestampMixin):
    __tablename__ = "payments_received"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False)
    payment_number: Mapped[str] = mapped_column(String(50), nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    party_id: Mapped[int | None] = mapped_column(ForeignKey("parties.id"), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)

    __table_args__ = (
        Index("idx_payment_received_date", "company_id", "payment_date"),
    )


class PaymentMade(Base, TimestampMixin):
    __tablename__ = "payments_made"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False)
    payment_number: Mapped[str] = mapped_column(String(50), nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    party_id: Mapped[int | None] = mapped_column(ForeignKey("parties.id"), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)

    __table_args__ = (
        Index("idx_payment_made_date", "company_id", "payment_date"),
    )


class Expense(Base, TimestampMixin):
    __tablename__ = "expenses"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False)
    expense_number: Mapped[str] = mapped_column(String(50), nullable=False)
    expense_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)

    __table_args__ = (
        Index("idx_expense_date", "company_id", "expense_date"),
    )
