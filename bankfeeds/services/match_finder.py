"""Matching bank transactions to the records they settle.

Search order, first hit wins:

1. reference number contained in an invoice number, then in a bill's own
   or vendor bill number (95)
2. money in: open invoice balance due (90), open invoice total (85),
   payment received within the date window (88)
3. money out: open bill balance due (90), open bill total (85), payment
   made within the date window (88), expense within the date window (85)

Amounts are equal when they differ by less than one paisa. A transaction
is only ever matched to a single record; payments split over several
invoices are not detected.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

import structlog
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bankfeeds.config import settings
from bankfeeds.models.bank_feed import BankFeedTransaction
from bankfeeds.models.documents import (
    OPEN_BILL_STATUSES,
    OPEN_INVOICE_STATUSES,
    Bill,
    Expense,
    Invoice,
    PaymentMade,
    PaymentReceived,
)

logger = structlog.get_logger()

CURRENCY_EPSILON = Decimal("0.01")

REFERENCE_CONFIDENCE = 95
BALANCE_DUE_CONFIDENCE = 90
PAYMENT_CONFIDENCE = 88
TOTAL_AMOUNT_CONFIDENCE = 85
EXPENSE_CONFIDENCE = 85


@dataclass(frozen=True)
class MatchResult:
    match_type: str | None  # invoice, bill, payment_received, payment_made, expense, journal_entry
    matched_id: int | None
    matched_number: str | None
    confidence_score: int
    match_reason: str

    @property
    def is_match(self) -> bool:
        return self.match_type is not None and self.matched_id is not None

    @classmethod
    def no_match(cls) -> "MatchResult":
        return cls(
            match_type=None,
            matched_id=None,
            matched_number=None,
            confidence_score=0,
            match_reason="No matching record found",
        )


def amounts_equal(a, b) -> bool:
    """True when two amounts differ by less than the currency epsilon."""
    if a is None or b is None:
        return False
    return abs(Decimal(a) - Decimal(b)) < CURRENCY_EPSILON


def first_with_amount(records, attribute: str, amount: Decimal):
    """First record whose ``attribute`` equals ``amount`` (within epsilon)."""
    for record in records:
        if amounts_equal(getattr(record, attribute), amount):
            return record
    return None


class MatchFinder:
    def __init__(self, db: AsyncSession, date_window_days: int | None = None):
        self.db = db
        if date_window_days is None:
            date_window_days = settings.reconciliation_date_window_days
        self.date_window = timedelta(days=date_window_days)

    async def find_match(self, company_id: int, transaction: BankFeedTransaction) -> MatchResult:
        """Find the record a bank transaction most likely corresponds to."""
        reference = (transaction.reference_number or "").strip()
        if reference:
            match = await self._match_reference(company_id, reference)
            if match is not None:
                return match

        amount = transaction.amount
        if transaction.is_credit:
            match = await self._match_money_in(company_id, amount, transaction.transaction_date)
        elif transaction.is_debit:
            match = await self._match_money_out(company_id, amount, transaction.transaction_date)
        else:
            match = None

        if match is None:
            return MatchResult.no_match()
        return match

    # ── Reference number ────────────────────────────────

    async def _match_reference(self, company_id: int, reference: str) -> MatchResult | None:
        result = await self.db.execute(
            select(Invoice)
            .where(
                Invoice.company_id == company_id,
                Invoice.invoice_number.icontains(reference, autoescape=True),
            )
            .order_by(Invoice.id)
            .limit(1)
        )
        invoice = result.scalar_one_or_none()
        if invoice is not None:
            return MatchResult(
                match_type="invoice",
                matched_id=invoice.id,
                matched_number=invoice.invoice_number,
                confidence_score=REFERENCE_CONFIDENCE,
                match_reason="Reference number matches invoice number",
            )

        result = await self.db.execute(
            select(Bill)
            .where(
                Bill.company_id == company_id,
                or_(
                    Bill.bill_number.icontains(reference, autoescape=True),
                    Bill.vendor_bill_number.icontains(reference, autoescape=True),
                ),
            )
            .order_by(Bill.id)
            .limit(1)
        )
        bill = result.scalar_one_or_none()
        if bill is not None:
            return MatchResult(
                match_type="bill",
                matched_id=bill.id,
                matched_number=bill.bill_number,
                confidence_score=REFERENCE_CONFIDENCE,
                match_reason="Reference number matches bill number",
            )
        return None

    # ── Money in ────────────────────────────────────────

    async def _match_money_in(self, company_id: int, amount: Decimal, txn_date: date) -> MatchResult | None:
        result = await self.db.execute(
            select(Invoice)
            .where(
                Invoice.company_id == company_id,
                Invoice.status.in_(OPEN_INVOICE_STATUSES),
            )
            .order_by(Invoice.id)
        )
        open_invoices = list(result.scalars().all())

        invoice = first_with_amount(open_invoices, "balance_due", amount)
        if invoice is not None:
            return MatchResult(
                match_type="invoice",
                matched_id=invoice.id,
                matched_number=invoice.invoice_number,
                confidence_score=BALANCE_DUE_CONFIDENCE,
                match_reason="Amount matches invoice balance due exactly",
            )

        invoice = first_with_amount(open_invoices, "total_amount", amount)
        if invoice is not None:
            return MatchResult(
                match_type="invoice",
                matched_id=invoice.id,
                matched_number=invoice.invoice_number,
                confidence_score=TOTAL_AMOUNT_CONFIDENCE,
                match_reason="Amount matches invoice total amount",
            )

        payments = await self._in_window(PaymentReceived, PaymentReceived.payment_date, company_id, txn_date)
        payment = first_with_amount(payments, "amount", amount)
        if payment is not None:
            return MatchResult(
                match_type="payment_received",
                matched_id=payment.id,
                matched_number=payment.payment_number,
                confidence_score=PAYMENT_CONFIDENCE,
                match_reason="Amount matches existing payment received",
            )
        return None

    # ── Money out ───────────────────────────────────────

    async def _match_money_out(self, company_id: int, amount: Decimal, txn_date: date) -> MatchResult | None:
        result = await self.db.execute(
            select(Bill)
            .where(
                Bill.company_id == company_id,
                Bill.status.in_(OPEN_BILL_STATUSES),
            )
            .order_by(Bill.id)
        )
        open_bills = list(result.scalars().all())

        bill = first_with_amount(open_bills, "balance_due", amount)
        if bill is not None:
            return MatchResult(
                match_type="bill",
                matched_id=bill.id,
                matched_number=bill.bill_number,
                confidence_score=BALANCE_DUE_CONFIDENCE,
                match_reason="Amount matches bill balance due exactly",
            )

        bill = first_with_amount(open_bills, "total_amount", amount)
        if bill is not None:
            return MatchResult(
                match_type="bill",
                matched_id=bill.id,
                matched_number=bill.bill_number,
                confidence_score=TOTAL_AMOUNT_CONFIDENCE,
                match_reason="Amount matches bill total amount",
            )

        payments = await self._in_window(PaymentMade, PaymentMade.payment_date, company_id, txn_date)
        payment = first_with_amount(payments, "amount", amount)
        if payment is not None:
            return MatchResult(
                match_type="payment_made",
                matched_id=payment.id,
                matched_number=payment.payment_number,
                confidence_score=PAYMENT_CONFIDENCE,
                match_reason="Amount matches existing payment made",
            )

        expenses = await self._in_window(Expense, Expense.expense_date, company_id, txn_date)
        expense = first_with_amount(expenses, "total_amount", amount)
        if expense is not None:
            return MatchResult(
                match_type="expense",
                matched_id=expense.id,
                matched_number=expense.expense_number,
                confidence_score=EXPENSE_CONFIDENCE,
                match_reason="Amount matches existing expense",
            )
        return None

    async def _in_window(self, model, date_column, company_id: int, txn_date: date) -> list:
        """Records of ``model`` dated within the window around ``txn_date`` (inclusive)."""
        result = await self.db.execute(
            select(model)
            .where(
                model.company_id == company_id,
                date_column.between(txn_date - self.date_window, txn_date + self.date_window),
            )
            .order_by(model.id)
        )
        return list(result.scalars().all())
