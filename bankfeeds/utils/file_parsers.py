"""Bank statement parsers (CSV, Excel, OFX/QFX).

Each parser returns a list[ParsedBankTransaction], the uniform row shape
consumed by ImportService. Parsing is permissive: rows without a usable
date or description are skipped, and unreadable amounts are left empty.
"""

from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

import openpyxl
from ofxparse import OfxParser

TWO_PLACES = Decimal("0.01")

# Header words that mark a statement's header row
HEADER_MARKERS = ("txn date", "transaction date", "value date")

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

_DMY = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$")
_YMD = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_D_MON_Y = re.compile(r"^(\d{1,2})\s+([A-Za-z]{3})\s+(\d{4})$")
_CURRENCY_NOISE = re.compile(r"[₹$€£,\s]")
_PARENTHESIZED = re.compile(r"\(([^)]+)\)")
# Balance columns often carry a trailing Cr/Dr marker: "12,345.00 Cr"
_CR_DR_SUFFIX = re.compile(r"(?:cr|dr)\.?$", re.IGNORECASE)


@dataclass
class ParsedBankTransaction:
    """A statement row before it is stored.

    Amounts are unsigned with two decimals; which of debit/credit is set
    carries the direction.
    """

    transaction_date: date
    description: str
    value_date: date | None = None
    reference_number: str | None = None
    debit_amount: Decimal | None = None
    credit_amount: Decimal | None = None
    running_balance: Decimal | None = None

    def to_dict(self) -> dict:
        """Serialized form: ISO dates and two-decimal amount strings."""
        return {
            "transaction_date": self.transaction_date.isoformat(),
            "value_date": self.value_date.isoformat() if self.value_date else None,
            "description": self.description,
            "reference_number": self.reference_number,
            "debit_amount": _format_amount(self.debit_amount),
            "credit_amount": _format_amount(self.credit_amount),
            "running_balance": _format_amount(self.running_balance),
        }


@dataclass(frozen=True)
class ColumnLayout:
    """Positions of the known columns in a statement header (-1 = absent)."""

    date: int
    value_date: int
    description: int
    reference: int
    debit: int
    credit: int
    balance: int

    @classmethod
    def detect(cls, headers: list[str]) -> ColumnLayout | None:
        """Locate columns by substring. Returns None when this is not a header row."""
        lowered = [str(h or "").strip().lower() for h in headers]
        if not any(marker in " ".join(lowered) for marker in HEADER_MARKERS):
            return None

        def find(*words: str, all_of: tuple[str, ...] = ()) -> int:
            for i, h in enumerate(lowered):
                if all_of and not all(w in h for w in all_of):
                    continue
                if not words or any(w in h for w in words):
                    return i
            return -1

        value_date = find(all_of=("value", "date"))
        txn_date = find("txn", "transaction", all_of=("date",))
        return cls(
            date=txn_date if txn_date >= 0 else value_date,
            value_date=value_date,
            description=find("description", "particulars", "narration"),
            reference=find("ref", "reference", "cheque"),
            debit=find("debit", "withdrawal"),
            credit=find("credit", "deposit"),
            balance=find("balance"),
        )

    def read(self, values: list) -> ParsedBankTransaction | None:
        """Build a transaction from one data row, or None if it must be skipped."""
        if self.date < 0 or self.description < 0:
            return None
        if len(values) <= max(self.date, self.description):
            return None

        transaction_date = parse_date(values[self.date])
        description = str(values[self.description] or "").strip()
        if transaction_date is None or not description:
            return None

        return ParsedBankTransaction(
            transaction_date=transaction_date,
            description=description,
            value_date=parse_date(_cell(values, self.value_date)),
            reference_number=str(_cell(values, self.reference) or "").strip() or None,
            debit_amount=parse_amount(_cell(values, self.debit)),
            credit_amount=parse_amount(_cell(values, self.credit)),
            running_balance=parse_amount(_cell(values, self.balance)),
        )


# ---------------------------------------------------------------------------
# CSV parser
# ---------------------------------------------------------------------------

def parse_csv(text: str, format: str | None = None) -> list[ParsedBankTransaction]:
    """Parse a bank CSV export.

    The first non-blank line must be a header naming a transaction or
    value date column; otherwise nothing is returned. ``format`` is a
    bank layout hint kept for API compatibility, columns are always
    auto-detected.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        return []

    layout = ColumnLayout.detect(parse_csv_line(lines[0]))
    if layout is None:
        return []

    txns: list[ParsedBankTransaction] = []
    for line in lines[1:]:
        txn = layout.read(parse_csv_line(line))
        if txn is not None:
            txns.append(txn)
    return txns


def parse_csv_line(line: str) -> list[str]:
    """Split one CSV line, honouring double-quoted fields."""
    row = next(csv.reader([line], skipinitialspace=True), [])
    return [value.strip() for value in row]


def parse_csv_bytes(content: bytes) -> list[ParsedBankTransaction]:
    return parse_csv(_decode(content))


# ---------------------------------------------------------------------------
# Excel parser
# ---------------------------------------------------------------------------

def parse_excel(content: bytes) -> list[ParsedBankTransaction]:
    """Parse an Excel (.xlsx) statement.

    Banks often put account details above the table, so the header is the
    first row that looks like one rather than the first row of the sheet.
    """
    wb = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    try:
        ws = wb.active
        if ws is None:
            raise ValueError("The Excel file is empty")

        layout = None
        txns: list[ParsedBankTransaction] = []
        for raw_row in ws.iter_rows(values_only=True):
            values = list(raw_row)
            if layout is None:
                layout = ColumnLayout.detect(values)
                continue
            txn = layout.read(values)
            if txn is not None:
                txns.append(txn)
    finally:
        wb.close()

    if layout is None:
        raise ValueError("No statement header row found")
    return txns


# ---------------------------------------------------------------------------
# OFX / QFX parser
# ---------------------------------------------------------------------------

def parse_ofx(content: bytes) -> list[ParsedBankTransaction]:
    """Parse an OFX/QFX file. Supports OFX 1.x (SGML) and 2.x (XML) via ofxparse."""
    ofx = OfxParser.parse(io.BytesIO(content))

    txns: list[ParsedBankTransaction] = []
    for account in _iter_accounts(ofx):
        stmt = account.statement
        if stmt is None:
            continue
        for t in stmt.transactions:
            txn_date = t.date.date() if isinstance(t.date, datetime) else t.date
            amount = Decimal(str(t.amount)).quantize(TWO_PLACES)
            if amount == 0:
                continue

            description = (t.payee or t.memo or "").strip()
            if t.memo and t.memo.strip() and t.memo.strip() != description:
                description = f"{description} {t.memo.strip()}".strip()
            if not description:
                continue

            txns.append(
                ParsedBankTransaction(
                    transaction_date=txn_date,
                    description=description,
                    reference_number=(getattr(t, "checknum", None) or t.id or None),
                    debit_amount=-amount if amount < 0 else None,
                    credit_amount=amount if amount > 0 else None,
                )
            )
    return txns


def _iter_accounts(ofx):
    """Yield all accounts present in the OFX object.

    ofxparse puts the main account at ofx.account and (for multi-account
    files) a list at ofx.accounts.
    """
    if getattr(ofx, "accounts", None):
        yield from ofx.accounts
    elif getattr(ofx, "account", None):
        yield ofx.account


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def parse_date(value) -> date | None:
    """Parse DD/MM/YYYY, DD-MM-YYYY, YYYY-MM-DD or "DD MMM YYYY"."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    try:
        m = _DMY.match(text)
        if m:
            return date(int(m.group(3)), int(m.group(2)), int(m.group(1)))
        m = _YMD.match(text)
        if m:
            return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        m = _D_MON_Y.match(text)
        if m:
            month = _MONTHS.get(m.group(2).lower())
            if month is None:
                return None
            return date(int(m.group(3)), month, int(m.group(1)))
    except ValueError:
        # 31/02/2024 and friends
        return None
    return None


def parse_amount(value) -> Decimal | None:
    """Parse a statement amount into an unsigned two-decimal Decimal.

    Currency symbols, thousands separators, whitespace and a trailing
    Cr/Dr marker are dropped; ``(100)`` reads as -100. Zero and unreadable
    amounts give None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        amount = Decimal(str(value))
    else:
        cleaned = _CURRENCY_NOISE.sub("", str(value))
        cleaned = _CR_DR_SUFFIX.sub("", cleaned)
        cleaned = _PARENTHESIZED.sub(r"-\1", cleaned, count=1)
        if not cleaned:
            return None
        try:
            amount = Decimal(cleaned)
        except InvalidOperation:
            return None

    if not amount.is_finite() or amount == 0:
        return None
    return abs(amount).quantize(TWO_PLACES)


def _cell(values: list, index: int):
    if index < 0 or index >= len(values):
        return None
    return values[index]


def _format_amount(amount: Decimal | None) -> str | None:
    return f"{amount:.2f}" if amount is not None else None


def _decode(content: bytes) -> str:
    for encoding in ("utf-8-sig", "utf-8", "latin-1", "cp1252"):
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise ValueError("Unsupported file encoding")
