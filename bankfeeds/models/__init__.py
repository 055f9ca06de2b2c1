"""SQLAlchemy models."""

from bankfeeds.models.bank_feed import BankFeedTransaction, BankImportLog
from bankfeeds.models.base import Base
from bankfeeds.models.categorization_rule import CategorizationRule
from bankfeeds.models.company import Company, FiscalYear
from bankfeeds.models.documents import Bill, Expense, Invoice, PaymentMade, PaymentReceived
from bankfeeds.models.journal import DocumentSequence, JournalEntry, JournalEntryLine
from bankfeeds.models.ledger import BankAccount, LedgerAccount, Party

__all__ = [
    "Base",
    "Company",
    "FiscalYear",
    "LedgerAccount",
    "Party",
    "BankAccount",
    "Invoice",
    "Bill",
    "PaymentReceived",
    "PaymentMade",
    "Expense",
    "JournalEntry",
    "JournalEntryLine",
    "DocumentSequence",
    "CategorizationRule",
    "BankFeedTransaction",
    "BankImportLog",
]
