"""Bank transaction reconciliation.

A pending transaction is settled in one of three ways: linked to an
existing record (``matched``), booked through a new journal entry
(``created``) or set aside (``excluded``). All three are terminal.
"""

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bankfeeds.config import settings
from bankfeeds.core.exceptions import ConflictError, NotFoundError, ValidationError
from bankfeeds.models.bank_feed import MATCH_LINK_COLUMNS, BankFeedTransaction
from bankfeeds.models.company import FiscalYear
from bankfeeds.models.documents import Bill, Expense, Invoice, PaymentMade, PaymentReceived
from bankfeeds.models.journal import JournalEntry, JournalEntryLine
from bankfeeds.models.ledger import BankAccount, LedgerAccount, Party
from bankfeeds.services.bank_feed_service import BankFeedService
from bankfeeds.services.match_finder import MatchFinder, MatchResult
from bankfeeds.services.sequence_service import SequenceService

logger = structlog.get_logger()

MATCH_MODELS = {
    "invoice": Invoice,
    "bill": Bill,
    "expense": Expense,
    "payment_received": PaymentReceived,
    "payment_made": PaymentMade,
    "journal_entry": JournalEntry,
}


def link_transaction(transaction: BankFeedTransaction, match_type: str, matched_id: int) -> None:
    """Point the transaction at exactly one record, clearing any other link."""
    for column in MATCH_LINK_COLUMNS.values():
        setattr(transaction, column, None)
    setattr(transaction, MATCH_LINK_COLUMNS[match_type], matched_id)


class ReconciliationService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.feeds = BankFeedService(db)

    async def reconcile_transaction(
        self, company_id: int, transaction_id: int, match_type: str, matched_id: int
    ) -> dict:
        """Link a pending transaction to an existing record of the company."""
        if match_type not in MATCH_LINK_COLUMNS:
            raise ValidationError(f"Unknown match type: {match_type}")

        transaction = await self.feeds.get_transaction(company_id, transaction_id)
        self._ensure_pending(transaction)

        record = await self.db.get(MATCH_MODELS[match_type], matched_id)
        if not record or record.company_id != company_id:
            raise NotFoundError(match_type.replace("_", " ").capitalize())

        link_transaction(transaction, match_type, matched_id)
        transaction.reconciliation_status = "matched"
        await self.db.flush()

        logger.info(
            "bank_transaction_reconciled",
            company_id=company_id,
            transaction_id=transaction_id,
            match_type=match_type,
            matched_id=matched_id,
        )
        return {
            "transaction_id": transaction_id,
            "status": "matched",
            "matched_entity_type": match_type,
            "matched_entity_id": matched_id,
        }

    async def create_journal_entry_from_transaction(
        self,
        company_id: int,
        user_id: int | None,
        transaction_id: int,
        account_id: int,
        party_id: int | None = None,
    ) -> dict:
        """Book a pending transaction against ``account_id`` with a new journal entry.

        Money in debits the bank's ledger account and credits the target;
        money out does the opposite.
        """
        transaction = await self.feeds.get_transaction(company_id, transaction_id)
        self._ensure_pending(transaction)

        account = await self.db.get(LedgerAccount, account_id)
        if not account or account.company_id != company_id or not account.is_active:
            raise NotFoundError("Account")
        if party_id is not None:
            party = await self.db.get(Party, party_id)
            if not party or party.company_id != company_id:
                raise NotFoundError("Party")

        bank_account = await self.db.get(BankAccount, transaction.bank_account_id)
        if not bank_account or bank_account.company_id != company_id or bank_account.account_id is None:
            raise NotFoundError("Bank ledger account")

        amount = transaction.amount
        if amount <= 0:
            raise ValidationError("Transaction has no amount to post")

        fiscal_year = await self._current_fiscal_year(company_id)
        entry_number = await SequenceService(self.db).next_journal_entry_number(fiscal_year)

        entry = JournalEntry(
            company_id=company_id,
            fiscal_year_id=fiscal_year.id,
            entry_number=entry_number,
            entry_date=transaction.transaction_date,
            entry_type="bank_import",
            narration=transaction.description,
            total_debit=amount,
            total_credit=amount,
            source_type="bank_feed",
            source_id=transaction.id,
            status="posted",
            created_by_user_id=user_id,
        )
        self.db.add(entry)
        await self.db.flush()

        if transaction.is_credit:
            debit_account_id, credit_account_id = bank_account.account_id, account_id
        else:
            debit_account_id, credit_account_id = account_id, bank_account.account_id

        self.db.add_all([
            JournalEntryLine(
                journal_entry_id=entry.id,
                account_id=debit_account_id,
                debit_amount=amount,
                credit_amount=0,
                party_id=party_id if debit_account_id == account_id else None,
                description=transaction.description,
                sort_order=0,
            ),
            JournalEntryLine(
                journal_entry_id=entry.id,
                account_id=credit_account_id,
                debit_amount=0,
                credit_amount=amount,
                party_id=party_id if credit_account_id == account_id else None,
                description=transaction.description,
                sort_order=1,
            ),
        ])

        link_transaction(transaction, "journal_entry", entry.id)
        transaction.reconciliation_status = "created"
        await self.db.flush()

        logger.info(
            "bank_journal_entry_created",
            company_id=company_id,
            transaction_id=transaction_id,
            journal_entry_id=entry.id,
            entry_number=entry_number,
        )
        return {
            "transaction_id": transaction_id,
            "status": "created",
            "journal_entry_id": entry.id,
            "entry_number": entry_number,
            "matched_entity_type": "journal_entry",
            "matched_entity_id": entry.id,
        }

    async def exclude_transaction(
        self, company_id: int, transaction_id: int, reason: str | None = None
    ) -> dict:
        """Exclude a pending transaction from reconciliation."""
        transaction = await self.feeds.get_transaction(company_id, transaction_id)
        self._ensure_pending(transaction)

        transaction.reconciliation_status = "excluded"
        transaction.exclusion_reason = reason
        await self.db.flush()

        logger.info("bank_transaction_excluded", company_id=company_id, transaction_id=transaction_id)
        return {"transaction_id": transaction_id, "status": "excluded"}

    async def find_match(self, company_id: int, transaction_id: int) -> MatchResult:
        transaction = await self.feeds.get_transaction(company_id, transaction_id)
        return await MatchFinder(self.db).find_match(company_id, transaction)

    async def bulk_auto_reconcile(
        self, company_id: int, transaction_ids: list[int] | None = None
    ) -> dict:
        """Apply confident matches to pending transactions, each in its own savepoint.

        Only matches at or above the configured threshold are applied; the
        rest stay pending for review.
        """
        query = select(BankFeedTransaction.id).where(
            BankFeedTransaction.company_id == company_id,
            BankFeedTransaction.reconciliation_status == "pending",
        )
        if transaction_ids is not None:
            query = query.where(BankFeedTransaction.id.in_(transaction_ids))
        result = await self.db.execute(query.order_by(BankFeedTransaction.id))
        ids = list(result.scalars().all())

        finder = MatchFinder(self.db)
        matched = 0
        failed = 0
        results: list[dict] = []
        for txn_id in ids:
            try:
                # Loaded inside the savepoint: a rolled-back item leaves its row expired
                async with self.db.begin_nested():
                    txn = await self.feeds.get_transaction(company_id, txn_id)
                    match = await finder.find_match(company_id, txn)
                    applied = await self.apply_match_result(txn, match)
            except Exception as e:
                failed += 1
                logger.warning(
                    "auto_reconcile_item_failed",
                    company_id=company_id,
                    transaction_id=txn_id,
                    error=str(e),
                )
                results.append({"transaction_id": txn_id, "status": "failed", "error": str(e)})
                continue

            if applied:
                matched += 1
            results.append({
                "transaction_id": txn_id,
                "status": "matched" if applied else "unmatched",
                "confidence_score": match.confidence_score,
                "match_type": match.match_type,
            })

        logger.info(
            "auto_reconcile_done",
            company_id=company_id,
            processed=len(ids),
            matched=matched,
            failed=failed,
        )
        return {
            "processed": len(ids),
            "matched": matched,
            "failed": failed,
            "results": results,
        }

    async def apply_match_result(self, transaction: BankFeedTransaction, match: MatchResult) -> bool:
        """Link ``transaction`` to ``match`` when confident enough. Returns whether it did."""
        if not match.is_match or match.confidence_score < settings.reconciliation_auto_match_threshold:
            return False
        link_transaction(transaction, match.match_type, match.matched_id)
        transaction.reconciliation_status = "matched"
        await self.db.flush()
        return True

    # ── Helpers ─────────────────────────────────────────

    @staticmethod
    def _ensure_pending(transaction: BankFeedTransaction) -> None:
        if transaction.reconciliation_status != "pending":
            raise ConflictError(
                f"Transaction is already {transaction.reconciliation_status}"
            )

    async def _current_fiscal_year(self, company_id: int) -> FiscalYear:
        result = await self.db.execute(
            select(FiscalYear)
            .where(FiscalYear.company_id == company_id, FiscalYear.is_current.is_(True))
            .order_by(FiscalYear.start_date.desc(), FiscalYear.id.desc())
            .limit(1)
        )
        fiscal_year = result.scalar_one_or_none()
        if not fiscal_year:
            raise ValidationError("No current fiscal year")
        if fiscal_year.is_locked:
            raise ValidationError(f"Fiscal year {fiscal_year.name} is locked")
        return fiscal_year
