"""Bank feed transaction queries."""

from datetime import date
from decimal import Decimal

from sqlalchemy import case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bankfeeds.core.exceptions import NotFoundError
from bankfeeds.models.bank_feed import BankFeedTransaction


class BankFeedService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_transaction(self, company_id: int, transaction_id: int) -> BankFeedTransaction:
        """Fetch a transaction of the company or raise NotFoundError."""
        result = await self.db.execute(
            select(BankFeedTransaction).where(
                BankFeedTransaction.id == transaction_id,
                BankFeedTransaction.company_id == company_id,
            )
        )
        transaction = result.scalar_one_or_none()
        if not transaction:
            raise NotFoundError("Transaction")
        return transaction

    async def list_transactions(
        self,
        company_id: int,
        status: str | None = None,
        bank_account_id: int | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        search: str | None = None,
    ) -> list[dict]:
        """List the company's bank feed transactions, newest first."""
        query = select(BankFeedTransaction).where(BankFeedTransaction.company_id == company_id)

        if status and status != "all":
            query = query.where(BankFeedTransaction.reconciliation_status == status)
        if bank_account_id:
            query = query.where(BankFeedTransaction.bank_account_id == bank_account_id)
        if date_from:
            query = query.where(BankFeedTransaction.transaction_date >= date_from)
        if date_to:
            query = query.where(BankFeedTransaction.transaction_date <= date_to)
        if search:
            query = query.where(
                or_(
                    BankFeedTransaction.description.icontains(search, autoescape=True),
                    BankFeedTransaction.reference_number.icontains(search, autoescape=True),
                )
            )

        query = query.order_by(
            BankFeedTransaction.transaction_date.desc(), BankFeedTransaction.id.desc()
        )
        result = await self.db.execute(query)
        return [self.to_dict(txn) for txn in result.scalars().all()]

    async def get_summary(self, company_id: int) -> dict:
        """Counts per reconciliation status and credit/debit totals."""
        status_col = BankFeedTransaction.reconciliation_status
        result = await self.db.execute(
            select(
                func.count().label("total"),
                func.sum(case((status_col == "pending", 1), else_=0)).label("pending"),
                func.sum(case((status_col == "matched", 1), else_=0)).label("matched"),
                func.sum(case((status_col == "created", 1), else_=0)).label("created"),
                func.sum(case((status_col == "excluded", 1), else_=0)).label("excluded"),
                func.coalesce(func.sum(BankFeedTransaction.credit_amount), 0).label("credits"),
                func.coalesce(func.sum(BankFeedTransaction.debit_amount), 0).label("debits"),
            ).where(BankFeedTransaction.company_id == company_id)
        )
        row = result.one()
        return {
            "total_transactions": row.total or 0,
            "pending_count": row.pending or 0,
            "matched_count": row.matched or 0,
            "created_count": row.created or 0,
            "excluded_count": row.excluded or 0,
            "total_credits": Decimal(str(row.credits or 0)),
            "total_debits": Decimal(str(row.debits or 0)),
        }

    @staticmethod
    def to_dict(txn: BankFeedTransaction) -> dict:
        matched = txn.matched_entity
        return {
            "id": txn.id,
            "bank_account_id": txn.bank_account_id,
            "transaction_date": txn.transaction_date,
            "value_date": txn.value_date,
            "description": txn.description,
            "reference_number": txn.reference_number,
            "debit_amount": txn.debit_amount,
            "credit_amount": txn.credit_amount,
            "running_balance": txn.running_balance,
            "suggested_account_id": txn.suggested_account_id,
            "suggested_party_id": txn.suggested_party_id,
            "confidence_score": txn.confidence_score,
            "categorization_source": txn.categorization_source,
            "reconciliation_status": txn.reconciliation_status,
            "exclusion_reason": txn.exclusion_reason,
            "matched_entity_type": matched[0] if matched else None,
            "matched_entity_id": matched[1] if matched else None,
            "created_at": txn.created_at,
        }
