"""Bank transaction categorization.

Suggests a ledger account (and party) for a bank transaction: the
company's rules are tried first, then the keyword and party-name
heuristics. A transaction neither resolves is left for the user.
"""

from dataclasses import dataclass

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bankfeeds.models.bank_feed import BankFeedTransaction
from bankfeeds.models.categorization_rule import CategorizationRule
from bankfeeds.models.ledger import LedgerAccount, Party
from bankfeeds.schemas.categorization_rule import RuleCondition
from bankfeeds.services.bank_feed_service import BankFeedService
from bankfeeds.services.heuristics import (
    KEYWORD_CONFIDENCE,
    MANUAL_CONFIDENCE,
    NO_MATCH_CONFIDENCE,
    PARTY_CONFIDENCE,
    RULE_CONFIDENCE,
    extract_keywords,
    find_party_in_description,
    matching_patterns,
)
from bankfeeds.services.rule_matcher import matches_rule
from bankfeeds.services.rule_service import RuleService

logger = structlog.get_logger()


@dataclass(frozen=True)
class CategorizationResult:
    account_id: int | None
    party_id: int | None
    confidence_score: int
    source: str  # rule, ml, manual
    rule_name: str | None = None

    @property
    def is_categorized(self) -> bool:
        return self.account_id is not None or self.party_id is not None

    @classmethod
    def uncategorized(cls) -> "CategorizationResult":
        return cls(account_id=None, party_id=None, confidence_score=NO_MATCH_CONFIDENCE, source="manual")


class CategorizationService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.rules = RuleService(db)

    async def categorize(
        self, company_id: int, transaction, record_usage: bool = True
    ) -> CategorizationResult:
        """Suggest an account/party for a transaction.

        ``transaction`` is a ``BankFeedTransaction`` or any object with the
        same description/reference/amount attributes (``TransactionFacts``).
        Dry runs pass ``record_usage=False`` to leave rule statistics alone.
        """
        rule = await self._first_matching_rule(company_id, transaction)
        if rule is not None:
            if record_usage:
                await self.rules.record_usage(rule)
            return CategorizationResult(
                account_id=rule.target_account_id,
                party_id=rule.target_party_id,
                confidence_score=RULE_CONFIDENCE,
                source="rule",
                rule_name=rule.rule_name,
            )

        heuristic = await self._heuristic_categorize(company_id, transaction.description)
        if heuristic is not None:
            return heuristic

        return CategorizationResult.uncategorized()

    async def create_rule_from_transaction(
        self,
        company_id: int,
        user_id: int | None,
        transaction: BankFeedTransaction,
        target_account_id: int | None,
        target_party_id: int | None,
    ) -> CategorizationRule | None:
        """Learn a rule from a manual categorization.

        The rule is a single case-insensitive ``contains`` on the first
        significant word of the description. Returns None when the
        description has no such word.
        """
        keywords = extract_keywords(transaction.description)
        if not keywords:
            logger.info(
                "rule_learning_skipped",
                company_id=company_id,
                transaction_id=transaction.id,
            )
            return None

        keyword = keywords[0]
        condition = RuleCondition(field="description", operator="contains", value=keyword)
        return await self.rules.add_rule(
            company_id=company_id,
            user_id=user_id,
            rule_name=f"Auto-rule: {keyword}",
            conditions=[condition],
            target_account_id=target_account_id,
            target_party_id=target_party_id,
        )

    async def apply_manual_categorization(
        self,
        company_id: int,
        user_id: int | None,
        transaction_id: int,
        account_id: int | None,
        party_id: int | None,
        create_rule: bool = False,
    ) -> dict:
        """Record the user's own categorization, optionally learning a rule from it."""
        transaction = await BankFeedService(self.db).get_transaction(company_id, transaction_id)
        await self.rules.check_targets(company_id, account_id, party_id)

        transaction.suggested_account_id = account_id
        transaction.suggested_party_id = party_id
        transaction.confidence_score = MANUAL_CONFIDENCE
        transaction.categorization_source = "manual"
        await self.db.flush()

        rule = None
        if create_rule:
            rule = await self.create_rule_from_transaction(
                company_id, user_id, transaction, account_id, party_id
            )

        return {
            "transaction_id": transaction_id,
            "rule_created": rule is not None,
            "rule_id": rule.id if rule else None,
        }

    async def bulk_categorize(
        self, company_id: int, transaction_ids: list[int] | None = None
    ) -> dict:
        """Categorize many transactions, each in its own savepoint.

        Without ids, every pending transaction of the company is processed.
        A failure on one transaction is reported in its result entry and
        does not affect the others.
        """
        query = select(BankFeedTransaction.id).where(BankFeedTransaction.company_id == company_id)
        if transaction_ids is None:
            query = query.where(BankFeedTransaction.reconciliation_status == "pending")
        else:
            query = query.where(BankFeedTransaction.id.in_(transaction_ids))
        result = await self.db.execute(query.order_by(BankFeedTransaction.id))
        ids = list(result.scalars().all())

        feeds = BankFeedService(self.db)
        categorized = 0
        failed = 0
        results: list[dict] = []
        for txn_id in ids:
            try:
                # Loaded inside the savepoint: a rolled-back item leaves its row expired
                async with self.db.begin_nested():
                    txn = await feeds.get_transaction(company_id, txn_id)
                    outcome = await self.categorize(company_id, txn)
                    if outcome.is_categorized:
                        txn.suggested_account_id = outcome.account_id
                        txn.suggested_party_id = outcome.party_id
                        txn.confidence_score = outcome.confidence_score
                        txn.categorization_source = outcome.source
                        await self.db.flush()
            except Exception as e:
                failed += 1
                logger.warning("bulk_categorize_item_failed", company_id=company_id, transaction_id=txn_id, error=str(e))
                results.append({"transaction_id": txn_id, "status": "failed", "error": str(e)})
                continue

            if outcome.is_categorized:
                categorized += 1
            results.append({
                "transaction_id": txn_id,
                "status": "categorized" if outcome.is_categorized else "uncategorized",
                "confidence_score": outcome.confidence_score,
            })

        logger.info(
            "bulk_categorize_done",
            company_id=company_id,
            processed=len(ids),
            categorized=categorized,
            failed=failed,
        )
        return {
            "processed": len(ids),
            "categorized": categorized,
            "failed": failed,
            "results": results,
        }

    # ── Rule pass ───────────────────────────────────────

    async def _first_matching_rule(self, company_id: int, transaction) -> CategorizationRule | None:
        for rule in await self.rules.active_rules(company_id):
            if matches_rule(transaction, rule.conditions):
                return rule
        return None

    # ── Heuristic pass ──────────────────────────────────

    async def _heuristic_categorize(self, company_id: int, description: str) -> CategorizationResult | None:
        for pattern in matching_patterns(description):
            account = await self._find_account_by_name(company_id, pattern.account_name)
            if account is not None:
                return CategorizationResult(
                    account_id=account.id,
                    party_id=None,
                    confidence_score=KEYWORD_CONFIDENCE,
                    source="ml",
                )

        result = await self.db.execute(
            select(Party)
            .where(Party.company_id == company_id, Party.is_active.is_(True))
            .order_by(Party.id)
        )
        party = find_party_in_description(description, result.scalars().all())
        if party is not None:
            return CategorizationResult(
                account_id=party.default_account_id,
                party_id=party.id,
                confidence_score=PARTY_CONFIDENCE,
                source="ml",
            )
        return None

    async def _find_account_by_name(self, company_id: int, name_hint: str) -> LedgerAccount | None:
        result = await self.db.execute(
            select(LedgerAccount)
            .where(
                LedgerAccount.company_id == company_id,
                LedgerAccount.is_active.is_(True),
                LedgerAccount.name.icontains(name_hint, autoescape=True),
            )
            .order_by(LedgerAccount.code, LedgerAccount.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

