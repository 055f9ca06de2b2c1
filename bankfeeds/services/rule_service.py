"""Categorization rule store.

CRUD on a company's rules plus the priority bookkeeping the rule engine
relies on: rules are read back highest priority first, and new rules are
put on top of the list unless told otherwise.
"""

from datetime import datetime, timezone

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bankfeeds.core.exceptions import NotFoundError
from bankfeeds.models.categorization_rule import CategorizationRule
from bankfeeds.models.company import Company
from bankfeeds.models.ledger import LedgerAccount, Party
from bankfeeds.schemas.categorization_rule import RuleCondition, RuleCreate, RuleUpdate

logger = structlog.get_logger()


class RuleService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ── CRUD ───────────────────────────────────────────

    async def list_rules(self, company_id: int) -> list[dict]:
        """List all rules of a company, with target account/party names."""
        result = await self.db.execute(
            select(CategorizationRule)
            .where(CategorizationRule.company_id == company_id)
            .order_by(CategorizationRule.priority.desc(), CategorizationRule.id)
        )
        return [await self._to_dict(rule) for rule in result.scalars().all()]

    async def create_rule(self, company_id: int, user_id: int | None, data: RuleCreate) -> dict:
        """Create a rule. Without an explicit priority it goes to the top."""
        await self.check_targets(company_id, data.target_account_id, data.target_party_id)
        rule = await self.add_rule(
            company_id=company_id,
            user_id=user_id,
            rule_name=data.rule_name,
            conditions=data.conditions,
            target_account_id=data.target_account_id,
            target_party_id=data.target_party_id,
            priority=data.priority,
        )
        return await self._to_dict(rule)

    async def update_rule(self, company_id: int, rule_id: int, data: RuleUpdate) -> dict:
        rule = await self.get_rule(company_id, rule_id)
        update_data = data.model_dump(exclude_unset=True)
        if "conditions" in update_data and data.conditions is not None:
            update_data["conditions"] = [c.to_stored() for c in data.conditions]
        await self.check_targets(
            company_id,
            update_data.get("target_account_id"),
            update_data.get("target_party_id"),
        )
        for key, value in update_data.items():
            setattr(rule, key, value)
        await self.db.flush()
        await self.db.refresh(rule)
        return await self._to_dict(rule)

    async def delete_rule(self, company_id: int, rule_id: int) -> None:
        """Delete a rule on user request. Rules are never removed automatically."""
        rule = await self.get_rule(company_id, rule_id)
        await self.db.delete(rule)
        await self.db.flush()

    async def get_rule(self, company_id: int, rule_id: int) -> CategorizationRule:
        result = await self.db.execute(
            select(CategorizationRule).where(
                CategorizationRule.id == rule_id,
                CategorizationRule.company_id == company_id,
            )
        )
        rule = result.scalar_one_or_none()
        if not rule:
            raise NotFoundError("CategorizationRule")
        return rule

    # ── Rule engine support ────────────────────────────

    async def active_rules(self, company_id: int) -> list[CategorizationRule]:
        """Active rules in evaluation order: priority descending, then oldest first."""
        result = await self.db.execute(
            select(CategorizationRule)
            .where(
                CategorizationRule.company_id == company_id,
                CategorizationRule.is_active.is_(True),
            )
            .order_by(CategorizationRule.priority.desc(), CategorizationRule.id)
        )
        return list(result.scalars().all())

    async def add_rule(
        self,
        company_id: int,
        user_id: int | None,
        rule_name: str,
        conditions: list[RuleCondition],
        target_account_id: int | None,
        target_party_id: int | None,
        priority: int | None = None,
    ) -> CategorizationRule:
        """Insert a rule, allocating the next priority when none is given."""
        if priority is None:
            priority = await self.next_priority(company_id)
        rule = CategorizationRule(
            company_id=company_id,
            rule_name=rule_name,
            priority=priority,
            conditions=[c.to_stored() for c in conditions],
            target_account_id=target_account_id,
            target_party_id=target_party_id,
            is_active=True,
            usage_count=0,
            created_by_user_id=user_id,
        )
        self.db.add(rule)
        await self.db.flush()
        await self.db.refresh(rule)
        logger.info(
            "categorization_rule_created",
            company_id=company_id,
            rule_id=rule.id,
            priority=priority,
        )
        return rule

    async def next_priority(self, company_id: int) -> int:
        """Highest existing priority + 1 (1 for a company without rules).

        The company row is locked first so concurrent allocations for the
        same company queue up instead of reading the same maximum.
        """
        company = await self.db.execute(
            select(Company.id).where(Company.id == company_id).with_for_update()
        )
        if company.scalar_one_or_none() is None:
            raise NotFoundError("Company")

        result = await self.db.execute(
            select(func.max(CategorizationRule.priority)).where(
                CategorizationRule.company_id == company_id
            )
        )
        current = result.scalar()
        return (current or 0) + 1

    async def record_usage(self, rule: CategorizationRule) -> None:
        """Bump usage statistics after a rule fired.

        The counter is incremented in SQL so concurrent requests do not lose hits.
        """
        await self.db.execute(
            update(CategorizationRule)
            .where(CategorizationRule.id == rule.id)
            .values(
                usage_count=CategorizationRule.usage_count + 1,
                last_used_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.refresh(rule, ["usage_count", "last_used_at", "updated_at"])

    # ── Helpers ─────────────────────────────────────────

    async def check_targets(
        self, company_id: int, account_id: int | None, party_id: int | None
    ) -> None:
        """Ensure the account and party (when given) belong to the company."""
        if account_id is not None:
            account = await self.db.get(LedgerAccount, account_id)
            if not account or account.company_id != company_id:
                raise NotFoundError("Account")
        if party_id is not None:
            party = await self.db.get(Party, party_id)
            if not party or party.company_id != company_id:
                raise NotFoundError("Party")

    async def _to_dict(self, rule: CategorizationRule) -> dict:
        account = await self.db.get(LedgerAccount, rule.target_account_id) if rule.target_account_id else None
        party = await self.db.get(Party, rule.target_party_id) if rule.target_party_id else None
        return {
            "id": rule.id,
            "company_id": rule.company_id,
            "rule_name": rule.rule_name,
            "priority": rule.priority,
            "conditions": rule.conditions,
            "target_account_id": rule.target_account_id,
            "target_account_name": account.name if account else None,
            "target_party_id": rule.target_party_id,
            "target_party_name": party.name if party else None,
            "is_active": rule.is_active,
            "usage_count": rule.usage_count,
            "last_used_at": rule.last_used_at,
            "created_at": rule.created_at,
            "updated_at": rule.updated_at,
        }
