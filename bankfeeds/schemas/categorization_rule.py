"""Categorization rule schemas."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ConditionField = Literal["description", "referenceNumber", "amount"]
ConditionOperator = Literal[
    "contains", "equals", "starts_with", "ends_with", "greater_than", "less_than"
]

_FIELD_ALIASES = {"reference_number": "referenceNumber"}


class RuleCondition(BaseModel):
    """One condition of a rule, as stored in ``CategorizationRule.conditions``."""

    model_config = ConfigDict(populate_by_name=True)

    field: ConditionField
    operator: ConditionOperator
    value: str | int | float
    case_sensitive: bool = Field(False, alias="caseSensitive")

    @field_validator("field", mode="before")
    @classmethod
    def _accept_snake_case(cls, v: Any) -> Any:
        return _FIELD_ALIASES.get(v, v) if isinstance(v, str) else v

    def to_stored(self) -> dict:
        return self.model_dump(by_alias=True)


class RuleCreate(BaseModel):
    rule_name: str
    priority: int | None = None  # None = next free priority (top of the list)
    conditions: list[RuleCondition] = Field(min_length=1)
    target_account_id: int | None = None
    target_party_id: int | None = None


class RuleUpdate(BaseModel):
    rule_name: str | None = None
    priority: int | None = None
    conditions: list[RuleCondition] | None = Field(None, min_length=1)
    target_account_id: int | None = None
    target_party_id: int | None = None
    is_active: bool | None = None

    @field_validator("rule_name", "priority", "conditions", "is_active")
    @classmethod
    def _not_null(cls, v: Any) -> Any:
        # Omit a field to leave it unchanged; only the targets can be cleared
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class RuleResponse(BaseModel):
    id: int
    company_id: int
    rule_name: str
    priority: int
    conditions: list[dict]
    target_account_id: int | None = None
    target_account_name: str | None = None
    target_party_id: int | None = None
    target_party_name: str | None = None
    is_active: bool
    usage_count: int
    last_used_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
