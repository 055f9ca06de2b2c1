"""Tests for rule condition evaluation."""

from decimal import Decimal

import pytest

from bankfeeds.schemas.categorization_rule import RuleCondition
from bankfeeds.services.rule_matcher import (
    TransactionFacts,
    evaluate_condition,
    matches_rule,
    parse_conditions,
    transaction_amount,
)


def cond(field, operator, value, case_sensitive=False):
    return {"field": field, "operator": operator, "value": value, "caseSensitive": case_sensitive}


@pytest.fixture
def rent_payment():
    return TransactionFacts(
        description="NEFT/RENT FOR JUNE/Kumar Properties",
        reference_number="N123456789",
        debit_amount=Decimal("45000.00"),
    )


class TestStringConditions:
    def test_contains_is_case_insensitive_by_default(self, rent_payment):
        assert matches_rule(rent_payment, [cond("description", "contains", "rent for")])

    def test_case_sensitive_contains(self, rent_payment):
        assert not matches_rule(rent_payment, [cond("description", "contains", "rent for", True)])
        assert matches_rule(rent_payment, [cond("description", "contains", "RENT FOR", True)])

    def test_starts_with_and_ends_with(self, rent_payment):
        assert matches_rule(rent_payment, [cond("description", "starts_with", "neft/")])
        assert matches_rule(rent_payment, [cond("description", "ends_with", "properties")])
        assert not matches_rule(rent_payment, [cond("description", "ends_with", "neft")])

    def test_equals_on_reference_number(self, rent_payment):
        assert matches_rule(rent_payment, [cond("referenceNumber", "equals", "n123456789")])
        assert not matches_rule(rent_payment, [cond("referenceNumber", "equals", "N12345")])

    def test_missing_reference_number_reads_as_empty(self):
        txn = TransactionFacts(description="ATM WDL")
        assert not matches_rule(txn, [cond("referenceNumber", "contains", "A")])
        assert matches_rule(txn, [cond("referenceNumber", "equals", "")])

    def test_numeric_operator_on_text_field_never_matches(self, rent_payment):
        assert not matches_rule(rent_payment, [cond("description", "greater_than", "A")])


class TestAmountConditions:
    def test_uses_debit_first(self, rent_payment):
        assert matches_rule(rent_payment, [cond("amount", "equals", 45000)])
        assert matches_rule(rent_payment, [cond("amount", "greater_than", "40000")])
        assert not matches_rule(rent_payment, [cond("amount", "less_than", 45000)])

    def test_falls_back_to_credit(self):
        txn = TransactionFacts(description="INT CRED", credit_amount="125.50")
        assert transaction_amount(txn) == Decimal("125.50")
        assert matches_rule(txn, [cond("amount", "less_than", 200)])

    def test_no_amount_reads_as_zero(self):
        txn = TransactionFacts(description="REVERSAL")
        assert transaction_amount(txn) == Decimal("0")
        assert matches_rule(txn, [cond("amount", "equals", 0)])

    def test_text_operator_on_amount_never_matches(self, rent_payment):
        assert not matches_rule(rent_payment, [cond("amount", "contains", "450")])

    def test_non_numeric_amount_value_never_matches(self, rent_payment):
        assert not matches_rule(rent_payment, [cond("amount", "greater_than", "lots")])


class TestRuleSemantics:
    def test_all_conditions_must_hold(self, rent_payment):
        conditions = [
            cond("description", "contains", "rent"),
            cond("amount", "greater_than", 10000),
        ]
        assert matches_rule(rent_payment, conditions)

        conditions.append(cond("referenceNumber", "starts_with", "X"))
        assert not matches_rule(rent_payment, conditions)

    @pytest.mark.parametrize("conditions", [None, [], "contains rent", {"field": "description"}])
    def test_empty_or_malformed_lists_fail_closed(self, rent_payment, conditions):
        assert not matches_rule(rent_payment, conditions)

    def test_one_malformed_condition_fails_the_rule(self, rent_payment):
        conditions = [
            cond("description", "contains", "rent"),
            {"field": "narration", "operator": "contains", "value": "rent"},
        ]
        assert parse_conditions(conditions) is None
        assert not matches_rule(rent_payment, conditions)

    def test_accepts_validated_conditions(self, rent_payment):
        conditions = [RuleCondition(field="description", operator="contains", value="kumar")]
        assert matches_rule(rent_payment, conditions)

    def test_snake_case_field_name_is_accepted(self, rent_payment):
        condition = RuleCondition.model_validate(
            {"field": "reference_number", "operator": "starts_with", "value": "N1"}
        )
        assert condition.field == "referenceNumber"
        assert evaluate_condition(rent_payment, condition)
