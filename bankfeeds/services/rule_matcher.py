"""Evaluation of categorization rule conditions against bank transactions.

A rule's conditions are AND-combined: the rule matches only when every
condition holds. There is no OR or grouping. Anything that cannot be read
as a non-empty list of well-formed conditions never matches.
"""

import operator
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

import structlog
from pydantic import ValidationError

from bankfeeds.schemas.categorization_rule import RuleCondition

logger = structlog.get_logger()


@dataclass
class TransactionFacts:
    """The parts of a bank transaction rules can look at.

    ``BankFeedTransaction`` rows have the same attributes and can be passed
    wherever a ``TransactionFacts`` is expected.
    """

    description: str
    reference_number: str | None = None
    debit_amount: Decimal | str | None = None
    credit_amount: Decimal | str | None = None


_STRING_OPERATORS: dict[str, Callable[[str, str], bool]] = {
    "contains": lambda actual, expected: expected in actual,
    "equals": operator.eq,
    "starts_with": str.startswith,
    "ends_with": str.endswith,
}

_NUMERIC_OPERATORS: dict[str, Callable[[Decimal, Decimal], bool]] = {
    "equals": operator.eq,
    "greater_than": operator.gt,
    "less_than": operator.lt,
}


def to_decimal(value) -> Decimal | None:
    """Convert an amount (Decimal, number or numeric string) to Decimal."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return Decimal(text)
    except InvalidOperation:
        return None


def transaction_amount(transaction) -> Decimal:
    """Amount a rule compares against: the debit if present, else the credit, else 0."""
    debit = to_decimal(transaction.debit_amount)
    if debit is not None:
        return debit
    credit = to_decimal(transaction.credit_amount)
    if credit is not None:
        return credit
    return Decimal("0")


def parse_conditions(raw) -> list[RuleCondition] | None:
    """Validate a stored condition list. Returns None when it is empty or malformed."""
    if not isinstance(raw, list) or not raw:
        return None
    try:
        return [RuleCondition.model_validate(item) for item in raw]
    except ValidationError as e:
        logger.warning("rule_conditions_invalid", errors=e.error_count())
        return None


def evaluate_condition(transaction, condition: RuleCondition) -> bool:
    """Check a single condition against a transaction."""
    if condition.field == "amount":
        compare = _NUMERIC_OPERATORS.get(condition.operator)
        expected = to_decimal(condition.value)
        if compare is None or expected is None:
            return False
        return compare(transaction_amount(transaction), expected)

    compare = _STRING_OPERATORS.get(condition.operator)
    if compare is None or not isinstance(condition.value, str):
        return False

    if condition.field == "description":
        actual = transaction.description or ""
    else:
        actual = transaction.reference_number or ""
    expected = condition.value
    if not condition.case_sensitive:
        actual = actual.lower()
        expected = expected.lower()
    return compare(actual, expected)


def matches_rule(transaction, conditions) -> bool:
    """True iff every condition in ``conditions`` holds for ``transaction``.

    ``conditions`` may be the raw JSON list stored on the rule or a list of
    already validated ``RuleCondition`` objects.
    """
    if isinstance(conditions, list) and conditions and all(
        isinstance(c, RuleCondition) for c in conditions
    ):
        parsed = conditions
    else:
        parsed = parse_conditions(conditions)
    if not parsed:
        return False
    return all(evaluate_condition(transaction, condition) for condition in parsed)
