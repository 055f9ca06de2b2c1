"""Keyword and party-name heuristics for transactions no rule matched.

The keyword table is evaluated top to bottom; the first pattern with a
keyword contained in the description supplies an account name hint. The
hint is resolved against the company's chart of accounts by the
categorization service, which falls through to the next pattern when the
company has no such account.
"""

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

# Fixed confidence scores (0-100), not probabilities
RULE_CONFIDENCE = 95
PARTY_CONFIDENCE = 75
KEYWORD_CONFIDENCE = 70
MANUAL_CONFIDENCE = 100
NO_MATCH_CONFIDENCE = 0

MIN_PARTY_NAME_LENGTH = 4
MIN_KEYWORD_LENGTH = 3


@dataclass(frozen=True)
class KeywordPattern:
    keywords: tuple[str, ...]
    account_type: str
    account_name: str


# Common narrations in Indian bank statements
KEYWORD_PATTERNS: tuple[KeywordPattern, ...] = (
    KeywordPattern(("charges", "sms charges", "maintenance", "service charge"), "expense", "Bank Charges"),
    KeywordPattern(("interest credit", "int cred", "interest paid"), "income", "Interest Income"),
    KeywordPattern(("interest debit", "int paid", "loan interest"), "expense", "Interest Expense"),
    KeywordPattern(("salary", "sal credit", "neft-sal"), "income", "Salary Income"),
    KeywordPattern(("upi/", "upi-", "imps/", "neft/", "rtgs/"), "income", "Sales"),
    KeywordPattern(("amazon", "flipkart", "meesho", "swiggy", "zomato"), "expense", "Office Expenses"),
    KeywordPattern(("electricity", "power", "bescom", "tata power"), "expense", "Electricity Expenses"),
    KeywordPattern(("telephone", "mobile", "airtel", "jio", "vodafone"), "expense", "Telephone Expenses"),
    KeywordPattern(("rent", "lease"), "expense", "Rent Expense"),
    KeywordPattern(("insurance", "lic", "hdfc life", "icici prudential"), "expense", "Insurance Expense"),
    KeywordPattern(("gst", "cgst", "sgst", "igst", "gstr"), "liability", "GST Payable"),
    KeywordPattern(("tds", "tax deducted"), "asset", "TDS Receivable"),
)

STOP_WORDS = frozenset({
    "the", "and", "for", "from", "to", "of", "in", "on", "at", "by",
    "upi", "neft", "rtgs", "imps", "ref", "no", "txn",
    "credit", "debit", "transfer", "payment", "received",
})

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def matching_patterns(description: str) -> Iterator[KeywordPattern]:
    """Yield, in table order, the patterns with a keyword in ``description``."""
    lowered = (description or "").lower()
    for pattern in KEYWORD_PATTERNS:
        if any(keyword in lowered for keyword in pattern.keywords):
            yield pattern


def find_party_in_description(description: str, parties: Iterable):
    """Return the first party whose name appears in the description, or None.

    Names shorter than four characters are ignored; they match too much.
    """
    lowered = (description or "").lower()
    for party in parties:
        name = (party.name or "").lower()
        if len(name) >= MIN_PARTY_NAME_LENGTH and name in lowered:
            return party
    return None


def extract_keywords(description: str) -> list[str]:
    """Significant words of a description, lowercased, de-duplicated, in order."""
    words = _NON_ALNUM.sub(" ", (description or "").lower()).split()
    keywords: list[str] = []
    for word in words:
        if len(word) < MIN_KEYWORD_LENGTH or word in STOP_WORDS or word in keywords:
            continue
        keywords.append(word)
    return keywords
