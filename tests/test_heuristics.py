"""Tests for keyword/party heuristics."""

from types import SimpleNamespace

from bankfeeds.services.heuristics import (
    extract_keywords,
    find_party_in_description,
    matching_patterns,
)


def test_patterns_are_yielded_in_table_order():
    names = [p.account_name for p in matching_patterns("SMS CHARGES QTR/GST")]
    assert names == ["Bank Charges", "GST Payable"]


def test_no_pattern_for_plain_description():
    assert list(matching_patterns("CASH DEPOSIT BRANCH 0042")) == []


def test_party_name_match_is_case_insensitive():
    parties = [SimpleNamespace(name="Sharma Stationers"), SimpleNamespace(name="Gupta & Sons")]
    party = find_party_in_description("IMPS/GUPTA & SONS/INV 22", parties)
    assert party is parties[1]


def test_short_party_names_are_ignored():
    parties = [SimpleNamespace(name="ABC")]
    assert find_party_in_description("NEFT ABC LTD", parties) is None


def test_extract_keywords_drops_stop_words_and_short_tokens():
    assert extract_keywords("UPI/Swiggy-Order/REF No 12") == ["swiggy", "order"]


def test_extract_keywords_deduplicates_in_order():
    assert extract_keywords("Zomato zomato ZOMATO lunch") == ["zomato", "lunch"]


def test_extract_keywords_empty():
    assert extract_keywords("NEFT / UPI - TO") == []
