"""Unit tests for suggestion_matcher.py."""

from datetime import date, datetime

import pytest

from statementimport.models import (
    CategoryType,
    MatchType,
    SmartSuggestionRule,
    Source,
    Transaction,
)
from statementimport.suggestion_matcher import (
    apply_suggestions,
    matches,
    sort_rules,
    suggest_category,
    suggest_for_transactions,
)


def make_rule(
    keyword: str,
    match_type: MatchType = MatchType.CONTAINS,
    case_sensitive: bool = False,
    priority: int = 0,
    rule_id: str | None = None,
    is_active: bool = True,
    category_id: str = "groceries",
) -> SmartSuggestionRule:
    return SmartSuggestionRule(
        id=rule_id or keyword,
        name=rule_id or keyword,
        keyword=keyword,
        match_type=match_type,
        category_id=category_id,
        major_category_type=CategoryType.FIXED,
        case_sensitive=case_sensitive,
        priority=priority,
        is_active=is_active,
    )


def make_transaction(description: str, **overrides) -> Transaction:
    values = {
        "id": description,
        "description": description,
        "amount": -10.0,
        "date": date(2025, 11, 28),
        "source": Source.AMEX,
        "is_income": False,
        "created_at": datetime(2025, 11, 29),
        "updated_at": datetime(2025, 11, 29),
    }
    values.update(overrides)
    return Transaction(**values)


class TestMatches:
    """Tests for matches function."""

    @pytest.mark.parametrize(
        ("match_type", "keyword", "expected"),
        [
            (MatchType.CONTAINS, "loblaws", True),
            (MatchType.CONTAINS, "sobeys", False),
            (MatchType.STARTS_WITH, "loblaws", True),
            (MatchType.STARTS_WITH, "store", False),
            (MatchType.ENDS_WITH, "#123", True),
            (MatchType.ENDS_WITH, "loblaws", False),
            (MatchType.EXACT_MATCH, "loblaws store #123", True),
            (MatchType.EXACT_MATCH, "loblaws", False),
        ],
    )
    def test_string_predicates(self, match_type, keyword, expected):
        """Test the substring match types, case-insensitively."""
        rule = make_rule(keyword, match_type)
        assert matches("LOBLAWS STORE #123", rule) is expected

    def test_case_sensitive(self):
        """Test that case-sensitive rules respect case."""
        rule = make_rule("Loblaws", case_sensitive=True)
        assert matches("Loblaws store", rule) is True
        assert matches("LOBLAWS STORE", rule) is False

    def test_regex(self):
        """Test regular expression rules."""
        rule = make_rule(r"^uber\s+(eats|trip)", MatchType.REGEX)
        assert matches("UBER EATS TORONTO", rule) is True
        assert matches("UBER   TRIP", rule) is True
        assert matches("PAY UBER EATS", rule) is False

    def test_regex_case_sensitive(self):
        """Test that case-sensitive regex rules do not ignore case."""
        rule = make_rule(r"UBER", MatchType.REGEX, case_sensitive=True)
        assert matches("UBER EATS", rule) is True
        assert matches("uber eats", rule) is False

    def test_invalid_regex_is_no_match(self):
        """Test that an invalid pattern returns False instead of raising."""
        rule = make_rule("[unclosed(", MatchType.REGEX)
        assert matches("[unclosed(", rule) is False


class TestSortRules:
    """Tests for sort_rules function."""

    def test_descending_priority(self):
        """Test that higher priority rules come first."""
        low = make_rule("a", priority=1)
        high = make_rule("b", priority=10)
        assert sort_rules([low, high]) == [high, low]

    def test_ties_keep_order(self):
        """Test that rules with equal priority keep their order."""
        first = make_rule("a", priority=5)
        second = make_rule("b", priority=5)
        assert sort_rules([first, second]) == [first, second]

    def test_inactive_rules_are_dropped(self):
        """Test that inactive rules are never evaluated."""
        inactive = make_rule("a", is_active=False)
        active = make_rule("b")
        assert sort_rules([inactive, active]) == [active]


class TestApplySuggestions:
    """Tests for apply_suggestions function."""

    def test_higher_priority_wins(self):
        """Test that the higher priority of two matching rules is returned."""
        general = make_rule("uber", priority=1, rule_id="general")
        specific = make_rule("uber eats", priority=10, rule_id="specific")

        rule = apply_suggestions("UBER EATS", sort_rules([general, specific]))

        assert rule is specific

    def test_equal_priority_first_in_list_wins(self):
        """Test that ties are broken by list order."""
        first = make_rule("uber", priority=5, rule_id="first")
        second = make_rule("eats", priority=5, rule_id="second")

        assert apply_suggestions("UBER EATS", [first, second]) is first
        assert apply_suggestions("UBER EATS", [second, first]) is second

    def test_no_match(self):
        """Test that None is returned when nothing matches."""
        assert apply_suggestions("HYDRO", [make_rule("uber")]) is None
        assert apply_suggestions("HYDRO", []) is None


class TestSuggestCategory:
    """Tests for suggest_category function."""

    def test_suggestion_carries_category(self):
        """Test that the suggestion exposes the rule's category."""
        rule = make_rule("loblaws", category_id="groceries")

        suggestion = suggest_category("LOBLAWS #123", [rule])

        assert suggestion is not None
        assert suggestion.category_id == "groceries"
        assert suggestion.major_category_type == CategoryType.FIXED
        assert suggestion.rule is rule

    def test_no_suggestion(self):
        """Test that None is returned without a match."""
        assert suggest_category("HYDRO", [make_rule("loblaws")]) is None


class TestSuggestForTransactions:
    """Tests for suggest_for_transactions function."""

    def test_only_uncategorized_rows(self):
        """Test that categorized, archived, income and manual rows are skipped."""
        rules = [make_rule("loblaws")]
        transactions = [
            make_transaction("LOBLAWS 1"),
            make_transaction("LOBLAWS 2", major_category_type=CategoryType.FUN),
            make_transaction("LOBLAWS 3", is_archived=True),
            make_transaction("LOBLAWS 4", is_income=True, amount=10.0),
            make_transaction("LOBLAWS 5", source=Source.MANUAL),
            make_transaction("HYDRO"),
        ]

        suggestions = suggest_for_transactions(transactions, rules)

        assert [tx.description for tx, _ in suggestions] == ["LOBLAWS 1"]
        assert suggestions[0][1].category_id == "groceries"
