"""
Keyword rule matching for category suggestions.

All functions here are pure: the rules to evaluate are always passed in.
"""

import logging
import re

from .models import CategorySuggestion, MatchType, SmartSuggestionRule, Transaction

logger = logging.getLogger(__name__)


def matches(description: str, rule: SmartSuggestionRule) -> bool:
    """Check whether a description satisfies a single rule."""
    if rule.case_sensitive:
        text, keyword = description, rule.keyword
    else:
        text, keyword = description.lower(), rule.keyword.lower()

    if rule.match_type == MatchType.CONTAINS:
        return keyword in text
    if rule.match_type == MatchType.STARTS_WITH:
        return text.startswith(keyword)
    if rule.match_type == MatchType.ENDS_WITH:
        return text.endswith(keyword)
    if rule.match_type == MatchType.EXACT_MATCH:
        return text == keyword
    if rule.match_type == MatchType.REGEX:
        flags = 0 if rule.case_sensitive else re.IGNORECASE
        try:
            return re.search(rule.keyword, description, flags) is not None
        except re.error as e:
            logger.debug(f"Invalid regex in rule '{rule.name}': {e}")
            return False
    return False


def sort_rules(rules: list[SmartSuggestionRule]) -> list[SmartSuggestionRule]:
    """Return the active rules, highest priority first, keeping list order on ties."""
    active = [rule for rule in rules if rule.is_active]
    return sorted(active, key=lambda rule: rule.priority, reverse=True)


def apply_suggestions(
    description: str,
    rules: list[SmartSuggestionRule],
) -> SmartSuggestionRule | None:
    """
    Find the first rule matching a description.

    Args:
        description: Transaction description
        rules: Rules already sorted by descending priority

    Returns:
        The first matching rule, or None
    """
    for rule in rules:
        if matches(description, rule):
            return rule
    return None


def suggest_category(
    description: str,
    rules: list[SmartSuggestionRule],
) -> CategorySuggestion | None:
    """Return the category proposed for a description, if any rule matches."""
    rule = apply_suggestions(description, rules)
    if rule is None:
        return None
    return CategorySuggestion(
        major_category_type=rule.major_category_type,
        category_id=rule.category_id,
        rule=rule,
    )


def suggest_for_transactions(
    transactions: list[Transaction],
    rules: list[SmartSuggestionRule],
) -> list[tuple[Transaction, CategorySuggestion]]:
    """
    Propose categories for the uncategorized transactions.

    Archived rows, income rows, manual entries and rows that already have a
    major category are left out.
    """
    suggestions = []
    for transaction in transactions:
        if not transaction.is_uncategorized:
            continue
        suggestion = suggest_category(transaction.description, rules)
        if suggestion is not None:
            suggestions.append((transaction, suggestion))

    logger.info(
        f"Found suggestions for {len(suggestions)} of {len(transactions)} transactions",
    )
    return suggestions
