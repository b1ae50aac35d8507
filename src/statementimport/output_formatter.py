"""
Text output for import results, category suggestions and rules.
"""

from .models import (
    BulkInsertResult,
    CategorySuggestion,
    ParsedTransaction,
    SmartSuggestionRule,
    Transaction,
)


class ImportReportFormatter:
    """Formats the reconciliation report of an import."""

    def __init__(self, show_transactions: bool = True):
        self.show_transactions = show_transactions

    def format_report(self, result: BulkInsertResult) -> str:
        """
        Format an import result.

        Args:
            result: BulkInsertResult object

        Returns:
            Report listing the counts and, optionally, the rows of each group
        """
        lines = []
        lines.append("=== Import Summary ===")
        lines.append(f"New expenses imported: {result.inserted}")
        lines.append(f"Duplicates skipped: {result.duplicates}")
        lines.append(f"Credits (payments, refunds, deposits): {result.credits}")

        if self.show_transactions:
            lines.extend(self._format_section("Imported", result.inserted_transactions))
            lines.extend(
                self._format_section("Duplicates", result.duplicate_transactions),
            )
            lines.extend(self._format_section("Credits", result.credit_transactions))

        return "\n".join(lines)

    def _format_section(
        self,
        title: str,
        transactions: list[ParsedTransaction],
    ) -> list[str]:
        if not transactions:
            return []

        lines = ["", f"{title}:"]
        for tx in transactions:
            line = f"  {tx.date.isoformat()} | {tx.description} | {self._format_amount(tx.signed_amount)}"
            if tx.sub_description:
                line += f" | {tx.sub_description}"
            lines.append(line)
        return lines

    @staticmethod
    def _format_amount(amount: float) -> str:
        sign = "-" if amount < 0 else ""
        return f"{sign}${abs(amount):,.2f}"


class SuggestionFormatter:
    """Formats category suggestions."""

    @staticmethod
    def format_suggestions(
        suggestions: list[tuple[Transaction, CategorySuggestion]],
    ) -> str:
        if not suggestions:
            return "No category suggestions."

        lines = [f"=== Category Suggestions ({len(suggestions)}) ==="]
        for transaction, suggestion in suggestions:
            lines.append(
                f"{transaction.date.isoformat()} | {transaction.description} | "
                f"{transaction.amount:.2f} -> {suggestion.major_category_type.value} / "
                f"{suggestion.category_id} (rule: {suggestion.rule.name})",
            )
        return "\n".join(lines)


class RuleFormatter:
    """Formats the configured suggestion rules."""

    @staticmethod
    def format_rules(rules: list[SmartSuggestionRule]) -> str:
        if not rules:
            return "No suggestion rules."

        lines = [f"=== Suggestion Rules ({len(rules)}) ==="]
        for rule in rules:
            line = (
                f"{rule.id} | {rule.name} | {rule.match_type.value} '{rule.keyword}' -> "
                f"{rule.major_category_type.value} / {rule.category_id} (priority {rule.priority})"
            )
            if not rule.is_active:
                line += " [inactive]"
            lines.append(line)
        return "\n".join(lines)
