"""
Main importer class that orchestrates parsing, deduplication and suggestions.
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

from .bulk_importer import BulkImporter
from .errors import NoTransactionsFoundError, StoreError
from .models import BulkInsertResult, CategorySuggestion, ParseReport, Source, Transaction
from .output_formatter import ImportReportFormatter, SuggestionFormatter
from .rule_manager import RuleManager
from .statement_parser import StatementParser
from .suggestion_matcher import suggest_for_transactions
from .transaction_store import TransactionStore

logger = logging.getLogger(__name__)


class StatementImporter:
    """Imports statement files into a transaction store."""

    def __init__(
        self,
        store: TransactionStore,
        rule_manager: RuleManager | None = None,
    ):
        self.store = store
        self.rule_manager = rule_manager
        self.statement_parser = StatementParser()
        self.bulk_importer = BulkImporter(store)
        self.report_formatter = ImportReportFormatter()
        self.suggestion_formatter = SuggestionFormatter()

    def parse_file(self, file_path: str | Path, source: Source | None = None) -> ParseReport:
        """Parse a statement file without touching the store."""
        return self.statement_parser.parse_file(file_path, source)

    async def import_file(
        self,
        file_path: str | Path,
        source: Source | None = None,
    ) -> BulkInsertResult:
        """
        Parse a statement file and insert its new transactions.

        Args:
            file_path: Path to the statement file
            source: Institution; detected from the filename when omitted

        Returns:
            BulkInsertResult for the import

        Raises:
            NoTransactionsFoundError: If the file contained no usable rows
        """
        report = self.parse_file(file_path, source)
        if not report.transactions:
            raise NoTransactionsFoundError(
                f"No transactions found in {Path(file_path).name} "
                f"({len(report.skipped)} rows skipped)",
            )

        return await self.bulk_importer.bulk_insert(report.transactions, report.source)

    async def suggest_categories(self) -> list[tuple[Transaction, CategorySuggestion]]:
        """Propose categories for the uncategorized stored transactions."""
        if self.rule_manager is None:
            logger.warning("No suggestion rules configured")
            return []

        transactions = await self.store.list_transactions()
        return suggest_for_transactions(transactions, self.rule_manager.active_rules())

    async def apply_categories(
        self,
        suggestions: list[tuple[Transaction, CategorySuggestion]],
    ) -> int:
        """
        Store the suggested category on each suggested transaction.

        Rows the store fails to update are logged and left uncategorized.

        Returns:
            Number of transactions that were categorized
        """
        applied = 0
        for transaction, suggestion in suggestions:
            categorized = replace(
                transaction,
                category_id=suggestion.category_id,
                major_category_type=suggestion.major_category_type,
                updated_at=datetime.now(timezone.utc),
            )
            try:
                await self.store.update(categorized)
            except (StoreError, OSError) as e:
                logger.warning(f"Could not categorize {transaction.description!r}: {e}")
                continue
            applied += 1

        logger.info(f"Categorized {applied} of {len(suggestions)} suggested transactions")
        return applied

    def format_report(self, result: BulkInsertResult) -> str:
        """Format an import result for display."""
        return self.report_formatter.format_report(result)

    def format_suggestions(
        self,
        suggestions: list[tuple[Transaction, CategorySuggestion]],
    ) -> str:
        """Format category suggestions for display."""
        return self.suggestion_formatter.format_suggestions(suggestions)
