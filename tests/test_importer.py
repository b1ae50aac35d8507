"""Unit tests for importer.py."""

import asyncio
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from statementimport.errors import (
    NoTransactionsFoundError,
    StatementParseError,
    UnknownSourceError,
)
from statementimport.importer import StatementImporter
from statementimport.models import CategoryType, MatchType, SmartSuggestionRule, Source
from statementimport.rule_manager import RuleManager
from statementimport.transaction_store import InMemoryTransactionStore, JsonTransactionStore

PC_CSV = (
    "Description,Type,Date,Amount\n"
    "LOBLAWS #123,PURCHASE,11/28/2025,-54.20\n"
    "NETFLIX.COM,PURCHASE,11/27/2025,-16.99\n"
    "PAYMENT THANK YOU,PAYMENT,11/26/2025,300.00\n"
)


def write_statement(tmpdir: str, name: str, content: str) -> Path:
    path = Path(tmpdir) / name
    path.write_text(content, encoding="utf-8")
    return path


def make_rule(rule_id: str, keyword: str, category_id: str) -> SmartSuggestionRule:
    return SmartSuggestionRule(
        id=rule_id,
        name=rule_id,
        keyword=keyword,
        match_type=MatchType.CONTAINS,
        category_id=category_id,
        major_category_type=CategoryType.FIXED,
    )


class TestStatementImporterInitialization:
    """Tests for StatementImporter initialization."""

    def test_init(self):
        """Test that collaborators are created."""
        store = InMemoryTransactionStore()
        importer = StatementImporter(store)

        assert importer.store is store
        assert importer.rule_manager is None
        assert importer.statement_parser is not None
        assert importer.bulk_importer.store is store


class TestImportFile:
    """Tests for import_file method."""

    def test_import_detected_source(self):
        """Test importing a file whose source is detected from its name."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_statement(tmpdir, "pc_report.csv", PC_CSV)
            store = InMemoryTransactionStore()

            result = asyncio.run(StatementImporter(store).import_file(path))

            assert result.inserted == 2
            assert result.credits == 1
            assert all(tx.source == Source.PC for tx in store.transactions)

    def test_reimport_reports_duplicates(self):
        """Test that a second import of the same file inserts nothing."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_statement(tmpdir, "pc_report.csv", PC_CSV)
            store = JsonTransactionStore(Path(tmpdir) / "transactions.json")
            importer = StatementImporter(store)

            asyncio.run(importer.import_file(path))
            second = asyncio.run(
                StatementImporter(JsonTransactionStore(store.store_file)).import_file(path),
            )

            assert second.inserted == 0
            assert second.duplicates == 2
            assert second.credits == 1

    def test_explicit_source(self):
        """Test that an explicit source is used for undetectable names."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_statement(tmpdir, "download.csv", PC_CSV)
            store = InMemoryTransactionStore()

            result = asyncio.run(StatementImporter(store).import_file(path, Source.PC))

            assert result.inserted == 2

    def test_unknown_source(self):
        """Test that undetectable names without a source raise."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_statement(tmpdir, "download.csv", PC_CSV)

            with pytest.raises(UnknownSourceError):
                asyncio.run(StatementImporter(InMemoryTransactionStore()).import_file(path))

    def test_no_transactions(self):
        """Test that a file without usable rows raises NoTransactionsFoundError."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_statement(
                tmpdir,
                "pc_report.csv",
                "Description,Date,Amount\nTOTAL,,\n",
            )

            with pytest.raises(NoTransactionsFoundError, match="1 rows skipped"):
                asyncio.run(StatementImporter(InMemoryTransactionStore()).import_file(path))

    def test_structural_error(self):
        """Test that structural problems propagate as StatementParseError."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_statement(tmpdir, "pc_report.csv", "Posted,Merchant\n1,2\n")

            with pytest.raises(StatementParseError):
                asyncio.run(StatementImporter(InMemoryTransactionStore()).import_file(path))


class TestSuggestCategories:
    """Tests for suggest_categories method."""

    def test_suggestions_for_imported_rows(self):
        """Test suggestions after an import."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_statement(tmpdir, "pc_report.csv", PC_CSV)
            rule_manager = RuleManager(Path(tmpdir) / "rules.json")
            rule_manager.add_rule(make_rule("groceries", "loblaws", "groceries"))
            rule_manager.add_rule(make_rule("payments", "payment", "transfers"))
            importer = StatementImporter(InMemoryTransactionStore(), rule_manager)

            asyncio.run(importer.import_file(path))
            suggestions = asyncio.run(importer.suggest_categories())

            # The payment is income and never offered
            assert len(suggestions) == 1
            transaction, suggestion = suggestions[0]
            assert transaction.description == "LOBLAWS #123"
            assert suggestion.category_id == "groceries"

    def test_without_rule_manager(self):
        """Test that no suggestions are produced without rules."""
        importer = StatementImporter(InMemoryTransactionStore())
        assert asyncio.run(importer.suggest_categories()) == []


class TestApplyCategories:
    """Tests for apply_categories method."""

    def test_apply_stores_categories(self):
        """Test that applied suggestions are stored and no longer offered."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_statement(tmpdir, "pc_report.csv", PC_CSV)
            rule_manager = RuleManager(Path(tmpdir) / "rules.json")
            rule_manager.add_rule(make_rule("groceries", "loblaws", "groceries"))
            store = InMemoryTransactionStore()
            importer = StatementImporter(store, rule_manager)

            asyncio.run(importer.import_file(path))
            suggestions = asyncio.run(importer.suggest_categories())
            applied = asyncio.run(importer.apply_categories(suggestions))

            assert applied == 1
            stored = {tx.description: tx for tx in store.transactions}
            assert stored["LOBLAWS #123"].category_id == "groceries"
            assert stored["LOBLAWS #123"].major_category_type == CategoryType.FIXED
            assert stored["LOBLAWS #123"].updated_at >= stored["LOBLAWS #123"].created_at
            assert stored["NETFLIX.COM"].category_id is None
            assert asyncio.run(importer.suggest_categories()) == []

    def test_failed_update_is_skipped(self):
        """Test that a row the store cannot update is left uncategorized."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_statement(tmpdir, "pc_report.csv", PC_CSV)
            rule_manager = RuleManager(Path(tmpdir) / "rules.json")
            rule_manager.add_rule(make_rule("groceries", "loblaws", "groceries"))
            rule_manager.add_rule(make_rule("streaming", "netflix", "streaming"))
            store = JsonTransactionStore(Path(tmpdir) / "transactions.json")
            importer = StatementImporter(store, rule_manager)

            asyncio.run(importer.import_file(path))
            suggestions = asyncio.run(importer.suggest_categories())

            with patch("builtins.open", side_effect=PermissionError("read-only")):
                applied = asyncio.run(importer.apply_categories(suggestions))

            assert applied == 0
            assert len(asyncio.run(importer.suggest_categories())) == 2


class TestFormatting:
    """Tests for the formatting helpers."""

    def test_format_report(self):
        """Test that format_report delegates to the report formatter."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_statement(tmpdir, "pc_report.csv", PC_CSV)
            importer = StatementImporter(InMemoryTransactionStore())

            result = asyncio.run(importer.import_file(path))
            output = importer.format_report(result)

            assert "New expenses imported: 2" in output
            assert "LOBLAWS #123" in output

    def test_format_no_suggestions(self):
        """Test formatting an empty suggestion list."""
        importer = StatementImporter(InMemoryTransactionStore())
        assert importer.format_suggestions([]) == "No category suggestions."
