"""
Statement Import - normalize bank and credit card statement exports.

This package parses statement exports of several institutions into a common
transaction record, imports them without double-counting rows that were
imported before, and suggests budget categories through keyword rules.
"""

from .bulk_importer import BulkImporter
from .date_normalizer import parse_date
from .errors import (
    NoTransactionsFoundError,
    StatementImportError,
    StatementParseError,
    StoreError,
)
from .format_detector import detect_source
from .importer import StatementImporter
from .models import (
    BulkInsertResult,
    CategorySuggestion,
    ParsedTransaction,
    SmartSuggestionRule,
    Source,
    Transaction,
    TransactionType,
)
from .rule_manager import RuleManager
from .statement_parser import StatementParser
from .suggestion_matcher import apply_suggestions, matches
from .transaction_store import InMemoryTransactionStore, JsonTransactionStore

__version__ = "0.1.0"
__all__ = [
    "BulkImporter",
    "BulkInsertResult",
    "CategorySuggestion",
    "InMemoryTransactionStore",
    "JsonTransactionStore",
    "NoTransactionsFoundError",
    "ParsedTransaction",
    "RuleManager",
    "SmartSuggestionRule",
    "Source",
    "StatementImportError",
    "StatementImporter",
    "StatementParseError",
    "StatementParser",
    "StoreError",
    "Transaction",
    "TransactionType",
    "apply_suggestions",
    "detect_source",
    "matches",
    "parse_date",
]
