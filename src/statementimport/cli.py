"""
Command-line interface for statement importing.
"""

import argparse
import asyncio
import json
import logging
import sys
import uuid
from pathlib import Path

from .errors import (
    FileSavingError,
    NoTransactionsFoundError,
    StatementParseError,
    StoreError,
    UnknownSourceError,
)
from .format_detector import detect_source
from .importer import StatementImporter
from .models import CategoryType, MatchType, SmartSuggestionRule, Source
from .output_formatter import RuleFormatter
from .rule_manager import RuleManager
from .transaction_store import JsonTransactionStore

logger = logging.getLogger(__name__)

DEFAULT_STORE_FILE = "transactions.json"
DEFAULT_RULES_FILE = "rules.json"


def load_config(config_file: str | None) -> dict:
    """Load CLI configuration from JSON file."""
    if not config_file:
        return {}

    config_path = Path(config_file)
    if not config_path.exists():
        logger.debug(f"CLI config file {config_file} does not exist")
        return {}

    try:
        with open(config_path, encoding="utf-8") as f:
            config = json.load(f)
        logger.debug(f"Loaded CLI config from {config_file}")
        return config
    except json.JSONDecodeError as e:
        logger.warning(f"Invalid JSON in CLI config file {config_file}: {e}")
        return {}
    except OSError as e:
        logger.warning(f"Failed to load CLI config from {config_file}: {e}")
        return {}


def save_config(config_file: str, config: dict) -> None:
    """Save CLI configuration to JSON file."""
    try:
        config_path = Path(config_file)
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2, ensure_ascii=False)
        logger.info(f"CLI configuration saved to {config_file}")
    except OSError as e:
        logger.error(f"Failed to save CLI config to {config_file}: {e}")
        raise FileSavingError(
            f"Failed to save CLI config to {config_file}: {e}",
        ) from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Import bank and credit card statements and suggest categories",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    parser.add_argument(
        "--config",
        help="Path to CLI configuration file (contains store_file and rules_file)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    source_choices = [
        source.value for source in Source if source != Source.MANUAL
    ]

    import_parser = subparsers.add_parser("import", help="Import a statement file")
    import_parser.add_argument("statement_file", help="Path to the .xls/.xlsx/.csv export")
    import_parser.add_argument(
        "--source",
        choices=source_choices,
        help="Statement source (detected from the filename when omitted)",
    )

    detect_parser = subparsers.add_parser(
        "detect",
        help="Show which source a filename is detected as",
    )
    detect_parser.add_argument("statement_file", help="Statement filename")

    suggest_parser = subparsers.add_parser(
        "suggest",
        help="Suggest categories for uncategorized transactions",
    )
    suggest_parser.add_argument(
        "--apply",
        action="store_true",
        help="Store the suggested categories on the transactions",
    )

    rule_parser = subparsers.add_parser("add-rule", help="Add a smart suggestion rule")
    rule_parser.add_argument("name", help="Rule name")
    rule_parser.add_argument("keyword", help="Keyword or regular expression")
    rule_parser.add_argument("category_id", help="Category to suggest")
    rule_parser.add_argument(
        "major_category_type",
        choices=[category_type.value for category_type in CategoryType],
        help="Major category type to suggest",
    )
    rule_parser.add_argument(
        "--match-type",
        choices=[match_type.value for match_type in MatchType],
        default=MatchType.CONTAINS.value,
        help="How the keyword is compared (default: CONTAINS)",
    )
    rule_parser.add_argument(
        "--priority",
        type=int,
        default=0,
        help="Higher priority rules are checked first",
    )
    rule_parser.add_argument(
        "--case-sensitive",
        action="store_true",
        help="Compare the keyword case-sensitively",
    )

    remove_parser = subparsers.add_parser("remove-rule", help="Remove a smart suggestion rule")
    remove_parser.add_argument("rule_id", help="Id of the rule to remove (see list-rules)")

    subparsers.add_parser("list-rules", help="List the smart suggestion rules")

    return parser


def _run_import(importer: StatementImporter, statement_file: str, source: Source | None) -> None:
    try:
        result = asyncio.run(importer.import_file(statement_file, source))
    except UnknownSourceError as e:
        logger.error(f"Error: {e}. Use --source to choose one.")
        sys.exit(1)
    except StatementParseError as e:
        logger.error(f"Error: file format not recognized: {e}")
        sys.exit(1)
    except NoTransactionsFoundError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    except (StoreError, OSError) as e:
        logger.error(f"Error importing file: {e}")
        sys.exit(1)

    # Output to stdout for the user
    logger.info(importer.format_report(result))


def _run_suggest(importer: StatementImporter, apply: bool) -> None:
    try:
        suggestions = asyncio.run(importer.suggest_categories())
    except StoreError as e:
        logger.error(f"Error reading transactions: {e}")
        sys.exit(1)

    logger.info(importer.format_suggestions(suggestions))

    if apply and suggestions:
        applied = asyncio.run(importer.apply_categories(suggestions))
        logger.info(f"Applied {applied} category suggestions")


def main():
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s: %(message)s",
    )

    if args.command == "detect":
        source = detect_source(args.statement_file)
        if source is None:
            logger.error(
                f"Could not detect the source of '{args.statement_file}', please choose one manually",
            )
            sys.exit(1)
        logger.info(f"{source.value} ({source.display_name})")
        return

    config = load_config(args.config)
    if args.config and not Path(args.config).exists():
        config = {"store_file": DEFAULT_STORE_FILE, "rules_file": DEFAULT_RULES_FILE}
        try:
            save_config(args.config, config)
        except FileSavingError as e:
            logger.warning(f"Could not create default config: {e}")
    store_file = Path(config.get("store_file", DEFAULT_STORE_FILE))
    rules_file = Path(config.get("rules_file", DEFAULT_RULES_FILE))

    rule_manager = RuleManager(rules_file)

    if args.command == "add-rule":
        rule = SmartSuggestionRule(
            id=str(uuid.uuid4()),
            name=args.name,
            keyword=args.keyword,
            match_type=MatchType(args.match_type),
            category_id=args.category_id,
            major_category_type=CategoryType(args.major_category_type),
            case_sensitive=args.case_sensitive,
            priority=args.priority,
        )
        rule_manager.add_rule(rule)
        logger.info(f"Added rule '{rule.name}' -> {rule.category_id}")
        return

    if args.command == "remove-rule":
        rule = rule_manager.get_rule(args.rule_id)
        if rule is None:
            logger.error(f"Rule '{args.rule_id}' does not exist")
            sys.exit(1)
        rule_manager.remove_rule(args.rule_id)
        logger.info(f"Removed rule '{rule.name}'")
        return

    if args.command == "list-rules":
        logger.info(RuleFormatter.format_rules(rule_manager.list_rules()))
        return

    importer = StatementImporter(JsonTransactionStore(store_file), rule_manager)

    if args.command == "import":
        source = Source(args.source) if args.source else None
        _run_import(importer, args.statement_file, source)
    elif args.command == "suggest":
        _run_suggest(importer, args.apply)


if __name__ == "__main__":
    main()
