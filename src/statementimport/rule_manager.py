"""
Smart suggestion rule management.
"""

import json
import logging
from pathlib import Path

from .errors import FileLoadingError, FileSavingError, RuleFormatError
from .models import SmartSuggestionRule
from .suggestion_matcher import sort_rules

logger = logging.getLogger(__name__)


class RuleManager:
    """Loads, edits and saves the smart suggestion rules."""

    def __init__(self, rules_file: Path):
        self.rules_file = rules_file
        self.rules: dict[str, SmartSuggestionRule] = {}

        if rules_file.exists():
            logger.info(f"Loading suggestion rules from {rules_file}")
            self.load_rules()
            logger.info(f"Loaded {len(self.rules)} suggestion rules")
        else:
            logger.debug(
                f"Rules file {rules_file} does not exist, will be created on first save",
            )

    def add_rule(self, rule: SmartSuggestionRule) -> None:
        """Add a rule, replacing any rule with the same id."""
        if rule.id in self.rules:
            logger.warning(f"Rule '{rule.id}' already exists, overwriting")
        else:
            logger.info(f"Adding rule '{rule.name}' ({rule.match_type.value} '{rule.keyword}')")
        self.rules[rule.id] = rule

        # Auto-save
        try:
            self.save_rules()
        except FileSavingError as e:
            logger.warning(
                f"Failed to auto-save rules after adding '{rule.id}': {e}. "
                f"Please save manually using save_rules().",
            )

    def remove_rule(self, rule_id: str) -> None:
        """Remove a rule."""
        if rule_id not in self.rules:
            logger.warning(f"Rule '{rule_id}' does not exist, cannot remove")
            return

        logger.info(f"Removing rule '{rule_id}'")
        del self.rules[rule_id]

        try:
            self.save_rules()
        except FileSavingError as e:
            logger.warning(
                f"Failed to auto-save rules after removing '{rule_id}': {e}. "
                f"Please save manually using save_rules().",
            )

    def get_rule(self, rule_id: str) -> SmartSuggestionRule | None:
        """Get a rule by id."""
        return self.rules.get(rule_id)

    def list_rules(self) -> list[SmartSuggestionRule]:
        """Get all rules in file order."""
        return list(self.rules.values())

    def active_rules(self) -> list[SmartSuggestionRule]:
        """Get the active rules in evaluation order."""
        return sort_rules(self.list_rules())

    def load_rules(self) -> None:
        """Load rules from the JSON file."""
        try:
            with open(self.rules_file, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in rules file {self.rules_file}: {e}")
            raise
        except OSError as e:
            logger.error(f"Failed to load rules from {self.rules_file}: {e}")
            raise FileLoadingError(
                f"Failed to load rules from {self.rules_file}: {e}",
            ) from e

        rules = {}
        for index, entry in enumerate(data.get("rules", [])):
            try:
                rule = SmartSuggestionRule.from_dict(entry)
            except (KeyError, ValueError, TypeError) as e:
                raise RuleFormatError(
                    f"Rule #{index} in {self.rules_file} is malformed: {e}",
                ) from e
            rules[rule.id] = rule

        self.rules = rules
        logger.debug(f"Loaded {len(self.rules)} rules from {self.rules_file}")

    def save_rules(self) -> None:
        """Save rules to the JSON file."""
        logger.info(f"Saving {len(self.rules)} rules to {self.rules_file}")
        data = {"rules": [rule.to_dict() for rule in self.rules.values()]}

        try:
            self.rules_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.rules_file, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            logger.info(f"Successfully saved rules to {self.rules_file}")
        except OSError as e:
            logger.error(f"Failed to save rules to {self.rules_file}: {e}")
            raise FileSavingError(
                f"Failed to save rules to {self.rules_file}: {e}",
            ) from e
