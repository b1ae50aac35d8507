"""
Data models for statement importing.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any


class Source(Enum):
    """Financial institution a statement export comes from."""

    AMEX = "amex"
    SCOTIA_VISA = "scotia_visa"
    SCOTIA_CHEQUING = "scotia_chequing"
    PC = "pc"
    MANUAL = "manual"

    @property
    def display_name(self) -> str:
        return _SOURCE_DISPLAY_NAMES[self]


_SOURCE_DISPLAY_NAMES = {
    Source.AMEX: "Amex",
    Source.SCOTIA_VISA: "Scotia Visa",
    Source.SCOTIA_CHEQUING: "Scotia Chequing",
    Source.PC: "PC Financial",
    Source.MANUAL: "Manual Entry",
}


class TransactionType(Enum):
    """Direction of a parsed statement row."""

    DEBIT = "debit"
    CREDIT = "credit"


class MatchType(Enum):
    """How a suggestion rule keyword is compared to a description."""

    CONTAINS = "CONTAINS"
    STARTS_WITH = "STARTS_WITH"
    ENDS_WITH = "ENDS_WITH"
    EXACT_MATCH = "EXACT_MATCH"
    REGEX = "REGEX"


class CategoryType(Enum):
    """Top-level budget bucket."""

    FIXED = "FIXED"
    FUN = "FUN"
    FUTURE_YOU = "FUTURE_YOU"


@dataclass
class ParsedTransaction:
    """A normalized statement row, before it is persisted."""

    date: date
    description: str
    amount: float
    type: TransactionType
    source: Source
    sub_description: str | None = None

    def __post_init__(self):
        if self.amount < 0:
            raise ValueError(
                f"ParsedTransaction amount must be non-negative, got {self.amount}",
            )

    @property
    def signed_amount(self) -> float:
        """Amount as stored: negative for debits, positive for credits."""
        if self.type == TransactionType.DEBIT:
            return -self.amount
        return self.amount


@dataclass
class Transaction:
    """A persisted transaction."""

    id: str
    description: str
    amount: float
    date: date
    source: Source
    is_income: bool
    created_at: datetime
    updated_at: datetime
    category_id: str | None = None
    major_category_type: CategoryType | None = None
    is_archived: bool = False
    notes: str | None = None

    @property
    def is_uncategorized(self) -> bool:
        """Whether this row should be offered for categorization."""
        return (
            self.major_category_type is None
            and not self.is_archived
            and not self.is_income
            and self.source != Source.MANUAL
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "amount": self.amount,
            "date": self.date.isoformat(),
            "source": self.source.value,
            "category_id": self.category_id,
            "major_category_type": (
                self.major_category_type.value if self.major_category_type else None
            ),
            "is_income": self.is_income,
            "is_archived": self.is_archived,
            "notes": self.notes,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Transaction":
        major = data.get("major_category_type")
        return cls(
            id=data["id"],
            description=data["description"],
            amount=float(data["amount"]),
            date=date.fromisoformat(data["date"]),
            source=Source(data["source"]),
            is_income=bool(data["is_income"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
            category_id=data.get("category_id"),
            major_category_type=CategoryType(major) if major else None,
            is_archived=bool(data.get("is_archived", False)),
            notes=data.get("notes"),
        )


@dataclass
class SmartSuggestionRule:
    """A keyword rule that proposes a category for a description."""

    id: str
    name: str
    keyword: str
    match_type: MatchType
    category_id: str
    major_category_type: CategoryType
    case_sensitive: bool = False
    priority: int = 0
    is_active: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "keyword": self.keyword,
            "match_type": self.match_type.value,
            "case_sensitive": self.case_sensitive,
            "category_id": self.category_id,
            "major_category_type": self.major_category_type.value,
            "priority": self.priority,
            "is_active": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SmartSuggestionRule":
        return cls(
            id=str(data["id"]),
            name=data.get("name", data["keyword"]),
            keyword=data["keyword"],
            match_type=MatchType(data.get("match_type", MatchType.CONTAINS.value)),
            category_id=data["category_id"],
            major_category_type=CategoryType(data["major_category_type"]),
            case_sensitive=bool(data.get("case_sensitive", False)),
            priority=int(data.get("priority", 0)),
            is_active=bool(data.get("is_active", True)),
        )


@dataclass
class CategorySuggestion:
    """Category proposed for a transaction by a suggestion rule."""

    major_category_type: CategoryType
    category_id: str
    rule: SmartSuggestionRule


@dataclass
class SkippedRow:
    """A statement row that was dropped while parsing."""

    row_number: int
    reason: str


@dataclass
class ParseReport:
    """Outcome of parsing one statement file."""

    source: Source
    transactions: list[ParsedTransaction] = field(default_factory=list)
    skipped: list[SkippedRow] = field(default_factory=list)


@dataclass
class BulkInsertResult:
    """Reconciliation of one import against the stored history."""

    inserted_transactions: list[ParsedTransaction] = field(default_factory=list)
    duplicate_transactions: list[ParsedTransaction] = field(default_factory=list)
    credit_transactions: list[ParsedTransaction] = field(default_factory=list)

    @property
    def inserted(self) -> int:
        return len(self.inserted_transactions)

    @property
    def duplicates(self) -> int:
        return len(self.duplicate_transactions)

    @property
    def credits(self) -> int:
        return len(self.credit_transactions)
