"""
Persisted transaction storage.

The importer only needs two operations from a store: an exact lookup by the
(date, description, amount) key and inserting one transaction. Listing is
used to find uncategorized rows for suggestions, and updating stores the
categories picked for them.
"""

import asyncio
import json
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from pathlib import Path

from .errors import StoreError
from .models import CategoryType, Source, Transaction

logger = logging.getLogger(__name__)


def new_transaction(
    *,
    date: date,
    description: str,
    amount: float,
    source: Source,
    is_income: bool,
    notes: str | None = None,
    category_id: str | None = None,
    major_category_type: CategoryType | None = None,
) -> Transaction:
    """Create a Transaction with a fresh id and timestamps."""
    now = datetime.now(timezone.utc)
    return Transaction(
        id=str(uuid.uuid4()),
        description=description,
        amount=amount,
        date=date,
        source=source,
        is_income=is_income,
        created_at=now,
        updated_at=now,
        category_id=category_id,
        major_category_type=major_category_type,
        is_archived=False,
        notes=notes,
    )


def _key(tx_date: date, description: str, amount: float) -> tuple[date, str, float]:
    return tx_date, description, round(amount, 2)


def _index_of(transactions: list[Transaction], transaction_id: str) -> int:
    for index, transaction in enumerate(transactions):
        if transaction.id == transaction_id:
            return index
    raise StoreError(f"Transaction {transaction_id} does not exist")


class TransactionStore(ABC):
    """Abstract store of persisted transactions."""

    @abstractmethod
    async def find_by_key(
        self,
        tx_date: date,
        description: str,
        amount: float,
    ) -> Transaction | None:
        """Return the transaction with exactly this date, description and signed amount."""

    @abstractmethod
    async def insert(self, transaction: Transaction) -> Transaction:
        """
        Persist one transaction.

        Raises:
            StoreError: If the transaction could not be written
        """

    @abstractmethod
    async def update(self, transaction: Transaction) -> Transaction:
        """
        Replace the stored transaction that has the same id.

        Raises:
            StoreError: If the transaction does not exist or could not be written
        """

    @abstractmethod
    async def list_transactions(self) -> list[Transaction]:
        """Return all stored transactions."""


class InMemoryTransactionStore(TransactionStore):
    """Store keeping transactions in a list, for tests and one-off runs."""

    def __init__(self, transactions: list[Transaction] | None = None):
        self.transactions: list[Transaction] = list(transactions or [])

    async def find_by_key(
        self,
        tx_date: date,
        description: str,
        amount: float,
    ) -> Transaction | None:
        wanted = _key(tx_date, description, amount)
        for transaction in self.transactions:
            if _key(transaction.date, transaction.description, transaction.amount) == wanted:
                return transaction
        return None

    async def insert(self, transaction: Transaction) -> Transaction:
        self.transactions.append(transaction)
        return transaction

    async def update(self, transaction: Transaction) -> Transaction:
        self.transactions[_index_of(self.transactions, transaction.id)] = transaction
        return transaction

    async def list_transactions(self) -> list[Transaction]:
        return list(self.transactions)


class JsonTransactionStore(TransactionStore):
    """Store persisting transactions to a JSON file."""

    def __init__(self, store_file: Path):
        self.store_file = store_file
        self._transactions: list[Transaction] | None = None

    async def find_by_key(
        self,
        tx_date: date,
        description: str,
        amount: float,
    ) -> Transaction | None:
        wanted = _key(tx_date, description, amount)
        for transaction in await self._load():
            if _key(transaction.date, transaction.description, transaction.amount) == wanted:
                return transaction
        return None

    async def insert(self, transaction: Transaction) -> Transaction:
        transactions = await self._load()
        transactions.append(transaction)
        try:
            await asyncio.to_thread(self._write, transactions)
        except StoreError:
            transactions.remove(transaction)
            raise
        return transaction

    async def update(self, transaction: Transaction) -> Transaction:
        transactions = await self._load()
        index = _index_of(transactions, transaction.id)
        previous = transactions[index]
        transactions[index] = transaction
        try:
            await asyncio.to_thread(self._write, transactions)
        except StoreError:
            transactions[index] = previous
            raise
        return transaction

    async def list_transactions(self) -> list[Transaction]:
        return list(await self._load())

    async def _load(self) -> list[Transaction]:
        if self._transactions is None:
            self._transactions = await asyncio.to_thread(self._read)
        return self._transactions

    def _read(self) -> list[Transaction]:
        if not self.store_file.exists():
            logger.debug(
                f"Transaction store {self.store_file} does not exist, will be created on first insert",
            )
            return []

        try:
            with open(self.store_file, encoding="utf-8") as f:
                data = json.load(f)
            transactions = [
                Transaction.from_dict(entry) for entry in data.get("transactions", [])
            ]
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in transaction store {self.store_file}: {e}")
            raise StoreError(f"Invalid JSON in transaction store {self.store_file}: {e}") from e
        except (KeyError, ValueError) as e:
            raise StoreError(
                f"Malformed transaction in store {self.store_file}: {e}",
            ) from e
        except OSError as e:
            logger.error(f"Failed to load transactions from {self.store_file}: {e}")
            raise StoreError(
                f"Failed to load transactions from {self.store_file}: {e}",
            ) from e

        logger.info(f"Loaded {len(transactions)} transactions from {self.store_file}")
        return transactions

    def _write(self, transactions: list[Transaction]) -> None:
        data = {"transactions": [transaction.to_dict() for transaction in transactions]}
        try:
            self.store_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.store_file, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.error(f"Failed to save transactions to {self.store_file}: {e}")
            raise StoreError(
                f"Failed to save transactions to {self.store_file}: {e}",
            ) from e
