"""
Duplicate-aware import of parsed transactions into a store.
"""

import logging

from .errors import StoreError
from .models import BulkInsertResult, ParsedTransaction, Source, TransactionType
from .transaction_store import TransactionStore, new_transaction

logger = logging.getLogger(__name__)


class BulkImporter:
    """Inserts parsed statement rows that are not already stored."""

    def __init__(self, store: TransactionStore):
        self.store = store

    async def bulk_insert(
        self,
        parsed_transactions: list[ParsedTransaction],
        source: Source,
    ) -> BulkInsertResult:
        """
        Insert parsed transactions, skipping rows that already exist.

        Debits are processed before credits, one row at a time. A row is a
        duplicate when a stored transaction has exactly the same date,
        description and signed amount. Credits that already exist are still
        reported in ``credit_transactions`` but not inserted again. Rows the
        store fails to look up or write are dropped from the result and the
        import carries on with the next row.

        Args:
            parsed_transactions: Rows produced by StatementParser
            source: Source tag stored on the inserted transactions

        Returns:
            BulkInsertResult with the partitioned rows
        """
        result = BulkInsertResult()

        debits = [tx for tx in parsed_transactions if tx.type == TransactionType.DEBIT]
        credits = [tx for tx in parsed_transactions if tx.type == TransactionType.CREDIT]

        for tx in debits:
            exists = await self._exists(tx)
            if exists is None:
                continue
            if exists:
                result.duplicate_transactions.append(tx)
                continue
            if await self._insert(tx, source):
                result.inserted_transactions.append(tx)

        for tx in credits:
            exists = await self._exists(tx)
            if exists is None:
                continue
            if exists:
                result.credit_transactions.append(tx)
                continue
            if await self._insert(tx, source):
                result.credit_transactions.append(tx)

        logger.info(
            f"Imported {source.display_name} statement: {result.inserted} inserted, "
            f"{result.duplicates} duplicates, {result.credits} credits",
        )
        return result

    async def _exists(self, tx: ParsedTransaction) -> bool | None:
        """Look a row up by its key; None means the lookup failed."""
        try:
            existing = await self.store.find_by_key(tx.date, tx.description, tx.signed_amount)
        except (StoreError, OSError) as e:
            logger.warning(
                f"Could not look up transaction {tx.date} {tx.description!r} {tx.signed_amount}, "
                f"dropping it: {e}",
            )
            return None
        return existing is not None

    async def _insert(self, tx: ParsedTransaction, source: Source) -> bool:
        transaction = new_transaction(
            date=tx.date,
            description=tx.description,
            amount=tx.signed_amount,
            source=source,
            is_income=tx.type == TransactionType.CREDIT,
            notes=tx.sub_description or None,
        )
        try:
            await self.store.insert(transaction)
        except (StoreError, OSError) as e:
            logger.warning(
                f"Could not insert transaction {tx.date} {tx.description!r} {tx.signed_amount}: {e}",
            )
            return False
        return True
