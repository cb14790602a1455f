"""
ledger.py — Inventory Ledger

The ledger is the only component allowed to change `products.stock`.

Each line of a reservation is a single conditional UPDATE
(`stock = stock - q WHERE id = p AND stock >= q`) committed on its own, so a
check-and-decrement can never interleave with another order's decrement of the
same product and stock can never drop below zero. Orders touching different
products do not block each other.
"""

import logging
from typing import Iterable, List, NamedTuple, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from .db import ProductRecord

log = logging.getLogger(__name__)


class StockLine(NamedTuple):
    product_id: str
    quantity: int


class ReservationError(Exception):
    """
    Raised when a reservation or release could not be fully applied.

    Attributes:
        applied (List[StockLine]): Lines that were applied before the failure.
        failed (StockLine | None): The line that failed (reserve only).
        insufficient (bool): True when the failing line lost the race for stock.
        unreleased (List[StockLine]): Lines that could not be released (release only).
    """

    def __init__(self, message, applied=None, failed=None, insufficient=False, unreleased=None):
        super().__init__(message)
        self.applied: List[StockLine] = list(applied or [])
        self.failed: Optional[StockLine] = failed
        self.insufficient = insufficient
        self.unreleased: List[StockLine] = list(unreleased or [])


class InventoryLedger:
    """Atomic per-product stock reservation and release."""

    def __init__(self, engine):
        self._engine = engine

    def reserve(self, items: Iterable[StockLine]) -> None:
        """
        Decrements stock for every line, in order.

        Args:
            items (Iterable[StockLine]): Product ids and quantities to reserve.

        Raises:
            ReservationError: If a line cannot be decremented. `applied` lists
                the lines already taken out of stock, which the caller must
                release.
        """
        applied: List[StockLine] = []
        for line in items:
            try:
                with self._engine.begin() as conn:
                    result = conn.execute(
                        update(ProductRecord)
                        .where(ProductRecord.id == line.product_id)
                        .where(ProductRecord.stock >= line.quantity)
                        .values(stock=ProductRecord.stock - line.quantity)
                    )
                    decremented = result.rowcount == 1
            except SQLAlchemyError as e:
                log.error(f"[Ledger] Reservation of {line.quantity}x {line.product_id} failed: {e}")
                raise ReservationError(
                    f"Could not reserve {line.product_id}: {e}", applied=applied, failed=line
                ) from e

            if not decremented:
                log.warning(f"[Ledger] Stock for {line.product_id} no longer covers {line.quantity} units.")
                raise ReservationError(
                    f"Stock for {line.product_id} no longer covers {line.quantity} units",
                    applied=applied, failed=line, insufficient=self._exists(line.product_id),
                )
            applied.append(line)
            log.info(f"[Ledger] Reserved {line.quantity}x {line.product_id}.")

    def release(self, items: Iterable[StockLine]) -> None:
        """
        Adds quantities back to stock. Every line is attempted even if an
        earlier one fails.

        Raises:
            ReservationError: Listing the lines that could not be released.
        """
        unreleased: List[StockLine] = []
        for line in items:
            try:
                with self._engine.begin() as conn:
                    result = conn.execute(
                        update(ProductRecord)
                        .where(ProductRecord.id == line.product_id)
                        .values(stock=ProductRecord.stock + line.quantity)
                    )
                    if result.rowcount != 1:
                        raise LookupError(f"product {line.product_id} vanished")
                log.info(f"[Ledger] Released {line.quantity}x {line.product_id}.")
            except (SQLAlchemyError, LookupError) as e:
                log.error(f"[Ledger] Release of {line.quantity}x {line.product_id} failed: {e}")
                unreleased.append(line)

        if unreleased:
            raise ReservationError(
                f"Could not release {len(unreleased)} line(s)", unreleased=unreleased
            )

    def stock_of(self, product_id: str) -> Optional[int]:
        with self._engine.connect() as conn:
            return conn.execute(
                select(ProductRecord.stock).where(ProductRecord.id == product_id)
            ).scalar_one_or_none()

    def _exists(self, product_id: str) -> bool:
        try:
            return self.stock_of(product_id) is not None
        except SQLAlchemyError:
            return False
