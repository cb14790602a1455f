"""
sale_store.py — Sale Record Store

Writes the final, immutable sale together with its line snapshots in a single
transaction. Sales are never updated after creation.
"""

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from .db import SaleItemRecord, SaleRecord
from .errors import DuplicateFolio
from .models import CustomerSnapshot, LineItem, ProductSnapshot, Sale, SaleStatus

log = logging.getLogger(__name__)


def _to_record(sale: Sale) -> SaleRecord:
    record = SaleRecord(
        id=sale.id,
        folio=sale.folio,
        customer_id=sale.customer_id,
        customer_snapshot=sale.customer.model_dump(mode="json"),
        total=sale.total,
        document_url=sale.document_url,
        status=sale.status.value,
        payment_method=sale.payment_method,
        delivery_address=sale.delivery_address,
        created_at=sale.created_at,
    )
    record.items = [
        SaleItemRecord(
            line_number=number,
            product_id=item.product_id,
            name=item.snapshot.name,
            description=item.snapshot.description,
            price=item.snapshot.price,
            category=item.snapshot.category,
            quantity=item.quantity,
        )
        for number, item in enumerate(sale.items, start=1)
    ]
    return record


def _from_record(record: SaleRecord) -> Sale:
    return Sale(
        id=record.id,
        folio=record.folio,
        customer_id=record.customer_id,
        customer=CustomerSnapshot(**record.customer_snapshot),
        items=[
            LineItem(
                product_id=item.product_id,
                snapshot=ProductSnapshot(
                    name=item.name, description=item.description, price=item.price, category=item.category
                ),
                quantity=item.quantity,
            )
            for item in record.items
        ],
        document_url=record.document_url,
        status=SaleStatus(record.status),
        payment_method=record.payment_method,
        delivery_address=record.delivery_address,
        created_at=record.created_at,
    )


class SaleRecordStore:
    def __init__(self, session_factory):
        self._session_factory = session_factory

    def create(self, sale: Sale) -> None:
        """
        Persists a new sale.

        Raises:
            DuplicateFolio: If another sale already holds the folio.
            sqlalchemy.exc.SQLAlchemyError: For any other database failure.
        """
        with self._session_factory() as session:
            try:
                with session.begin():
                    session.add(_to_record(sale))
            except IntegrityError:
                if self._folio_taken(session, sale.folio):
                    log.error(f"[SaleStore] Folio {sale.folio} already exists.")
                    raise DuplicateFolio(sale.folio)
                raise
        log.info(f"[SaleStore] Sale {sale.id} stored with folio {sale.folio}.")

    def get(self, sale_id: str) -> Optional[Sale]:
        with self._session_factory() as session:
            record = session.get(SaleRecord, sale_id)
            return _from_record(record) if record else None

    def get_by_folio(self, folio: str) -> Optional[Sale]:
        with self._session_factory() as session:
            record = session.scalars(select(SaleRecord).where(SaleRecord.folio == folio)).first()
            return _from_record(record) if record else None

    def count(self) -> int:
        with self._session_factory() as session:
            return session.scalar(select(func.count()).select_from(SaleRecord))

    @staticmethod
    def _folio_taken(session, folio: str) -> bool:
        return session.scalar(select(SaleRecord.id).where(SaleRecord.folio == folio)) is not None
