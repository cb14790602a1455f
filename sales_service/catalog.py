"""Read-only access to customers and products."""

from typing import Optional

from .db import CustomerRecord, ProductRecord
from .models import Customer, Product


class CatalogRepository:
    """
    Looks up catalog entities without mutating them.

    Returned models are detached, immutable copies; stock values are a
    point-in-time read and are only authoritative inside the inventory ledger.
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        with self._session_factory() as session:
            record = session.get(CustomerRecord, customer_id)
            return Customer.model_validate(record) if record else None

    def get_product(self, product_id: str) -> Optional[Product]:
        with self._session_factory() as session:
            record = session.get(ProductRecord, product_id)
            return Product.model_validate(record) if record else None
