"""Tests for the sale record store and catalog lookups."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from sales_service.catalog import CatalogRepository
from sales_service.errors import DuplicateFolio
from sales_service.models import CustomerSnapshot, LineItem, ProductSnapshot, Sale, SaleStatus


def make_sale(sale_id, folio, customer="C1"):
    return Sale(
        id=sale_id,
        folio=folio,
        customer_id=customer,
        customer=CustomerSnapshot(name="Ana Torres", email="ana@example.com"),
        items=[
            LineItem(product_id="P1", snapshot=ProductSnapshot(name="Lamp", price=Decimal("100")), quantity=2),
            LineItem(product_id="P2", snapshot=ProductSnapshot(name="Bulb", price=Decimal("2.50")), quantity=4),
        ],
        document_url=f"http://store/{sale_id}.docx",
        payment_method="card",
        delivery_address="Calle 5 #10",
        created_at=datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
    )


def test_create_and_read_back(sale_store, customer, add_product):
    add_product("P1", 100, 5)
    add_product("P2", "2.50", 5)

    sale_store.create(make_sale("s1", "SALE-000001"))

    stored = sale_store.get("s1")
    assert stored.folio == "SALE-000001"
    assert stored.status == SaleStatus.COMPLETED
    assert stored.total == Decimal("210")
    assert [(i.snapshot.name, i.quantity, i.subtotal) for i in stored.items] == [
        ("Lamp", 2, Decimal("200")),
        ("Bulb", 4, Decimal("10")),
    ]
    assert sale_store.get_by_folio("SALE-000001").id == "s1"
    assert sale_store.count() == 1


def test_folio_is_unique(sale_store, customer, add_product):
    add_product("P1", 100, 5)
    add_product("P2", "2.50", 5)
    sale_store.create(make_sale("s1", "SALE-000001"))

    with pytest.raises(DuplicateFolio):
        sale_store.create(make_sale("s2", "SALE-000001"))

    assert sale_store.get("s2") is None
    assert sale_store.count() == 1


def test_missing_sale(sale_store):
    assert sale_store.get("nope") is None
    assert sale_store.get_by_folio("SALE-NOPE00") is None


def test_catalog_lookups(session_factory, customer, add_product):
    add_product("P1", "19.90", 7, name="Lamp")
    catalog = CatalogRepository(session_factory)

    product = catalog.get_product("P1")
    assert (product.name, product.price, product.stock) == ("Lamp", Decimal("19.90"), 7)
    assert catalog.get_customer("C1").tax_id is None
    assert catalog.get_customer("C2") is None
    assert catalog.get_product("P9") is None


def test_customer_snapshot_substitutes_generic_tax_id(session_factory, customer):
    snapshot = CustomerSnapshot.of(CatalogRepository(session_factory).get_customer("C1"))
    assert snapshot.tax_id == "GENERIC"
    assert snapshot.address == "Av. Reforma 1, CDMX"
