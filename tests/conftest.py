"""Test fixtures for the sales service tests."""

import os

os.environ.setdefault("LOG_FILE", "")

from decimal import Decimal
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from mock_services import mock_artifact_store
from sales_service.catalog import CatalogRepository
from sales_service.clients import ArtifactStoreClient, NotifierClient
from sales_service.db import CustomerRecord, ProductRecord, create_db_engine, init_db, make_session_factory
from sales_service.ledger import InventoryLedger
from sales_service.renderer import DocumentRenderer
from sales_service.sale_store import SaleRecordStore
from sales_service.workflow import FulfillmentOrchestrator


@pytest.fixture
def engine(tmp_path):
    """A fresh file-backed SQLite database with the schema created."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'sales.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def add_product(session_factory):
    """Factory inserting a product into the catalog."""
    def _add(product_id, price, stock, name=None, category="General"):
        with session_factory.begin() as session:
            session.add(ProductRecord(
                id=product_id,
                name=name or f"Product {product_id}",
                description=f"Description of {product_id}",
                price=Decimal(str(price)),
                category=category,
                stock=stock,
            ))
        return product_id
    return _add


@pytest.fixture
def customer(session_factory):
    """Customer C1 without a tax id."""
    with session_factory.begin() as session:
        session.add(CustomerRecord(
            id="C1",
            name="Ana Torres",
            email="ana@example.com",
            phone="+52 55 1234 5678",
            address="Av. Reforma 1, CDMX",
        ))
    return "C1"


@pytest.fixture
def ledger(engine):
    return InventoryLedger(engine)


@pytest.fixture
def sale_store(session_factory):
    return SaleRecordStore(session_factory)


@pytest.fixture
def artifact_objects():
    """The in-memory content of the mock artifact store, emptied per test."""
    mock_artifact_store.objects.clear()
    yield mock_artifact_store.objects
    mock_artifact_store.objects.clear()


@pytest.fixture
def artifact_store(artifact_objects):
    """Artifact store client talking to the mock store through its ASGI app."""
    return ArtifactStoreClient(bucket="sales-receipts", http_client=TestClient(mock_artifact_store.app))


@pytest.fixture
def notifier():
    return Mock(spec=NotifierClient)


@pytest.fixture
def make_orchestrator(session_factory, ledger, sale_store, artifact_store, notifier):
    """Builds an orchestrator, allowing single collaborators to be replaced."""
    def _make(**overrides):
        collaborators = dict(
            catalog=CatalogRepository(session_factory),
            ledger=ledger,
            renderer=DocumentRenderer(),
            artifact_store=artifact_store,
            sale_store=sale_store,
            notifier=notifier,
        )
        collaborators.update(overrides)
        return FulfillmentOrchestrator(**collaborators)
    return _make


@pytest.fixture
def orchestrator(make_orchestrator):
    return make_orchestrator()
