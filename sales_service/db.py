"""
db.py — Persistence Schema and Engine Factory

Tables:
    - customers / products: the catalog the workflow reads (products.stock is
      owned by the inventory ledger).
    - sales / sale_items: immutable sale records with their line snapshots.
"""

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

from . import config

Base = declarative_base()


class CustomerRecord(Base):
    __tablename__ = "customers"

    id = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=False)
    email = Column(String(320), nullable=False)
    phone = Column(String(50), nullable=True)
    tax_id = Column(String(32), nullable=True)
    address = Column(Text, nullable=True)


class ProductRecord(Base):
    __tablename__ = "products"

    id = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    category = Column(String(100), nullable=True)
    stock = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
    )


class SaleRecord(Base):
    __tablename__ = "sales"

    id = Column(String(32), primary_key=True)
    folio = Column(String(32), nullable=False, unique=True)
    customer_id = Column(String(64), ForeignKey("customers.id"), nullable=False, index=True)
    customer_snapshot = Column(JSON, nullable=False)
    total = Column(Numeric(14, 2), nullable=False)
    document_url = Column(String(2048), nullable=False)
    status = Column(String(16), nullable=False)
    payment_method = Column(String(50), nullable=True)
    delivery_address = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    items = relationship(
        "SaleItemRecord",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleItemRecord.line_number",
    )


class SaleItemRecord(Base):
    __tablename__ = "sale_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sale_id = Column(String(32), ForeignKey("sales.id"), nullable=False)
    line_number = Column(Integer, nullable=False)
    product_id = Column(String(64), ForeignKey("products.id"), nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    category = Column(String(100), nullable=True)
    quantity = Column(Integer, nullable=False)

    sale = relationship("SaleRecord", back_populates="items")

    __table_args__ = (
        Index("ix_sale_items_sale_line", "sale_id", "line_number", unique=True),
    )


def create_db_engine(url=None, timeout=None):
    """
    Creates the SQLAlchemy engine for the given database URL.

    SQLite connections get a lock timeout and may be shared across the
    server's worker threads; other backends use the timeout as pool timeout.

    Args:
        url (str, optional): Database URL, defaults to `DATABASE_URL`.
        timeout (float, optional): Seconds to wait for a lock or connection.

    Returns:
        sqlalchemy.engine.Engine: The configured engine.
    """
    url = url or config.DATABASE_URL
    timeout = timeout or config.DB_TIMEOUT_SECONDS
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False, "timeout": timeout})
    return create_engine(url, pool_pre_ping=True, pool_timeout=timeout)


def init_db(engine):
    Base.metadata.create_all(engine)


def make_session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)
