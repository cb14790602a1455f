"""
models.py — Data Models for Sale Fulfillment

This module defines the data structures used across the fulfillment workflow.
It uses Pydantic models to ensure type safety and automatic validation of
incoming data, and to keep derived values (subtotals, totals) computed rather
than supplied.

Models:
    - SaleItemRequest / FulfillmentRequest: Inbound request payload.
    - Customer / Product: Read-only catalog views.
    - CustomerSnapshot / ProductSnapshot / LineItem: Order-time copies.
    - SaleSnapshot / Sale: The sale being documented and persisted.
    - SaleResult: Outcome returned to the caller.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

GENERIC_TAX_ID = "GENERIC"


class SaleItemRequest(BaseModel):
    """
    Represents a single requested product in a sale.

    Attributes:
        productId (str): Catalog identifier of the product.
        quantity (int): Units requested. Must be greater than zero.
    """
    productId: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)


class FulfillmentRequest(BaseModel):
    """
    Represents a sale submitted for fulfillment.

    Any total sent by the client is ignored; the total is always computed
    from catalog prices.

    Attributes:
        customerId (str): Identifier of the purchasing customer.
        items (List[SaleItemRequest]): Requested products, at least one.
        paymentMethod (str): Payment method recorded on the sale.
        deliveryAddress (str): Where the sale is delivered.
    """
    customerId: str = Field(..., min_length=1)
    items: List[SaleItemRequest] = Field(..., min_length=1)
    paymentMethod: Optional[str] = None
    deliveryAddress: Optional[str] = None


class Customer(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    name: str
    email: str
    phone: Optional[str] = None
    tax_id: Optional[str] = None
    address: Optional[str] = None


class Product(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    name: str
    description: Optional[str] = None
    price: Decimal
    category: Optional[str] = None
    stock: int


class CustomerSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    email: str
    phone: Optional[str] = None
    tax_id: str = GENERIC_TAX_ID
    address: Optional[str] = None

    @classmethod
    def of(cls, customer: Customer) -> "CustomerSnapshot":
        return cls(
            name=customer.name,
            email=customer.email,
            phone=customer.phone,
            tax_id=customer.tax_id or GENERIC_TAX_ID,
            address=customer.address,
        )


class ProductSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: Optional[str] = None
    price: Decimal
    category: Optional[str] = None


class LineItem(BaseModel):
    """A product line with the catalog data frozen at order time."""
    model_config = ConfigDict(frozen=True)

    product_id: str
    snapshot: ProductSnapshot
    quantity: int = Field(..., gt=0)

    @computed_field
    @property
    def subtotal(self) -> Decimal:
        return self.snapshot.price * self.quantity


class SaleStatus(str, Enum):
    COMPLETED = "completed"
    PENDING = "pending"
    CANCELLED = "cancelled"


class SaleSnapshot(BaseModel):
    """Everything the proof-of-sale document shows."""
    model_config = ConfigDict(frozen=True)

    id: str
    folio: str
    customer: CustomerSnapshot
    items: List[LineItem] = Field(default_factory=list)
    payment_method: Optional[str] = None
    delivery_address: Optional[str] = None
    created_at: datetime

    @computed_field
    @property
    def total(self) -> Decimal:
        return sum((item.subtotal for item in self.items), Decimal("0"))


class Sale(SaleSnapshot):
    """
    The immutable sale record.

    Attributes:
        customer_id (str): Reference to the purchasing customer.
        document_url (str): Locator of the stored proof-of-sale document.
        status (SaleStatus): Lifecycle status, `completed` for fulfilled sales.
    """
    customer_id: str
    document_url: str
    status: SaleStatus = SaleStatus.COMPLETED


class SaleResult(BaseModel):
    sale_id: str
    folio: str
    document_locator: str
    total: Decimal
    notified: bool = True
