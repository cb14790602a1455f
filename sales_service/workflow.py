"""
workflow.py — Core Orchestration Logic for Sale Fulfillment

This module contains the workflow that turns a requested basket into a
completed sale. It coordinates the catalog, the inventory ledger, the document
renderer, the artifact store, the sale record store and the notifier in a
fixed sequence.

Workflow Overview:
1. Validate the request shape
2. Resolve the customer
3. Resolve and price every product, checking stock (read-only)
4. Reserve inventory (first side effect)
5. Assign the folio
6. Render the proof of sale
7. Upload the document to the artifact store
8. Persist the sale record
9. Notify the customer (best effort)
Failures from step 4 onward unwind the compensation log (Saga Pattern).
"""

import itertools
import logging
import os
import threading
import time
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Callable, List, Mapping, Tuple, Union

from pydantic import ValidationError

from .errors import (
    CompensationReport,
    DuplicateFolio,
    FulfillmentError,
    InsufficientStock,
    InvalidRequest,
    NotFound,
    NotificationFailure,
    PartialReservationFailure,
    PersistenceFailure,
    RenderFailure,
    StorageFailure,
)
from .ledger import ReservationError, StockLine
from .models import (
    CustomerSnapshot,
    FulfillmentRequest,
    LineItem,
    ProductSnapshot,
    Sale,
    SaleResult,
    SaleSnapshot,
    SaleStatus,
)
from .renderer import format_money

log = logging.getLogger(__name__)

FOLIO_PREFIX = "SALE-"


def make_folio(sale_id: str) -> str:
    return f"{FOLIO_PREFIX}{sale_id[-6:].upper()}"


class SaleIdFactory:
    """
    Generates 24-hex-character sale ids: 4 bytes of epoch seconds, 5 random
    bytes fixed per factory, and a 3-byte counter. The folio is taken from the
    counter, so a factory issues 16**6 sales before any folio repeats.
    """

    def __init__(self):
        self._process_part = os.urandom(5).hex()
        self._counter = itertools.count(int.from_bytes(os.urandom(3), "big"))
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            count = next(self._counter) % 0x1000000
        return f"{int(time.time()) & 0xFFFFFFFF:08x}{self._process_part}{count:06x}"


new_sale_id = SaleIdFactory()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CompensationLog:
    """
    Ordered list of undo actions for side effects already applied.

    Actions are unwound in reverse order. A failing action is logged and
    recorded; the remaining actions still run.
    """

    def __init__(self, log_prefix: str):
        self.log_prefix = log_prefix
        self._actions: List[Tuple[str, Callable[[], None]]] = []

    def __len__(self):
        return len(self._actions)

    def record(self, description: str, action: Callable[[], None]):
        self._actions.append((description, action))

    def unwind(self) -> CompensationReport:
        report = CompensationReport(attempted=bool(self._actions))
        while self._actions:
            description, action = self._actions.pop()
            log.info(f"{self.log_prefix} Compensation: {description}...")
            try:
                action()
                log.info(f"{self.log_prefix} Compensation '{description}' succeeded.")
            except Exception as e:
                log.critical(
                    f"{self.log_prefix} COMPENSATION FAILED: {description}: {e}. MANUAL ACTION REQUIRED!"
                )
                report.succeeded = False
                report.failures.append(f"{description}: {e}")
        return report


class FulfillmentOrchestrator:
    """
    Runs the fulfillment workflow for one request at a time per call; the
    instance holds no per-request state and may be shared across threads.

    Args:
        catalog: Read-only customer/product lookups (`CatalogRepository`).
        ledger: Stock reservation and release (`InventoryLedger`).
        renderer: Proof-of-sale renderer (`DocumentRenderer`).
        artifact_store: Document storage (`ArtifactStoreClient`).
        sale_store: Sale persistence (`SaleRecordStore`).
        notifier: Customer notifications (`NotifierClient`).
        id_factory: Generates sale ids, defaults to `new_sale_id`.
        clock: Returns the creation timestamp, defaults to UTC now.
    """

    def __init__(self, catalog, ledger, renderer, artifact_store, sale_store, notifier,
                 id_factory=new_sale_id, clock=utc_now):
        self.catalog = catalog
        self.ledger = ledger
        self.renderer = renderer
        self.artifact_store = artifact_store
        self.sale_store = sale_store
        self.notifier = notifier
        self.id_factory = id_factory
        self.clock = clock

    def fulfill(self, request: Union[FulfillmentRequest, Mapping]) -> SaleResult:
        """
        Executes the complete fulfillment workflow for a single sale.

        Args:
            request (FulfillmentRequest | Mapping): The sale to fulfill. Raw
                mappings are validated first.

        Returns:
            SaleResult: Sale id, folio, document locator and computed total.

        Raises:
            InvalidRequest: Malformed request (no side effects).
            NotFound: Unknown customer or product (no side effects).
            InsufficientStock: A product cannot cover the requested quantity.
            PartialReservationFailure: Reservation broke off partway.
            RenderFailure / StorageFailure / PersistenceFailure / DuplicateFolio:
                Later steps failed. Every error raised after reservation began
                carries the `CompensationReport` of the rollback.

        Notes:
            A failing notification never fails the sale; it is logged and
            reported through `SaleResult.notified`.
        """
        # --- 1. Request shape ---
        request = self._validate(request)

        sale_id = self.id_factory()
        log_prefix = f"[Sale: {sale_id}]"
        log.info(f"{log_prefix} Starting fulfillment for customer {request.customerId}.")

        # --- 2. Customer ---
        log.info(f"{log_prefix} Step 2: Resolving customer...")
        customer = self.catalog.get_customer(request.customerId)
        if customer is None:
            log.warning(f"{log_prefix} Cancelled: customer {request.customerId} not found.")
            raise NotFound("customer", request.customerId)

        # --- 3. Products, prices and availability (read-only) ---
        log.info(f"{log_prefix} Step 3: Resolving {len(request.items)} item(s)...")
        line_items = self._price_basket(request, log_prefix)

        compensation = CompensationLog(log_prefix)
        try:
            # --- 4. Inventory reservation ---
            log.info(f"{log_prefix} Step 4: Reserving inventory...")
            self._reserve(line_items, compensation, log_prefix)

            # --- 5. Folio ---
            folio = make_folio(sale_id)
            snapshot = SaleSnapshot(
                id=sale_id,
                folio=folio,
                customer=CustomerSnapshot.of(customer),
                items=line_items,
                payment_method=request.paymentMethod,
                delivery_address=request.deliveryAddress,
                created_at=self.clock(),
            )
            log.info(f"{log_prefix} Step 5: Folio {folio} assigned. Total {format_money(snapshot.total)}.")

            # --- 6. Document ---
            log.info(f"{log_prefix} Step 6: Rendering proof of sale...")
            try:
                document = self.renderer.render(snapshot)
            except Exception as e:
                log.error(f"{log_prefix} Rendering failed: {e}", exc_info=True)
                raise RenderFailure(f"Could not render the proof of sale: {e}") from e

            # --- 7. Upload ---
            log.info(f"{log_prefix} Step 7: Uploading document ({len(document)} bytes)...")
            key = f"receipts/receipt_{sale_id}.{self.renderer.extension}"
            try:
                locator = self.artifact_store.put(key, document, self.renderer.content_type)
            except Exception as e:
                log.error(f"{log_prefix} Upload failed: {e}")
                raise StorageFailure(f"Could not store the proof of sale: {e}") from e
            compensation.record(f"delete artifact {key}", lambda: self.artifact_store.delete(key))

            # --- 8. Persistence ---
            log.info(f"{log_prefix} Step 8: Persisting sale...")
            sale = Sale(
                **dict(snapshot),
                customer_id=customer.id,
                document_url=locator,
                status=SaleStatus.COMPLETED,
            )
            try:
                self.sale_store.create(sale)
            except DuplicateFolio:
                raise
            except Exception as e:
                log.error(f"{log_prefix} Persistence failed: {e}")
                raise PersistenceFailure(f"Could not persist the sale: {e}") from e

        except FulfillmentError as e:
            if len(compensation):
                log.error(f"{log_prefix} {e.kind}: {e.message}. Starting compensation.")
            e.compensation = compensation.unwind()
            raise

        except Exception as e:
            log.critical(f"{log_prefix} Unknown error in workflow: {e}", exc_info=True)
            if len(compensation):
                log.info(f"{log_prefix} Attempting emergency compensation...")
                compensation.unwind()
            raise

        log.info(f"{log_prefix} Sale {folio} completed. Document: {locator}")

        # --- 9. Notification (best effort) ---
        notified = self._notify(customer, sale, log_prefix)

        return SaleResult(
            sale_id=sale_id,
            folio=folio,
            document_locator=locator,
            total=sale.total,
            notified=notified,
        )

    @staticmethod
    def _validate(request) -> FulfillmentRequest:
        if isinstance(request, FulfillmentRequest):
            return request
        try:
            return FulfillmentRequest.model_validate(request)
        except ValidationError as e:
            details = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}" for err in e.errors()
            )
            log.warning(f"Rejected malformed sale request: {details}")
            raise InvalidRequest(f"Missing or invalid data: {details}") from e

    def _price_basket(self, request: FulfillmentRequest, log_prefix: str) -> List[LineItem]:
        line_items = []
        requested = OrderedDict()
        products = {}
        for item in request.items:
            product = products.get(item.productId) or self.catalog.get_product(item.productId)
            if product is None:
                log.warning(f"{log_prefix} Cancelled: product {item.productId} not found.")
                raise NotFound("product", item.productId)
            products[product.id] = product
            requested[product.id] = requested.get(product.id, 0) + item.quantity

            if product.stock < requested[product.id]:
                log.warning(
                    f"{log_prefix} Cancelled: {product.name} has {product.stock} left, "
                    f"{requested[product.id]} requested."
                )
                raise InsufficientStock(product.id, product.name, requested[product.id], product.stock)

            line_items.append(LineItem(
                product_id=product.id,
                snapshot=ProductSnapshot(
                    name=product.name,
                    description=product.description,
                    price=product.price,
                    category=product.category,
                ),
                quantity=item.quantity,
            ))
        return line_items

    def _reserve(self, line_items: List[LineItem], compensation: CompensationLog, log_prefix: str):
        lines = [StockLine(item.product_id, item.quantity) for item in line_items]
        try:
            self.ledger.reserve(lines)
        except ReservationError as e:
            applied = e.applied
            if applied:
                compensation.record(
                    f"release {len(applied)} partially reserved line(s)",
                    lambda: self.ledger.release(applied),
                )
            failed = e.failed.product_id if e.failed else None
            if e.insufficient:
                name = next(i.snapshot.name for i in line_items if i.product_id == failed)
                log.warning(f"{log_prefix} Stock for {name} was taken by a concurrent sale.")
                raise InsufficientStock(failed, name, e.failed.quantity) from e
            raise PartialReservationFailure(
                f"Inventory reservation failed at product {failed}", product_id=failed
            ) from e
        compensation.record(f"release {len(lines)} reserved line(s)", lambda: self.ledger.release(lines))
        log.info(f"{log_prefix} Inventory reserved.")

    def _notify(self, customer, sale: Sale, log_prefix: str) -> bool:
        subject = f"New Purchase Confirmed - {sale.folio}"
        body = (
            f"Hello {customer.name},\n\n"
            f"Download your proof of sale:\n{sale.document_url}\n\n"
            f"Total: {format_money(sale.total)}"
        )
        log.info(f"{log_prefix} Step 9: Notifying {customer.email}...")
        try:
            self.notifier.send(customer.email, subject, body)
            return True
        except Exception as e:
            failure = NotificationFailure(f"Could not notify {customer.email}: {e}")
            log.error(f"{log_prefix} {failure.kind}: {failure.message}. Sale remains completed.")
            return False
