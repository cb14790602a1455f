"""
errors.py — Failure Taxonomy for the Fulfillment Workflow

Every failure the workflow can surface is one of the classes below. Each
carries a machine-readable `kind`, the HTTP status it maps to, and whether the
caller or the server caused it. Errors raised after side effects were applied
also carry a `CompensationReport` describing the rollback attempt.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class CompensationReport:
    """
    Outcome of unwinding the compensation log.

    Attributes:
        attempted (bool): Whether any undo action was executed.
        succeeded (bool): True when every undo action completed.
        failures (List[str]): Human-readable description of each failed undo action.
    """
    attempted: bool = False
    succeeded: bool = True
    failures: List[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {"attempted": self.attempted, "succeeded": self.succeeded, "failures": list(self.failures)}


class FulfillmentError(Exception):
    """Base class for all tagged fulfillment failures."""

    kind = "internal_error"
    status_code = 500
    client_caused = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        self.compensation: Optional[CompensationReport] = None

    @property
    def classification(self) -> str:
        return "client" if self.client_caused else "server"

    def to_payload(self) -> dict:
        return {
            "error": self.message,
            "kind": self.kind,
            "classification": self.classification,
            "compensation": self.compensation.as_dict() if self.compensation else None,
        }


class InvalidRequest(FulfillmentError):
    kind = "invalid_request"
    status_code = 400
    client_caused = True


class NotFound(FulfillmentError):
    """A referenced customer or product does not exist."""

    kind = "not_found"
    status_code = 404
    client_caused = True

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity.capitalize()} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class InsufficientStock(FulfillmentError):
    kind = "insufficient_stock"
    status_code = 409
    client_caused = True

    def __init__(self, product_id: str, product_name: str, requested: int, available: Optional[int] = None):
        super().__init__(f"Insufficient stock for {product_name}")
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available


class PartialReservationFailure(FulfillmentError):
    kind = "partial_reservation_failure"

    def __init__(self, message: str, product_id: Optional[str] = None):
        super().__init__(message)
        self.product_id = product_id


class RenderFailure(FulfillmentError):
    kind = "render_failure"


class StorageFailure(FulfillmentError):
    kind = "storage_failure"


class PersistenceFailure(FulfillmentError):
    kind = "persistence_failure"


class DuplicateFolio(FulfillmentError):
    """Raised by the sale store when the unique folio constraint is violated."""

    kind = "duplicate_folio"

    def __init__(self, folio: str):
        super().__init__(f"Folio already exists: {folio}")
        self.folio = folio


class NotificationFailure(FulfillmentError):
    """Never surfaced to the caller; only logged after a completed sale."""

    kind = "notification_failure"
    status_code = None
