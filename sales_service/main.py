"""
main.py — FastAPI Entry Point for the Sales Service

This module provides the REST API interface for submitting sales. It wires the
fulfillment workflow to its collaborators and translates workflow failures
into HTTP responses.

Responsibilities:
    • Accept new sales via HTTP API and run the fulfillment workflow
    • Map tagged workflow errors to client (4xx) or server (5xx) responses
    • Emit duration and outcome metrics for every sale request
    • Provide system health information
"""

import time
from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.background import BackgroundTask
from starlette.concurrency import run_in_threadpool

from .catalog import CatalogRepository
from .clients import ArtifactStoreClient, NotifierClient
from .db import create_db_engine, init_db, make_session_factory
from .errors import FulfillmentError, InvalidRequest
from .ledger import InventoryLedger
from .logging_config import get_logger, setup_logging
from .metrics import MetricsClient
from .models import FulfillmentRequest
from .renderer import DocumentRenderer
from .sale_store import SaleRecordStore
from .workflow import FulfillmentOrchestrator

SALES_ENDPOINT = "/v1/sales"

# Initialization
setup_logging()
log = get_logger(__name__)


@lru_cache(maxsize=None)
def get_engine():
    return create_db_engine()


@lru_cache(maxsize=None)
def get_orchestrator() -> FulfillmentOrchestrator:
    """
    Builds the fulfillment workflow with its production collaborators.

    The instance is created once and shared by all requests; tests replace it
    through `app.dependency_overrides`.
    """
    engine = get_engine()
    session_factory = make_session_factory(engine)
    return FulfillmentOrchestrator(
        catalog=CatalogRepository(session_factory),
        ledger=InventoryLedger(engine),
        renderer=DocumentRenderer(),
        artifact_store=ArtifactStoreClient(),
        sale_store=SaleRecordStore(session_factory),
        notifier=NotifierClient(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("Sales service starting...")
    init_db(get_engine())
    yield
    log.info("Sales service stopped.")


app = FastAPI(title="Sales Fulfillment Service", lifespan=lifespan)
app.state.metrics_client = MetricsClient()


def emit_request_metrics(metrics_client, duration_ms, status_code):
    try:
        metrics_client.record_request(SALES_ENDPOINT, duration_ms, status_code)
    except Exception as e:
        log.error(f"Metric emission failed: {e}")


# Metrics: duration and coarse outcome of every sale request
@app.middleware("http")
async def record_metrics(request: Request, call_next):
    if request.url.path != SALES_ENDPOINT:
        return await call_next(request)

    metrics_client = request.app.state.metrics_client
    start = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        await run_in_threadpool(emit_request_metrics, metrics_client, (time.perf_counter() - start) * 1000, 500)
        raise

    # Pushed after the response has been sent
    response.background = BackgroundTask(
        emit_request_metrics, metrics_client, (time.perf_counter() - start) * 1000, response.status_code
    )
    return response


@app.exception_handler(FulfillmentError)
async def fulfillment_error_handler(request: Request, exc: FulfillmentError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    log.warning(f"Rejected malformed sale request: {details}")
    error = InvalidRequest(f"Missing or invalid data: {details}")
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    log.critical(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error.", "kind": "internal_error", "classification": "server",
                 "compensation": None},
    )


# API Endpoint: submit a sale
@app.post(SALES_ENDPOINT, status_code=201)
def submit_sale(
        sale: FulfillmentRequest,
        orchestrator: FulfillmentOrchestrator = Depends(get_orchestrator)
):
    """
    Receives a new sale and runs the fulfillment workflow to completion.

    The call blocks until the sale is persisted (or has failed and been
    compensated). Prices and the total are taken from the catalog, never
    from the request.

    Args:
        sale (FulfillmentRequest): Validated sale payload.
        orchestrator (FulfillmentOrchestrator): The workflow to run.

    Returns:
        dict: JSON response containing:
            - status (str): Always "completed".
            - documentLocator (str): Where the proof of sale can be downloaded.
            - saleId (str): Identifier of the new sale.
            - folio (str): Human-readable sale code.
            - total (str): Computed sale total.

    Raises:
        FulfillmentError: Translated to a 4xx/5xx response by the error handler.
    """
    log.info(f"[Customer: {sale.customerId}] New sale received with {len(sale.items)} item(s).")
    result = orchestrator.fulfill(sale)
    return {
        "status": "completed",
        "documentLocator": result.document_locator,
        "saleId": result.sale_id,
        "folio": result.folio,
        "total": str(result.total),
    }


# Health Check Endpoint
@app.get("/health")
def health_check():
    """
    Simple health check endpoint.

    Can be used by monitoring systems or container orchestrators
    (e.g., Docker, Kubernetes) to verify that the service is running.

    Returns:
        dict: A basic JSON object indicating service availability.
    """
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
