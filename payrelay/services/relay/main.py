"""Payment relay HTTP surface.

Forwards storefront order, capture and client-token requests to the payment
processor with server-held credentials, and serves the storefront files.
"""

from time import perf_counter
from uuid import uuid4

import uvicorn
from fastapi import APIRouter, BackgroundTasks, Depends, FastAPI, Request
from fastapi.responses import PlainTextResponse

from payrelay.common.config import RelaySettings, load_settings
from payrelay.common.errors import ErrorResponse, install_error_handlers
from payrelay.common.logging import configure_logging, logger, order_id_ctx, request_id_ctx
from payrelay.common.metrics import http_request_duration_seconds, http_requests_total, metrics_response
from payrelay.common.startup import log_startup_config
from payrelay.common.tracing import instrument_app, setup_tracing
from payrelay.services.relay import static
from payrelay.services.relay.cors import PathScopedCORSMiddleware
from payrelay.services.relay.processor import ProcessorClient
from payrelay.services.relay.receipts import (
    LogReceiptSender,
    ReceiptSender,
    WebhookReceiptSender,
    dispatch_receipt,
)
from payrelay.services.relay.schemas import ClientTokenRequest, CompleteOrderRequest, InitiatePaymentRequest

CORS_PATHS = ["/initiate-payment"]
ERROR_RESPONSES = {500: {"model": ErrorResponse}, 422: {"model": ErrorResponse}}

router = APIRouter(responses=ERROR_RESPONSES)


def get_processor(request: Request) -> ProcessorClient:
    return request.app.state.processor


def get_receipt_sender(request: Request) -> ReceiptSender:
    return request.app.state.receipt_sender


@router.post("/initiate-payment")
async def initiate_payment(
    req: InitiatePaymentRequest,
    processor: ProcessorClient = Depends(get_processor),
):
    """Create a capture-intent order and return the processor's order verbatim."""

    return await processor.create_order(req.currency, req.amount)


@router.post("/complete_order")
async def complete_order(
    req: CompleteOrderRequest,
    background_tasks: BackgroundTasks,
    processor: ProcessorClient = Depends(get_processor),
    receipt_sender: ReceiptSender = Depends(get_receipt_sender),
):
    """Apply `intent` to an order; queue a receipt when an email was given."""

    order_id_ctx.set(req.order_id)
    order = await processor.order_action(req.order_id, req.intent)
    logger.info("order %s id=%s status=%s", req.intent, order.get("id"), order.get("status"))
    logger.debug("order %s result=%s", req.intent, order)

    completed_id = order.get("id")
    if completed_id and req.email:
        background_tasks.add_task(dispatch_receipt, receipt_sender, completed_id, req.email)
    return order


@router.post("/get_client_token", response_class=PlainTextResponse)
async def get_client_token(
    req: ClientTokenRequest | None = None,
    processor: ProcessorClient = Depends(get_processor),
):
    """Return a processor client token as plain text."""

    customer_id = req.customer_id if req else None
    return await processor.generate_client_token(customer_id)


@router.get("/health")
def health():
    """Container health probe endpoint."""

    return {"ok": True}


@router.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


def build_receipt_sender(settings: RelaySettings) -> ReceiptSender:
    if settings.receipt_webhook_url:
        return WebhookReceiptSender(settings.receipt_webhook_url)
    return LogReceiptSender()


def create_app(
    settings: RelaySettings,
    processor: ProcessorClient | None = None,
    receipt_sender: ReceiptSender | None = None,
) -> FastAPI:
    """Build the relay app around one immutable settings object."""

    app = FastAPI(title="Payment Relay")
    app.state.settings = settings
    app.state.processor = processor or ProcessorClient(settings)
    app.state.receipt_sender = receipt_sender or build_receipt_sender(settings)

    install_error_handlers(app)
    app.add_middleware(
        PathScopedCORSMiddleware,
        paths=CORS_PATHS,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        """Bind a request id to the log context and record request metrics."""

        request_id = request.headers.get("x-correlation-id") or str(uuid4())
        request_id_ctx.set(request_id)
        start = perf_counter()
        route = "unmatched"
        method = request.method
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            route_obj = request.scope.get("route")
            if route_obj is not None and getattr(route_obj, "path", None):
                route = route_obj.path
            response.headers["x-request-id"] = request_id
            return response
        finally:
            elapsed = max(0.0, perf_counter() - start)
            http_request_duration_seconds.labels(
                service=settings.service_name,
                route=route,
                method=method,
            ).observe(elapsed)
            http_requests_total.labels(
                service=settings.service_name,
                route=route,
                method=method,
                status_code=str(status_code),
            ).inc()

    app.include_router(router)
    app.include_router(static.router)

    if settings.otel_exporter_otlp_endpoint:
        instrument_app(app, setup_tracing(settings))
    return app


def run() -> None:
    """Console entrypoint: load settings, configure logging and serve."""

    settings = load_settings()
    configure_logging(settings.service_name, settings.log_level)
    log_startup_config(settings)
    app = create_app(settings)
    logger.info("Server listening at http://localhost:%s", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
