"""HTTP surface for the payment relay.

Routes map one-to-one onto `PaymentRelayService` operations. Every response,
success or failure, is JSON.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from time import perf_counter
from uuid import uuid4

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from payrelay.common.config import settings
from payrelay.common.errors import RelayError
from payrelay.common.logging import configure_logging, logger, request_id_ctx
from payrelay.common.metrics import http_request_duration_seconds, http_requests_total, metrics_response
from payrelay.common.startup import log_routes, log_startup_config
from payrelay.common.tracing import instrument_app, setup_tracing
from payrelay.services.payments.gateway import RazorpayClient
from payrelay.services.payments.schemas import (
    CreateOrderRequest,
    ErrorResponse,
    HealthResponse,
    PaymentListData,
    PaymentListResponse,
    PaymentResponse,
    VerifyPaymentRequest,
)
from payrelay.services.payments.service import PaymentRelayService

configure_logging()
setup_tracing(settings.service_name)
log_startup_config(
    settings.service_name,
    [
        "SERVICE_NAME",
        "APP_ENV",
        "NODE_ENV",
        "PORT",
        "LOG_FILE",
        "RAZORPAY_BASE_URL",
        "RAZORPAY_KEY_ID",
        "RAZORPAY_KEY_SECRET",
    ],
)

ROUTES = [
    "POST /create-order - Create a new order",
    "POST /verify-payment - Verify and capture payment",
    "GET /payments - Get all payments",
    "GET /payments/{payment_id} - Get single payment",
    "GET /health - Health check",
    "GET /metrics - Prometheus metrics",
]

router = APIRouter()


def build_service() -> PaymentRelayService:
    """Wire the relay service to a Razorpay client built from settings."""

    gateway = RazorpayClient(
        settings.razorpay_key_id,
        settings.razorpay_key_secret,
        base_url=settings.razorpay_base_url,
        timeout=settings.gateway_timeout_seconds,
        service_name=settings.service_name,
    )
    logger.info("razorpay client initialized key_id=%s", settings.razorpay_key_id)
    return PaymentRelayService(
        gateway,
        settings.razorpay_key_secret,
        enforce_amount_match=settings.enforce_capture_amount_match,
        list_timeout_seconds=settings.gateway_list_timeout_seconds,
        service_name=settings.service_name,
    )


def get_relay(request: Request) -> PaymentRelayService:
    return request.app.state.relay


@router.post("/create-order")
async def create_order(req: CreateOrderRequest, relay: PaymentRelayService = Depends(get_relay)):
    """Create a gateway order and return it unchanged."""

    return await relay.create_order(req.amount, req.currency)


@router.post("/verify-payment")
async def verify_payment(req: VerifyPaymentRequest, relay: PaymentRelayService = Depends(get_relay)):
    """Verify the checkout signature and capture the payment."""

    try:
        result = await relay.verify_and_capture(req)
    except Exception:
        logger.exception("payment verification error")
        return JSONResponse(status_code=500, content={"verified": False, "error": "Internal server error"})
    return JSONResponse(status_code=result.status_code, content=jsonable_encoder(result.body()))


@router.get("/payments", response_model=PaymentListResponse)
async def list_payments(
    count: int = Query(default=50, ge=1, le=100),
    skip: int = Query(default=0, ge=0),
    relay: PaymentRelayService = Depends(get_relay),
):
    """Payments created in the last 30 days."""

    data = await relay.list_payments(count=count, skip=skip)
    return PaymentListResponse(data=PaymentListData(**data))


@router.get("/payments/{payment_id}", response_model=PaymentResponse)
async def get_payment(payment_id: str, relay: PaymentRelayService = Depends(get_relay)):
    return PaymentResponse(payment=await relay.get_payment(payment_id))


@router.get("/health", response_model=HealthResponse)
def health():
    """Container health probe endpoint."""

    logger.info("health check requested")
    return HealthResponse(timestamp=datetime.now(timezone.utc).isoformat())


@router.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    """Render relay errors in the shared `{success, error, details}` shape."""

    logger.error("request failed path=%s status=%s error=%s", request.url.path, exc.status_code, exc.message)
    body = ErrorResponse(error=exc.message, details=exc.details)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(body.model_dump(exclude_none=True)))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed bodies as 400 instead of the framework default 422."""

    errors = jsonable_encoder(exc.errors())
    logger.error("request validation failed path=%s errors=%s", request.url.path, errors)
    if request.url.path == "/verify-payment":
        only_missing = all(err.get("type") == "missing" for err in errors)
        message = "Missing required parameters" if only_missing else "Invalid request parameters"
        return JSONResponse(status_code=400, content={"verified": False, "error": message, "details": errors})
    body = ErrorResponse(error="Invalid request parameters", details=errors)
    return JSONResponse(status_code=400, content=body.model_dump())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error path=%s method=%s", request.url.path, request.method)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error", "message": str(exc)},
    )


def create_app(service: PaymentRelayService | None = None) -> FastAPI:
    """Build the FastAPI app around an explicitly provided relay service."""

    relay = service or build_service()

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        """Log the route table on start, close the gateway client on stop."""

        logger.info("server started port=%s env=%s", settings.port, settings.app_env)
        log_routes(ROUTES)
        yield
        await relay.close()

    app = FastAPI(title="Payment Relay", lifespan=lifespan)
    app.state.relay = relay
    app.include_router(router)
    app.add_exception_handler(RelayError, relay_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_middleware(request: Request, call_next):
        """Tag the request with an id, log it, and record count and latency."""

        request_id = request.headers.get("x-request-id") or str(uuid4())
        request_id_ctx.set(request_id)
        logger.info("%s %s query=%s", request.method, request.url.path, dict(request.query_params))

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

    instrument_app(app)
    return app


app = create_app()


def run() -> None:
    """Serve the relay with uvicorn on the configured host and port."""

    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
