"""API request/response schemas for the relay endpoints."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, StrictInt


class CreateOrderRequest(BaseModel):
    """Body for `POST /create-order`; amount is in major currency units."""

    amount: StrictInt = Field(gt=0)
    currency: str = Field(default="INR", min_length=3, max_length=3)


class VerifyPaymentRequest(BaseModel):
    """Checkout callback echoed by the client.

    Fields are optional at the schema level so that a missing field is reported
    as a 400 by the relay rather than a framework 422.
    """

    razorpay_order_id: str | None = None
    razorpay_payment_id: str | None = None
    razorpay_signature: str | None = None
    amount: StrictInt | None = None

    def missing_fields(self) -> list[str]:
        missing = [
            name
            for name in ("razorpay_order_id", "razorpay_payment_id", "razorpay_signature")
            if not (getattr(self, name) or "").strip()
        ]
        if not self.amount or self.amount <= 0:
            missing.append("amount")
        return missing


class CaptureOutcome(str, Enum):
    INVALID_REQUEST = "invalid_request"
    NOT_VERIFIED = "not_verified"
    UNEXPECTED_STATE = "unexpected_state"
    AMOUNT_MISMATCH = "amount_mismatch"
    CAPTURE_FAILED = "capture_failed"
    CAPTURED = "captured"
    ALREADY_CAPTURED = "already_captured"


OUTCOME_STATUS_CODES: dict[CaptureOutcome, int] = {
    CaptureOutcome.INVALID_REQUEST: 400,
    CaptureOutcome.NOT_VERIFIED: 400,
    CaptureOutcome.UNEXPECTED_STATE: 400,
    CaptureOutcome.AMOUNT_MISMATCH: 400,
    CaptureOutcome.CAPTURE_FAILED: 500,
    CaptureOutcome.CAPTURED: 200,
    CaptureOutcome.ALREADY_CAPTURED: 200,
}


class CaptureResult(BaseModel):
    """Unified verify-and-capture response.

    `verified` and `captured` are independent: verified-but-not-captured is a
    distinct outcome from not verified at all.
    """

    verified: bool
    captured: bool = False
    payment_id: str | None = None
    order_id: str | None = None
    payment_details: dict[str, Any] | None = None
    error: str | None = None
    status: str | None = None
    outcome: CaptureOutcome = Field(exclude=True)

    @property
    def status_code(self) -> int:
        return OUTCOME_STATUS_CODES[self.outcome]

    def body(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class PaymentListData(BaseModel):
    count: int
    items: list[dict[str, Any]] = Field(default_factory=list)


class PaymentListResponse(BaseModel):
    success: bool = True
    data: PaymentListData


class PaymentResponse(BaseModel):
    success: bool = True
    payment: dict[str, Any]


class HealthResponse(BaseModel):
    status: str = "healthy"
    timestamp: str


class ErrorResponse(BaseModel):
    """Error body shared by the pass-through endpoints."""

    success: bool = False
    error: str
    details: Any | None = None
