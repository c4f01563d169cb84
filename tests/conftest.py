"""Shared fixtures: required env vars and an in-memory gateway double."""

import asyncio
import hashlib
import hmac
import os

# Settings are read at import time, so these must be set before payrelay loads.
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "testsecret"
os.environ["LOG_FILE"] = ""

import pytest

SECRET = "testsecret"


def sign(order_id: str, payment_id: str, secret: str = SECRET) -> str:
    """Reference signature computed independently of the code under test."""

    return hmac.new(secret.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


class FakeGateway:
    """Gateway double that records every call and mutates its own payment state."""

    def __init__(self, status: str = "authorized", amount: int = 50000, currency: str = "INR") -> None:
        self.payment = {"id": "pay_XYZ", "order_id": "order_ABC", "status": status, "amount": amount, "currency": currency}
        self.fetch_calls: list[str] = []
        self.capture_calls: list[tuple] = []
        self.order_calls: list[tuple] = []
        self.list_calls: list[tuple] = []
        self.fetch_error: Exception | None = None
        self.capture_error: Exception | None = None
        self.list_error: Exception | None = None
        self.list_delay = 0.0
        self.closed = False

    async def fetch_payment(self, payment_id: str) -> dict:
        self.fetch_calls.append(payment_id)
        await asyncio.sleep(0)
        if self.fetch_error:
            raise self.fetch_error
        return dict(self.payment, id=payment_id)

    async def capture_payment(self, payment_id: str, amount: int, currency: str | None = None) -> dict:
        self.capture_calls.append((payment_id, amount, currency))
        await asyncio.sleep(0)
        if self.capture_error:
            raise self.capture_error
        self.payment = dict(self.payment, status="captured", amount=amount)
        return dict(self.payment, id=payment_id)

    async def create_order(self, amount: int, currency: str, receipt: str) -> dict:
        self.order_calls.append((amount, currency, receipt))
        return {"id": "order_NEW", "amount": amount, "currency": currency, "receipt": receipt, "status": "created"}

    async def list_payments(self, from_ts: int, to_ts: int, count: int = 50, skip: int = 0) -> dict:
        self.list_calls.append((from_ts, to_ts, count, skip))
        if self.list_delay:
            await asyncio.sleep(self.list_delay)
        if self.list_error:
            raise self.list_error
        return {"entity": "collection", "count": 1, "items": [dict(self.payment)]}

    @property
    def call_count(self) -> int:
        return len(self.fetch_calls) + len(self.capture_calls)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def verify_body():
    """Correctly signed verify-payment body for order_ABC / pay_XYZ."""

    return {
        "razorpay_order_id": "order_ABC",
        "razorpay_payment_id": "pay_XYZ",
        "razorpay_signature": sign("order_ABC", "pay_XYZ"),
        "amount": 50000,
    }
