"""Fire concurrent verify-payment requests at a running relay.

Sends the same signed body N times at once and prints the status code
distribution; a healthy relay captures once and reports the rest as already
captured.
"""

import argparse
import asyncio
import os
import time
from collections import Counter

import httpx

from payrelay.services.payments.signature import expected_signature


async def send_one(client: httpx.AsyncClient, base_url: str, body: dict):
    """Send one verify request and return (status_code, latency_ms, captured)."""

    started = time.perf_counter()
    try:
        resp = await client.post(f"{base_url}/verify-payment", json=body)
        latency = (time.perf_counter() - started) * 1000
        return resp.status_code, latency, resp.json().get("captured")
    except httpx.HTTPError:
        latency = (time.perf_counter() - started) * 1000
        return 599, latency, None


def positive_int(value: str) -> int:
    """argparse type for counts that must be at least one."""

    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {number}")
    return number


async def run(total: int, base_url: str, body: dict) -> None:
    async with httpx.AsyncClient(timeout=30.0) as client:
        results = await asyncio.gather(*(send_one(client, base_url, body) for _ in range(total)))

    codes = Counter(code for code, _, _ in results)
    captured = sum(1 for _, _, flag in results if flag)
    lats = sorted(latency for _, latency, _ in results)
    print(f"total={total}")
    print(f"status_codes={dict(codes)}")
    print(f"captured_responses={captured}")
    print(f"max_ms={lats[-1]:.2f}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--total", type=positive_int, default=5)
    parser.add_argument("--base-url", default="http://localhost:5000")
    parser.add_argument("--order-id", required=True)
    parser.add_argument("--payment-id", required=True)
    parser.add_argument("--amount", type=int, required=True)
    parser.add_argument("--secret", default=os.getenv("RAZORPAY_KEY_SECRET"))
    args = parser.parse_args()
    if not args.secret:
        raise SystemExit("Provide --secret or set RAZORPAY_KEY_SECRET")
    verify_body = {
        "razorpay_order_id": args.order_id,
        "razorpay_payment_id": args.payment_id,
        "razorpay_signature": expected_signature(args.order_id, args.payment_id, args.secret),
        "amount": args.amount,
    }
    asyncio.run(run(args.total, args.base_url, verify_body))
