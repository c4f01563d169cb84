"""Compute the checkout signature Razorpay would hand to the client.

Useful for exercising `/verify-payment` by hand without a real checkout.
"""

import argparse
import json
import os

from payrelay.services.payments.signature import expected_signature


def main() -> None:
    """Parse CLI args and print a ready-to-post verify-payment body."""

    parser = argparse.ArgumentParser(description="Sign an order/payment pair with the key secret.")
    parser.add_argument("--order-id", required=True)
    parser.add_argument("--payment-id", required=True)
    parser.add_argument("--amount", type=int, required=True, help="Amount in minor units (paise)")
    parser.add_argument("--secret", default=None, help="Defaults to $RAZORPAY_KEY_SECRET")
    args = parser.parse_args()

    secret = args.secret or os.getenv("RAZORPAY_KEY_SECRET")
    if not secret:
        raise SystemExit("Provide --secret or set RAZORPAY_KEY_SECRET")

    body = {
        "razorpay_order_id": args.order_id,
        "razorpay_payment_id": args.payment_id,
        "razorpay_signature": expected_signature(args.order_id, args.payment_id, secret),
        "amount": args.amount,
    }
    print(json.dumps(body, indent=2))


if __name__ == "__main__":
    main()
