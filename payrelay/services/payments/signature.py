"""Checkout signature verification.

Razorpay signs `<order_id>|<payment_id>` with the account key secret using
HMAC-SHA256 and hands the lowercase hex digest to the client, which echoes it
back to us.
"""

import hashlib
import hmac

SIGNATURE_DELIMITER = "|"


def signature_payload(order_id: str, payment_id: str) -> bytes:
    """Canonical bytes the gateway signs; order and delimiter are fixed."""

    return f"{order_id}{SIGNATURE_DELIMITER}{payment_id}".encode("utf-8")


def expected_signature(order_id: str, payment_id: str, secret: str) -> str:
    """Lowercase hex HMAC-SHA256 of the payload under the trimmed secret."""

    key = secret.strip().encode("utf-8")
    return hmac.new(key, signature_payload(order_id, payment_id), hashlib.sha256).hexdigest()


def verify_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    """Return True only for an exact, case-sensitive digest match.

    Malformed input is reported as not verified rather than raised.
    """

    if not all(isinstance(value, str) and value for value in (order_id, payment_id, signature, secret)):
        return False
    if not signature.isascii():
        return False
    expected = expected_signature(order_id, payment_id, secret)
    return hmac.compare_digest(expected, signature)
