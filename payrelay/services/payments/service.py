"""Payment relay logic.

Verifies checkout signatures, drives authorized payments to captured, and
passes order/listing calls through to the gateway. The gateway stays the
system of record; nothing here is persisted.
"""

import asyncio
import time

from payrelay.common.errors import (
    AmountMismatchError,
    InvalidRequestError,
    SignatureMismatchError,
    UpstreamAuthError,
    UpstreamCallError,
    UpstreamStateError,
    UpstreamTimeoutError,
)
from payrelay.common.locks import KeyedLock
from payrelay.common.logging import logger, order_id_ctx, payment_id_ctx
from payrelay.common.metrics import payment_verifications_total
from payrelay.common.state_machine import CaptureAction, decide_capture
from payrelay.services.payments.schemas import CaptureOutcome, CaptureResult, VerifyPaymentRequest
from payrelay.services.payments.signature import verify_signature

LIST_WINDOW_SECONDS = 30 * 24 * 60 * 60


class PaymentRelayService:
    """Owns the verify → fetch → capture flow for one gateway account."""

    def __init__(
        self,
        gateway,
        key_secret: str,
        *,
        enforce_amount_match: bool = False,
        list_timeout_seconds: float = 10.0,
        locks: KeyedLock | None = None,
        service_name: str = "payrelay",
        clock=time.time,
    ) -> None:
        self.gateway = gateway
        self.key_secret = key_secret.strip()
        self.enforce_amount_match = enforce_amount_match
        self.list_timeout_seconds = list_timeout_seconds
        self.locks = locks or KeyedLock()
        self.service_name = service_name
        self.clock = clock

    async def create_order(self, amount: int, currency: str = "INR") -> dict:
        """Create a gateway order; `amount` is in major units."""

        receipt = f"order_{int(self.clock() * 1000)}"
        logger.info("creating order amount=%s currency=%s receipt=%s", amount, currency, receipt)
        try:
            order = await self.gateway.create_order(amount * 100, currency.upper(), receipt)
        except UpstreamCallError as exc:
            logger.error("order creation failed code=%s error=%s", exc.code, exc.message)
            raise UpstreamCallError("Failed to create order", code=exc.code, description=exc.description) from exc
        order_id_ctx.set(str(order.get("id", "")))
        logger.info("order created")
        return order

    async def verify_and_capture(self, req: VerifyPaymentRequest) -> CaptureResult:
        """Verify the checkout signature, then capture if the payment allows it.

        Returns a result for every expected outcome; only programming errors
        escape as exceptions.
        """

        try:
            self._check_request(req)
        except InvalidRequestError as exc:
            logger.error("verification rejected missing=%s", exc.missing)
            return self._finish(
                CaptureResult(verified=False, error=exc.message, outcome=CaptureOutcome.INVALID_REQUEST)
            )

        order_id = req.razorpay_order_id
        payment_id = req.razorpay_payment_id
        order_id_ctx.set(order_id)
        payment_id_ctx.set(payment_id)

        try:
            self._check_signature(req)
        except SignatureMismatchError as exc:
            logger.error("signature verification failed")
            return self._finish(
                CaptureResult(
                    verified=False,
                    payment_id=payment_id,
                    order_id=order_id,
                    error=exc.message,
                    outcome=CaptureOutcome.NOT_VERIFIED,
                )
            )
        logger.info("signature verified")

        async with self.locks.hold(payment_id):
            result = await self._capture_verified(order_id, payment_id, req.amount)
        return self._finish(result)

    def _check_request(self, req: VerifyPaymentRequest) -> None:
        missing = req.missing_fields()
        if missing:
            raise InvalidRequestError(missing=missing)

    def _check_signature(self, req: VerifyPaymentRequest) -> None:
        if not verify_signature(req.razorpay_order_id, req.razorpay_payment_id, req.razorpay_signature, self.key_secret):
            raise SignatureMismatchError()

    async def _capture_verified(self, order_id: str, payment_id: str, amount: int) -> CaptureResult:
        """Fetch live status and act on it. Caller holds the payment lock."""

        base = {"verified": True, "payment_id": payment_id, "order_id": order_id}
        try:
            payment = await self.gateway.fetch_payment(payment_id)
            logger.info("payment fetched status=%s", payment.get("status"))
            action = decide_capture(payment.get("status"))
            if action is CaptureAction.NOOP:
                logger.info("payment already captured")
                return CaptureResult(
                    **base,
                    captured=True,
                    payment_details=payment,
                    outcome=CaptureOutcome.ALREADY_CAPTURED,
                )
            if self.enforce_amount_match:
                _check_amount(payment, amount)
            currency = payment.get("currency")
            logger.info("capturing payment amount=%s currency=%s", amount, currency)
            captured = await self.gateway.capture_payment(payment_id, amount, currency)
        except UpstreamStateError as exc:
            logger.error("payment in unexpected state status=%s", exc.status)
            return CaptureResult(**base, error=exc.message, status=exc.status, outcome=CaptureOutcome.UNEXPECTED_STATE)
        except AmountMismatchError as exc:
            logger.error("capture amount rejected requested=%s actual=%s", exc.requested, exc.actual)
            return CaptureResult(**base, error=exc.message, outcome=CaptureOutcome.AMOUNT_MISMATCH)
        except UpstreamCallError as exc:
            logger.error("capture failed code=%s error=%s", exc.code, exc.message)
            return CaptureResult(
                **base,
                error=exc.message or "Payment verified but capture failed",
                outcome=CaptureOutcome.CAPTURE_FAILED,
            )

        logger.info("payment captured")
        return CaptureResult(**base, captured=True, payment_details=captured, outcome=CaptureOutcome.CAPTURED)

    def _finish(self, result: CaptureResult) -> CaptureResult:
        payment_verifications_total.labels(service=self.service_name, outcome=result.outcome.value).inc()
        logger.info(
            "verification finished outcome=%s verified=%s captured=%s",
            result.outcome.value,
            result.verified,
            result.captured,
        )
        return result

    async def list_payments(self, count: int = 50, skip: int = 0) -> dict:
        """List payments from the last 30 days, bounded by the listing deadline."""

        to_ts = int(self.clock())
        from_ts = to_ts - LIST_WINDOW_SECONDS
        logger.info("fetching payments from=%s to=%s count=%s skip=%s", from_ts, to_ts, count, skip)
        try:
            payments = await asyncio.wait_for(
                self.gateway.list_payments(from_ts, to_ts, count, skip),
                timeout=self.list_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            logger.error("payment listing timed out after %ss", self.list_timeout_seconds)
            raise UpstreamTimeoutError() from exc
        except UpstreamTimeoutError:
            logger.error("payment listing timed out at transport level")
            raise
        except UpstreamAuthError as exc:
            logger.error("payment listing rejected credentials code=%s", exc.code)
            raise UpstreamAuthError(
                "Invalid Razorpay credentials",
                code=exc.code,
                description=exc.description,
                upstream_status=exc.upstream_status,
            ) from exc
        except UpstreamCallError as exc:
            logger.error("payment listing failed code=%s error=%s", exc.code, exc.message)
            raise

        items = payments.get("items") or []
        logger.info("payments fetched count=%s items=%s", payments.get("count"), len(items))
        return {"count": payments.get("count") or len(items), "items": items}

    async def get_payment(self, payment_id: str) -> dict:
        payment_id_ctx.set(payment_id)
        logger.info("fetching single payment")
        try:
            return await self.gateway.fetch_payment(payment_id)
        except UpstreamCallError as exc:
            logger.error("payment fetch failed code=%s error=%s", exc.code, exc.message)
            raise UpstreamCallError("Failed to fetch payment details", code=exc.code) from exc

    async def close(self) -> None:
        await self.gateway.close()


def _check_amount(payment: dict, requested: int) -> None:
    actual = payment.get("amount")
    if actual is None:
        return
    if int(actual) != requested:
        raise AmountMismatchError(requested, int(actual))
