"""Async Razorpay REST client.

Constructed explicitly and injected into the relay service. Every failure is
translated into the relay error taxonomy here, so callers never see raw
`httpx` exceptions.
"""

from time import perf_counter
from typing import Any
from urllib.parse import quote

import httpx

from payrelay.common.errors import UpstreamAuthError, UpstreamCallError, UpstreamTimeoutError
from payrelay.common.logging import logger
from payrelay.common.metrics import gateway_request_duration_seconds, gateway_requests_total

DEFAULT_BASE_URL = "https://api.razorpay.com/v1"


class RazorpayClient:
    """Thin wrapper over the order and payment endpoints the relay needs."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
        service_name: str = "payrelay",
    ) -> None:
        self.key_id = key_id
        self.service_name = service_name
        self._client = httpx.AsyncClient(
            base_url=base_url,
            auth=(key_id, key_secret),
            timeout=timeout,
            transport=transport,
        )

    async def create_order(self, amount: int, currency: str, receipt: str) -> dict[str, Any]:
        return await self._request(
            "create_order",
            "POST",
            "/orders",
            json={"amount": amount, "currency": currency, "receipt": receipt},
        )

    async def fetch_payment(self, payment_id: str) -> dict[str, Any]:
        return await self._request("fetch_payment", "GET", f"/payments/{quote(payment_id, safe='')}")

    async def capture_payment(self, payment_id: str, amount: int, currency: str | None = None) -> dict[str, Any]:
        body: dict[str, Any] = {"amount": amount}
        if currency:
            body["currency"] = currency
        return await self._request(
            "capture_payment",
            "POST",
            f"/payments/{quote(payment_id, safe='')}/capture",
            json=body,
        )

    async def list_payments(self, from_ts: int, to_ts: int, count: int = 50, skip: int = 0) -> dict[str, Any]:
        return await self._request(
            "list_payments",
            "GET",
            "/payments",
            params={"from": from_ts, "to": to_ts, "count": count, "skip": skip},
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, operation: str, method: str, path: str, **kwargs) -> dict[str, Any]:
        """Issue one call, record metrics, and map failures to relay errors."""

        started = perf_counter()
        result = "error"
        try:
            try:
                resp = await self._client.request(method, path, **kwargs)
            except httpx.TimeoutException as exc:
                result = "timeout"
                raise UpstreamTimeoutError() from exc
            except httpx.HTTPError as exc:
                raise UpstreamCallError(
                    f"Gateway request failed: {exc.__class__.__name__}",
                    code="NETWORK_ERROR",
                    description=str(exc) or None,
                ) from exc

            if resp.status_code >= 400:
                raise _error_from_response(resp)
            try:
                payload = resp.json()
            except ValueError as exc:
                raise UpstreamCallError(
                    "Gateway returned a non-JSON response",
                    code="BAD_RESPONSE",
                    upstream_status=resp.status_code,
                ) from exc
            if not isinstance(payload, dict):
                raise UpstreamCallError(
                    "No response from Razorpay",
                    code="BAD_RESPONSE",
                    upstream_status=resp.status_code,
                )
            result = "ok"
            return payload
        finally:
            elapsed = max(0.0, perf_counter() - started)
            gateway_request_duration_seconds.labels(service=self.service_name, operation=operation).observe(elapsed)
            gateway_requests_total.labels(service=self.service_name, operation=operation, result=result).inc()
            logger.info(
                "gateway_call operation=%s result=%s elapsed_ms=%d",
                operation,
                result,
                int(elapsed * 1000),
            )


def _error_from_response(resp: httpx.Response) -> UpstreamCallError:
    """Build an error from Razorpay's `{"error": {"code", "description"}}` body."""

    code = None
    description = None
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        code = body["error"].get("code")
        description = body["error"].get("description")
    message = description or f"Gateway responded with HTTP {resp.status_code}"
    error_cls = UpstreamAuthError if resp.status_code == 401 else UpstreamCallError
    return error_cls(message, code=code, description=description, upstream_status=resp.status_code)
