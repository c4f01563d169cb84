"""Error taxonomy shared by the relay service.

Every error carries the HTTP status it is rendered with, so handlers can map
exceptions to responses without inspecting message text.
"""


class RelayError(Exception):
    """Base class for request-terminating relay failures."""

    status_code: int = 500

    def __init__(self, message: str, details: object | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidRequestError(RelayError):
    """Missing or malformed request fields, detected before any gateway call."""

    status_code = 400

    def __init__(self, message: str = "Missing required parameters", missing: list[str] | None = None) -> None:
        super().__init__(message, details={"missing": missing} if missing else None)
        self.missing = missing or []


class SignatureMismatchError(RelayError):
    """Checkout signature does not match the expected HMAC."""

    status_code = 400

    def __init__(self, message: str = "Invalid signature") -> None:
        super().__init__(message)


class UpstreamStateError(RelayError):
    """Payment is in a gateway status the relay cannot act on."""

    status_code = 400

    def __init__(self, status: str) -> None:
        super().__init__(f"Payment in unexpected state: {status}")
        self.status = status


class AmountMismatchError(RelayError):
    """Requested capture amount differs from the live payment amount."""

    status_code = 400

    def __init__(self, requested: int, actual: int) -> None:
        super().__init__(
            f"Capture amount {requested} does not match payment amount {actual}",
            details={"requested": requested, "actual": actual},
        )
        self.requested = requested
        self.actual = actual


class UpstreamCallError(RelayError):
    """Gateway call failed (network, auth, or a gateway-side error body)."""

    status_code = 500

    def __init__(
        self,
        message: str,
        code: str | None = None,
        description: str | None = None,
        upstream_status: int | None = None,
    ) -> None:
        super().__init__(message, details=description)
        self.code = code
        self.description = description
        self.upstream_status = upstream_status


class UpstreamAuthError(UpstreamCallError):
    """Gateway rejected the configured credentials."""

    status_code = 401


class UpstreamTimeoutError(UpstreamCallError):
    """Gateway call did not complete before its deadline."""

    status_code = 504

    def __init__(self, message: str = "Request to Razorpay timed out") -> None:
        super().__init__(message, code="TIMEOUT")


class StartupConfigError(RuntimeError):
    """Required configuration is missing; the process must not serve requests."""
