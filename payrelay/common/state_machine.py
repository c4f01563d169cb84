"""Capture decisions over gateway payment status.

The relay never owns payment state; it only reads the gateway's status and
decides what to do with it.
"""

from enum import Enum

from payrelay.common.errors import UpstreamStateError


class CaptureAction(str, Enum):
    CAPTURE = "capture"
    NOOP = "noop"


CAPTURE_ACTIONS: dict[str, CaptureAction] = {
    "authorized": CaptureAction.CAPTURE,
    "captured": CaptureAction.NOOP,
}


def decide_capture(status: str | None) -> CaptureAction:
    """Return the action for `status`, raising when it cannot be acted on."""

    action = CAPTURE_ACTIONS.get(status or "")
    if action is None:
        raise UpstreamStateError(str(status))
    return action
