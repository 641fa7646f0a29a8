"""Gateway status vocabulary -> canonical order status."""

from typing import Literal

CanonicalStatus = Literal["pending", "paid", "failed", "refunded"]

PENDING: CanonicalStatus = "pending"
PAID: CanonicalStatus = "paid"
FAILED: CanonicalStatus = "failed"
REFUNDED: CanonicalStatus = "refunded"

CANONICAL_STATUSES: frozenset[str] = frozenset({PENDING, PAID, FAILED, REFUNDED})

GATEWAY_STATUS_MAP: dict[str, CanonicalStatus] = {
    "approved": PAID,
    "authorized": PENDING,
    "pending": PENDING,
    "in_process": PENDING,
    "in_mediation": PENDING,
    "rejected": FAILED,
    "cancelled": FAILED,
    "refunded": REFUNDED,
    "charged_back": REFUNDED,
}


def translate(native_status: str | None) -> CanonicalStatus:
    """Map a gateway-native status; anything unknown is pending (no destructive side effect)."""
    if not native_status:
        return PENDING
    return GATEWAY_STATUS_MAP.get(native_status.strip().lower(), PENDING)


def normalize(stored_status: str | None) -> str:
    """Lower-case a stored status and fold legacy gateway values into the canonical set."""
    s = (stored_status or "").strip().lower()
    if not s:
        return PENDING
    if s in CANONICAL_STATUSES:
        return s
    if s in GATEWAY_STATUS_MAP:
        return GATEWAY_STATUS_MAP[s]
    return s
