"""Merchant webhook dispatch: pre-filtered order projection handed to the dispatch function."""

from datetime import datetime, timezone
from typing import Any

import httpx

from reconciler.core.config import Settings
from reconciler.core.exceptions import CollaboratorError
from reconciler.models.order import Order
from reconciler.models.payment import Payment
from reconciler.services.status import PAID

DISPATCH_FUNCTION = "dispatch-webhook"
DISPATCH_SCOPE = "client"


def event_name(status: str) -> str:
    return "pagamento.aprovado" if status == PAID else f"pagamento.{status}"


def mask_email(email: str | None) -> str | None:
    if not email or "@" not in email:
        return None
    local, domain = email.split("@", 1)
    if len(local) <= 2:
        return f"{local[:1]}***@{domain}"
    return f"{local[0]}***{local[-1]}@{domain}"


def mask_digits(value: str | None, keep: int) -> str | None:
    """Keep only the last `keep` digits."""
    if not value:
        return None
    digits = "".join(ch for ch in value if ch.isdigit())
    if not digits:
        return None
    return "*" * max(len(digits) - keep, 0) + digits[-keep:]


def mask_name(name: str | None) -> str | None:
    if not name or not name.strip():
        return None
    parts = name.split()
    if len(parts) == 1:
        return parts[0]
    return f"{parts[0]} {parts[-1][0]}."


def build_order_event(order: Order | None, payment: Payment, status: str) -> dict[str, Any]:
    """Allow-listed projection of the order; the dispatcher filters it again before it leaves."""
    return {
        "event": event_name(status),
        "order_id": payment.order_id,
        "checkout_id": order.checkout_id if order else None,
        "amount": (order.total if order.total is not None else order.amount) if order else None,
        "currency": (order.currency if order and order.currency else "BRL"),
        "status": status,
        "payment_method": (order.payment_method if order and order.payment_method else "unknown"),
        "customer": {
            "name": mask_name(order.customer_name) if order else None,
            "email": mask_email(order.customer_email) if order else None,
            "phone": mask_digits(order.customer_phone, 4) if order else None,
            "cpf": mask_digits(order.customer_cpf, 2) if order else None,
        },
        "items": [{"name": i.name, "price": i.price, "product_id": i.product_id} for i in order.items] if order else [],
        "purchased_at": datetime.now(timezone.utc).isoformat(),
    }


class WebhookDispatcher:
    def __init__(self, http: httpx.AsyncClient, settings: Settings):
        self._http = http
        self._url = f"{settings.functions_url}/{DISPATCH_FUNCTION}"
        self._key = settings.supabase_service_key
        self._timeout = settings.http_timeout_seconds

    async def dispatch(self, owner_id: str | None, payload: dict[str, Any]) -> None:
        body = {
            "event": payload["event"],
            "scope": DISPATCH_SCOPE,
            "owner_id": owner_id,
            "payload": payload,
        }
        try:
            resp = await self._http.post(
                self._url,
                json=body,
                headers={"Authorization": f"Bearer {self._key}", "Content-Type": "application/json"},
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            raise CollaboratorError(f"dispatch-webhook failed: {e}") from e
        if resp.status_code >= 400:
            raise CollaboratorError(
                f"dispatch-webhook returned {resp.status_code}",
                status=resp.status_code,
                body=resp.text,
            )
