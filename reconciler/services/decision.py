"""Idempotency decision: what a newly observed gateway status is allowed to change."""

from dataclasses import dataclass

from reconciler.models.order import Order
from reconciler.models.payment import Payment
from reconciler.services.status import PAID, normalize


@dataclass(frozen=True)
class Decision:
    update_needed: bool
    fulfillment_authorized: bool


def decide(payment: Payment, order: Order | None, new_status: str) -> Decision:
    """Compare a freshly read snapshot with the observed canonical status.

    update_needed: payment or order is not yet at new_status. A pass that
    updated the payment but died before the order still repairs the order.

    fulfillment_authorized: new_status is paid and something is still
    outstanding: payment not paid, order not paid, or no buyer account linked.
    The last clause lets a later event retry provisioning after a failed
    account creation. Without an order there is nothing to fulfil.
    """
    payment_synced = normalize(payment.status) == new_status
    order_synced = order is not None and normalize(order.status) == new_status
    update_needed = not payment_synced or not order_synced

    authorized = False
    if order is not None and new_status == PAID:
        user_linked = bool(order.customer_user_id)
        authorized = not payment_synced or not order_synced or not user_linked

    return Decision(update_needed=update_needed, fulfillment_authorized=authorized)
