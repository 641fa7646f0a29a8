"""Entry points into the reconciliation pipeline: gateway notification and client status poll."""

from datetime import datetime, timezone
from typing import Any

from reconciler.core.exceptions import AppError, CredentialNotFoundError, GatewayError, StoreError
from reconciler.core.logging import bind_transaction, get_logger
from reconciler.models.order import Order
from reconciler.models.payment import Payment
from reconciler.services.context import PipelineContext
from reconciler.services.decision import decide
from reconciler.services.fulfillment import persist_status, run_fulfillment
from reconciler.services.gateway import resolve_credential
from reconciler.services.status import PAID, PENDING, normalize, translate

log = get_logger(__name__)

REPLAY_ACTION = "payment.updated"


def extract_transaction_id(payload: Any) -> str | None:
    """data.id first, then top-level id. Some notification shapes carry neither."""
    if not isinstance(payload, dict):
        return None
    data = payload.get("data")
    tx = data.get("id") if isinstance(data, dict) else None
    tx = tx or payload.get("id")
    if tx is None or str(tx).strip() == "":
        return None
    return str(tx).strip()


def event_hint(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    return payload.get("action") or payload.get("type")


async def handle_notification(ctx: PipelineContext, payload: Any) -> dict[str, Any]:
    """Process one gateway notification end to end.

    Raises AppError only for pipeline-fatal conditions (no credential, gateway
    query failure, store failure up to and including status persistence), so the
    gateway retries delivery. Everything after persistence is acknowledged.
    """
    await ctx.audit.log_event("webhook.received", {"action": event_hint(payload), "body": payload}, False)

    transaction_id = extract_transaction_id(payload)
    if not transaction_id:
        await ctx.audit.log_event("webhook.ignored", {"reason": "No payment ID found", "payload": payload}, False)
        return {"success": True, "message": "Ignored: No payment ID"}

    bind_transaction(transaction_id)
    try:
        return await _reconcile(ctx, transaction_id)
    except AppError:
        raise
    except Exception as e:
        await ctx.audit.log_event("webhook.critical_error", {"error": str(e)}, False)
        raise


async def _reconcile(ctx: PipelineContext, transaction_id: str) -> dict[str, Any]:
    try:
        payment = await ctx.store.find_one(Payment, transaction_id=transaction_id)
    except StoreError as e:
        await ctx.audit.log_event("webhook.error_fetching_payment", {"error": e.message}, False)
        raise
    if payment is None:
        log.warning("payment_record_not_found", transaction_id=transaction_id)

    try:
        credential = await resolve_credential(ctx.store, ctx.settings, payment)
    except CredentialNotFoundError as e:
        await ctx.audit.log_event("webhook.error_no_token", {"message": e.message}, False)
        raise
    except StoreError as e:
        await ctx.audit.log_event("webhook.error_fetching_gateway", {"error": e.message}, False)
        raise

    try:
        gateway_payment = await ctx.gateway.fetch_payment(transaction_id, credential)
    except GatewayError as e:
        await ctx.audit.log_event("webhook.error_mp_api", {"status": e.status, "body": e.body[:1000], "error": e.message}, False)
        raise

    native_status = gateway_payment.get("status")
    new_status = translate(native_status)
    log.info("gateway_status", native_status=native_status, canonical_status=new_status, gateway_id=credential.id)

    if payment is None:
        await ctx.audit.log_event(
            "webhook.warning",
            {
                "message": "Payment record not found, cannot update order",
                "paymentId": transaction_id,
                "mpStatus": native_status,
            },
            False,
        )
        return {"success": True}

    order: Order | None = None
    try:
        order = await ctx.store.find_one(Order, id=payment.order_id)
    except StoreError as e:
        log.warning("order_fetch_failed", order_id=payment.order_id, reason=e.message)

    decision = decide(payment, order, new_status)
    log.info(
        "sync_check",
        payment_status=payment.status,
        order_status=order.status if order else None,
        new_status=new_status,
        update_needed=decision.update_needed,
        fulfillment_authorized=decision.fulfillment_authorized,
    )

    try:
        await run_fulfillment(ctx, payment, order, new_status, decision, gateway_payment)
    except StoreError as e:
        await ctx.audit.log_event("webhook.error_updating_records", {"error": e.message}, False)
        raise
    return {"success": True}


def latest_payment(payments: list[Payment]) -> Payment | None:
    if not payments:
        return None
    epoch = datetime.min.replace(tzinfo=timezone.utc)

    def created(p: Payment) -> datetime:
        if p.created_at is None:
            return epoch
        return p.created_at if p.created_at.tzinfo else p.created_at.replace(tzinfo=timezone.utc)

    return max(payments, key=created)


async def check_order_status(ctx: PipelineContext, order_id: str) -> dict[str, Any]:
    """Best-known canonical status for a waiting client. Never raises."""
    try:
        return await _check_order_status(ctx, order_id)
    except Exception as e:
        log.exception("check_status_failed", order_id=order_id)
        return {"status": PENDING, "error": str(e)}


async def _check_order_status(ctx: PipelineContext, order_id: str) -> dict[str, Any]:
    order = await ctx.store.find_one(Order, id=order_id)
    if order is None:
        log.info("check_status_order_not_found", order_id=order_id)
        return {"status": PENDING}

    current = normalize(order.status)
    if current == PAID:
        return {"status": PAID}

    payment = latest_payment(await ctx.store.find(Payment, order_id=order_id))
    if payment is None or not payment.transaction_id:
        return {"status": current}
    bind_transaction(payment.transaction_id, order_id=order_id)

    try:
        credential = await resolve_credential(ctx.store, ctx.settings, payment)
        gateway_payment = await ctx.gateway.fetch_payment(payment.transaction_id, credential)
    except (CredentialNotFoundError, GatewayError, StoreError) as e:
        log.warning("check_status_gateway_unavailable", order_id=order_id, reason=e.message)
        return {"status": current}

    new_status = translate(gateway_payment.get("status"))
    if new_status == current:
        return {"status": new_status}

    log.info("check_status_transition", order_id=order_id, old_status=current, new_status=new_status)
    if current == PENDING and new_status == PAID:
        # Same decision and side-effect chain as a gateway delivery.
        try:
            await handle_notification(ctx, {"action": REPLAY_ACTION, "data": {"id": payment.transaction_id}})
        except AppError as e:
            log.warning("check_status_replay_failed", order_id=order_id, reason=e.message)
    else:
        try:
            await persist_status(ctx, payment, order, new_status, gateway_payment)
        except StoreError as e:
            await ctx.audit.log_event(
                "check_status.persist_failed",
                {"orderId": order_id, "oldStatus": current, "newStatus": new_status, "error": e.message},
                False,
                payment.gateway_id,
            )
        else:
            await ctx.audit.log_event(
                "check_status.status_updated",
                {"orderId": order_id, "paymentId": payment.transaction_id, "oldStatus": current, "newStatus": new_status},
                True,
                payment.gateway_id,
            )
    return {"status": new_status}
