"""Side-effect chain run after a gateway status has been observed.

Order: persist status, notify merchant webhooks, confirmation email, buyer
account, content access. Only persistence may fail the invocation; every later
step records its own failure and the chain moves on.
"""

import json
from dataclasses import dataclass
from typing import Any

from reconciler.core.exceptions import error_reason
from reconciler.models.order import Order
from reconciler.models.payment import Payment
from reconciler.services import emails
from reconciler.services.access import GrantResult, grant_order_access
from reconciler.services.accounts import ensure_buyer_account
from reconciler.services.context import PipelineContext
from reconciler.services.decision import Decision
from reconciler.services.dispatch import build_order_event
from reconciler.services.member_area import resolve_member_area_url


EMAIL_SENT = "sent"
EMAIL_SKIPPED = "skipped"
EMAIL_FAILED = "failed"


@dataclass
class FulfillmentReport:
    status: str
    decision: Decision
    dispatched: bool = False
    email: str | None = None
    account_id: str | None = None
    grants: GrantResult | None = None


async def persist_status(
    ctx: PipelineContext,
    payment: Payment,
    order: Order | None,
    new_status: str,
    gateway_response: dict[str, Any] | None,
) -> None:
    """Patch payment then order. StoreError propagates: nothing downstream runs without it."""
    values: dict[str, Any] = {"status": new_status}
    if gateway_response is not None:
        values["raw_response"] = json.dumps(gateway_response, default=str)
    await ctx.store.patch(Payment, values, id=payment.id)
    await ctx.store.patch(Order, {"status": new_status}, id=payment.order_id)


async def notify_merchant(ctx: PipelineContext, payment: Payment, order: Order | None, new_status: str) -> bool:
    owner_id = payment.user_id or (order.user_id if order else None)
    try:
        payload = build_order_event(order, payment, new_status)
        await ctx.dispatcher.dispatch(owner_id, payload)
    except Exception as e:
        await ctx.audit.log_event(
            "webhook.dispatch_error",
            {"error": error_reason(e), "type": type(e).__name__, "orderId": payment.order_id},
            False,
        )
        return False
    await ctx.audit.log_event(
        "webhook.dispatched",
        {"orderId": payment.order_id, "event": payload["event"], "ownerId": owner_id},
        True,
        payment.gateway_id,
    )
    return True


async def send_confirmation(ctx: PipelineContext, payment: Payment, order: Order) -> str:
    if not order.customer_email:
        await ctx.audit.log_event("webhook.email_skipped", {"orderId": order.id, "reason": "no customer email"}, True)
        return EMAIL_SKIPPED
    try:
        template = await emails.resolve_template(ctx.store)
        if template is None:
            await ctx.audit.log_event(
                "webhook.email_skipped", {"orderId": order.id, "reason": "notifications disabled"}, True
            )
            return EMAIL_SKIPPED
        sender = await emails.resolve_sender(ctx.store, ctx.settings)
        subject, body = template
        member_area_url = await resolve_member_area_url(ctx.store, ctx.settings, order)
        variables = emails.template_variables(order, member_area_url, ctx.settings.default_member_password)
        await ctx.mailer.send(
            order.customer_email,
            emails.render(subject, variables),
            emails.render(body, variables),
            from_name=sender.config_value("senderName", "from_name"),
        )
    except Exception as e:
        await ctx.audit.log_event(
            "webhook.error_sending_email",
            {"error": error_reason(e), "type": type(e).__name__, "orderId": order.id},
            False,
        )
        return EMAIL_FAILED
    await ctx.audit.log_event(
        "webhook.email_sent", {"orderId": order.id, "email": order.customer_email}, True, payment.gateway_id
    )
    return EMAIL_SENT


async def run_fulfillment(
    ctx: PipelineContext,
    payment: Payment,
    order: Order | None,
    new_status: str,
    decision: Decision,
    gateway_response: dict[str, Any] | None = None,
) -> FulfillmentReport:
    report = FulfillmentReport(status=new_status, decision=decision)

    await persist_status(ctx, payment, order, new_status, gateway_response)
    await ctx.audit.log_event(
        "webhook.success",
        {
            "paymentId": payment.transaction_id,
            "oldPaymentStatus": payment.status,
            "oldOrderStatus": order.status if order else None,
            "newStatus": new_status,
            "statusChanged": decision.update_needed,
        },
        True,
        payment.gateway_id,
    )

    report.dispatched = await notify_merchant(ctx, payment, order, new_status)

    if not decision.fulfillment_authorized or order is None:
        return report

    report.email = await send_confirmation(ctx, payment, order)

    try:
        report.account_id = await ensure_buyer_account(ctx, order)
    except Exception as e:
        await ctx.audit.log_event(
            "webhook.error_user_creation", {"error": error_reason(e), "type": type(e).__name__, "orderId": order.id}, False
        )

    if not report.account_id:
        await ctx.audit.log_event("webhook.warning_no_user_id", {"orderId": order.id}, False)
        return report

    try:
        report.grants = await grant_order_access(ctx, order, report.account_id)
    except Exception as e:
        await ctx.audit.log_event(
            "webhook.error_granting_access", {"error": error_reason(e), "type": type(e).__name__, "orderId": order.id}, False
        )
        return report
    await ctx.audit.log_event(
        "webhook.access_granted",
        {
            "orderId": order.id,
            "userId": report.account_id,
            "productsCount": len(report.grants.product_ids),
            "productIds": report.grants.product_ids,
            "granted": report.grants.granted,
            "failed": report.grants.failed,
        },
        True,
        payment.gateway_id,
    )
    return report
