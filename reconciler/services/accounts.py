"""Buyer account: link an existing account or create one, then persist the link on the order."""

from reconciler.core.exceptions import AccountExistsError, StoreError, error_reason
from reconciler.core.logging import get_logger
from reconciler.models.catalog import Profile
from reconciler.models.order import Order
from reconciler.services.context import PipelineContext

log = get_logger(__name__)


async def find_existing_account(ctx: PipelineContext, email: str) -> str | None:
    """Account registry first, profiles table second."""
    try:
        user_id = await ctx.accounts.find_user_id_by_email(email)
    except Exception as e:
        log.warning("account_registry_lookup_failed", email=email, reason=error_reason(e))
        user_id = None
    if user_id:
        await ctx.audit.log_event("webhook.user_found_auth", {"userId": user_id, "email": email}, True)
        return user_id

    try:
        profile = await ctx.store.find_one(Profile, email=email)
    except Exception as e:
        log.warning("profile_lookup_failed", email=email, reason=error_reason(e))
        profile = None
    if profile:
        await ctx.audit.log_event("webhook.user_found_profiles", {"userId": profile.id, "email": email}, True)
        return profile.id

    await ctx.audit.log_event("webhook.error_user_not_in_profiles", {"email": email}, False)
    return None


async def ensure_buyer_account(ctx: PipelineContext, order: Order) -> str | None:
    """Return the buyer account id for the order, creating it if needed.

    Errors other than "already registered" are recorded and yield None; the
    grant step is then skipped for this pass and retried on the next event.
    """
    if order.customer_user_id:
        return order.customer_user_id
    email = order.customer_email
    if not email:
        await ctx.audit.log_event("webhook.warning_no_customer_email", {"orderId": order.id}, False)
        return None

    user_id: str | None = None
    try:
        user_id = await ctx.accounts.create_user(email, ctx.settings.default_member_password, order.customer_name)
        await ctx.audit.log_event("webhook.user_created", {"userId": user_id, "email": email}, True)
    except AccountExistsError:
        log.info("account_exists", email=email)
        user_id = await find_existing_account(ctx, email)
    except StoreError as e:
        await ctx.audit.log_event(
            "webhook.error_user_creation_failed",
            {"error": e.message, "body": e.body[:500], "email": email},
            False,
        )
        return None

    if not user_id:
        return None

    # Persist the link now so a concurrent or later pass sees it.
    try:
        await ctx.store.patch(Order, {"customer_user_id": user_id}, id=order.id)
    except StoreError as e:
        await ctx.audit.log_event("webhook.error_linking_user", {"error": e.message, "orderId": order.id}, False)
    return user_id
