"""Content access grants for every product in an order."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from reconciler.core.exceptions import StoreError, error_reason
from reconciler.core.logging import get_logger
from reconciler.models.access_grant import AccessGrant
from reconciler.models.catalog import ProductContent
from reconciler.models.order import Order
from reconciler.services.context import PipelineContext
from reconciler.services.member_area import checkout_product_id

log = get_logger(__name__)


@dataclass
class GrantResult:
    product_ids: list[str] = field(default_factory=list)
    granted: int = 0
    failed: int = 0


async def products_to_grant(ctx: PipelineContext, order: Order) -> list[str]:
    """Item product ids in order, de-duplicated; the checkout's product when items carry none."""
    product_ids: list[str] = []
    for item in order.items:
        if item.product_id and item.product_id not in product_ids:
            product_ids.append(item.product_id)
    if product_ids:
        return product_ids
    log.info("grant_fallback_checkout_product", order_id=order.id)
    try:
        legacy = await checkout_product_id(ctx.store, order)
    except Exception as e:
        log.warning("checkout_lookup_failed", order_id=order.id, reason=error_reason(e))
        return []
    return [legacy] if legacy else []


async def grant_order_access(ctx: PipelineContext, order: Order, user_id: str) -> GrantResult:
    """Upsert one active grant per (user, content). Each failure is recorded and skipped."""
    result = GrantResult(product_ids=await products_to_grant(ctx, order))
    for product_id in result.product_ids:
        try:
            links = await ctx.store.find(ProductContent, product_id=product_id)
        except Exception as e:
            result.failed += 1
            await ctx.audit.log_event(
                "webhook.error_fetching_product_contents",
                {"productId": product_id, "error": error_reason(e), "type": type(e).__name__},
                False,
            )
            continue
        for link in links:
            try:
                grant = AccessGrant(
                    user_id=user_id,
                    content_id=link.content_id,
                    product_id=product_id,
                    status="active",
                    granted_at=datetime.now(timezone.utc).isoformat(),
                )
                await ctx.store.upsert(AccessGrant, grant.model_dump())
            except Exception as e:
                result.failed += 1
                await ctx.audit.log_event(
                    "webhook.error_granting_content",
                    {
                        "productId": product_id,
                        "contentId": link.content_id,
                        "error": error_reason(e),
                        "type": type(e).__name__,
                        "body": e.body[:500] if isinstance(e, StoreError) else "",
                    },
                    False,
                )
                continue
            result.granted += 1
            log.info("access_granted", product_id=product_id, content_id=link.content_id, user_id=user_id)
    return result
