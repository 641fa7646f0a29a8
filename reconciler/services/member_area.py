"""Member-area URL for the confirmation email.

Resolution order, first hit wins:
  1. custom domain of the first order item product that has one
  2. custom domain of the checkout's product (legacy single-product orders)
  3. APP_PUBLIC_URL
A custom domain is found by walking product -> content -> member area -> domain.
"""

from typing import Awaitable, Callable

from reconciler.core.config import Settings
from reconciler.core.exceptions import error_reason
from reconciler.core.logging import get_logger
from reconciler.db.store import RecordStore
from reconciler.models.catalog import Checkout, Content, Domain, MemberArea, ProductContent
from reconciler.models.order import Order

log = get_logger(__name__)

Resolver = Callable[[RecordStore, Order], Awaitable[str | None]]


async def domain_for_product(store: RecordStore, product_id: str) -> str | None:
    link = await store.find_one(ProductContent, product_id=product_id)
    if not link:
        return None
    content = await store.find_one(Content, id=link.content_id)
    if not content or not content.member_area_id:
        return None
    area = await store.find_one(MemberArea, id=content.member_area_id)
    if not area or not area.domain_id:
        return None
    domain = await store.find_one(Domain, id=area.domain_id)
    return domain.domain if domain else None


async def checkout_product_id(store: RecordStore, order: Order) -> str | None:
    if not order.checkout_id:
        return None
    checkout = await store.find_one(Checkout, id=order.checkout_id)
    return checkout.product_id if checkout else None


async def _from_item_products(store: RecordStore, order: Order) -> str | None:
    for item in order.items:
        if item.product_id:
            domain = await domain_for_product(store, item.product_id)
            if domain:
                return domain
    return None


async def _from_checkout_product(store: RecordStore, order: Order) -> str | None:
    product_id = await checkout_product_id(store, order)
    if not product_id:
        return None
    return await domain_for_product(store, product_id)


RESOLVERS: tuple[Resolver, ...] = (_from_item_products, _from_checkout_product)


async def resolve_member_area_url(store: RecordStore, settings: Settings, order: Order) -> str:
    for resolver in RESOLVERS:
        try:
            domain = await resolver(store, order)
        except Exception as e:
            log.warning("member_area_lookup_failed", resolver=resolver.__name__, reason=error_reason(e))
            continue
        if domain:
            return f"https://{domain}"
    return settings.app_public_url.rstrip("/")
