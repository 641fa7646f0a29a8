"""Record store client against the in-memory PostgREST fake."""

import httpx
import pytest

from reconciler.core.exceptions import StoreError
from reconciler.db.store import RecordStore
from reconciler.models.access_grant import AccessGrant
from reconciler.models.gateway import Gateway
from reconciler.models.order import Order

pytestmark = pytest.mark.asyncio


async def test_find_filters_on_equality_and_booleans(backend, ctx):
    backend.add("gateways", id="gw-1", name="mercado_pago", active=False, private_key="a")
    backend.add("gateways", id="gw-2", name="mercado_pago", active=True, private_key="b")
    found = await ctx.store.find(Gateway, name="mercado_pago", active=True)
    assert [g.id for g in found] == ["gw-2"]


async def test_find_one_returns_none_when_missing(ctx):
    assert await ctx.store.find_one(Order, id="nope") is None


async def test_patch_updates_matching_rows_only(backend, ctx):
    backend.add("orders", id="o-1", status="pending")
    backend.add("orders", id="o-2", status="pending")
    await ctx.store.patch(Order, {"status": "paid"}, id="o-1")
    assert backend.rows("orders", id="o-1")[0]["status"] == "paid"
    assert backend.rows("orders", id="o-2")[0]["status"] == "pending"


async def test_patch_without_filter_is_refused(ctx):
    with pytest.raises(ValueError):
        await ctx.store.patch(Order, {"status": "paid"})


async def test_upsert_does_not_duplicate(backend, ctx):
    row = {"user_id": "u-1", "content_id": "c-1", "product_id": "p-1", "status": "active"}
    await ctx.store.upsert(AccessGrant, row)
    await ctx.store.upsert(AccessGrant, {**row, "granted_at": "later"})
    grants = backend.rows("access_grants")
    assert len(grants) == 1
    assert grants[0]["granted_at"] == "later"


async def test_non_2xx_raises_store_error(backend, ctx):
    backend.failures[("GET", "/rest/v1/orders")] = 503
    with pytest.raises(StoreError) as exc:
        await ctx.store.find(Order, id="o-1")
    assert exc.value.status == 503


async def test_network_error_raises_store_error(settings):
    def boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(boom)) as http:
        store = RecordStore(http, settings)
        with pytest.raises(StoreError):
            await store.find(Order, id="o-1")


async def test_requests_carry_service_credentials(settings):
    seen = {}

    def capture(request: httpx.Request) -> httpx.Response:
        seen["apikey"] = request.headers.get("apikey")
        seen["auth"] = request.headers.get("Authorization")
        seen["id"] = request.url.params.get("id")
        return httpx.Response(200, json=[])

    async with httpx.AsyncClient(transport=httpx.MockTransport(capture)) as http:
        await RecordStore(http, settings).find(Order, id="o-1")
    assert seen["apikey"] == "service-role-key"
    assert seen["auth"] == "Bearer service-role-key"
    assert seen["id"] == "eq.o-1"
