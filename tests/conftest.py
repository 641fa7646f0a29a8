import json
import os
import uuid
from typing import Any, AsyncGenerator

import httpx
import pytest
import pytest_asyncio

os.environ.setdefault("SUPABASE_URL", "http://store.test")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "service-role-key")
os.environ.setdefault("GATEWAY_API_URL", "https://gateway.test")
os.environ.setdefault("RESEND_API_URL", "https://mail.test/emails")
os.environ.setdefault("APP_PUBLIC_URL", "https://members.example.com")

UNIQUE_KEYS = {"access_grants": ("user_id", "content_id")}


def _matches(row: dict[str, Any], field: str, expr: str) -> bool:
    if not expr.startswith("eq."):
        return True
    value = row.get(field)
    if isinstance(value, bool):
        value = str(value).lower()
    return value is not None and str(value) == expr[3:]


class FakeBackend:
    """In-memory record store, account registry, gateway and collaborator functions."""

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.users: list[dict[str, Any]] = []
        self.gateway_payments: dict[str, dict[str, Any]] = {}
        self.gateway_calls: list[str] = []
        self.dispatched: list[dict[str, Any]] = []
        self.emails: list[dict[str, Any]] = []
        self.provider_emails: list[dict[str, Any]] = []
        self.create_user_calls: int = 0
        self.mutations: list[tuple[str, str]] = []
        # (method, path) -> status code to force
        self.failures: dict[tuple[str, str], int] = {}
        # registered in the account registry but missing from its user listing
        self.hidden_emails: set[str] = set()
        self.fail_content_ids: set[str] = set()
        self.gateway_timeout = False

    # -- seeding helpers -------------------------------------------------
    def add(self, table: str, **row: Any) -> dict[str, Any]:
        self.tables.setdefault(table, []).append(row)
        return row

    def rows(self, table: str, **filters: Any) -> list[dict[str, Any]]:
        return [r for r in self.tables.get(table, []) if all(r.get(k) == v for k, v in filters.items())]

    def audit_events(self) -> list[str]:
        return [r["event"] for r in self.tables.get("webhook_logs", [])]

    def data_mutations(self) -> list[tuple[str, str]]:
        """Writes other than audit rows."""
        return [m for m in self.mutations if m[1] != "webhook_logs"]

    def seed_checkout(
        self,
        *,
        order_status: str = "pending",
        payment_status: str = "pending",
        gateway_status: str = "approved",
        email: str = "buyer@example.com",
        customer_user_id: str | None = None,
        products: dict[str, list[str]] | None = None,
        with_items: bool = True,
    ) -> dict[str, Any]:
        products = products if products is not None else {"prod-1": ["content-1", "content-2"], "prod-2": ["content-3"]}
        self.add("gateways", id="gw-1", name="mercado_pago", active=True, private_key="APP_USR-token")
        self.add("integrations", id="int-1", name="resend", active=True, config={"apiKey": "re_key", "senderName": "Loja"})
        items = [{"product_id": pid, "name": f"Produto {pid}", "price": 97.0} for pid in products] if with_items else []
        self.add(
            "orders",
            id="order-1",
            checkout_id="checkout-1",
            status=order_status,
            customer_email=email,
            customer_name="Maria Silva",
            customer_phone="+55 11 98765-4321",
            customer_cpf="123.456.789-09",
            customer_user_id=customer_user_id,
            items=items,
            total=97.0 * len(products),
            currency="BRL",
            payment_method="pix",
            user_id="merchant-1",
        )
        self.add(
            "payments",
            id="pay-1",
            order_id="order-1",
            gateway_id="gw-1",
            transaction_id="123456",
            status=payment_status,
            user_id="merchant-1",
            created_at="2026-01-01T10:00:00+00:00",
        )
        self.add("checkouts", id="checkout-1", product_id=next(iter(products), None))
        for pid, contents in products.items():
            for cid in contents:
                self.add("product_contents", product_id=pid, content_id=cid)
        self.gateway_payments["123456"] = {"id": 123456, "status": gateway_status}
        return {"order_id": "order-1", "transaction_id": "123456"}

    # -- transport -------------------------------------------------------
    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        forced = self.failures.get((request.method, path))
        if forced:
            return httpx.Response(forced, json={"message": "forced failure"})
        host = request.url.host
        if host == "gateway.test":
            return self._gateway(request)
        if host == "mail.test":
            self.provider_emails.append(json.loads(request.content))
            return httpx.Response(200, json={"id": "re_123"})
        if path.startswith("/rest/v1/"):
            return self._rest(request, path[len("/rest/v1/"):])
        if path == "/auth/v1/admin/users":
            return self._auth(request)
        if path == "/functions/v1/dispatch-webhook":
            self.dispatched.append(json.loads(request.content))
            return httpx.Response(200, json={"ok": True})
        if path == "/functions/v1/send-email":
            self.emails.append(json.loads(request.content))
            return httpx.Response(200, json={"id": "email-1"})
        return httpx.Response(404, json={"message": f"no route {path}"})

    def _gateway(self, request: httpx.Request) -> httpx.Response:
        tx = request.url.path.rsplit("/", 1)[-1]
        self.gateway_calls.append(tx)
        if self.gateway_timeout:
            raise httpx.ReadTimeout("gateway read timed out", request=request)
        if request.headers.get("Authorization") != "Bearer APP_USR-token":
            return httpx.Response(401, json={"message": "invalid token"})
        data = self.gateway_payments.get(tx)
        if data is None:
            return httpx.Response(404, json={"message": "Payment not found"})
        return httpx.Response(200, json=data)

    def _rest(self, request: httpx.Request, table: str) -> httpx.Response:
        params = dict(request.url.params)
        filters = {k: v for k, v in params.items() if k not in ("select", "order", "limit", "on_conflict")}
        rows = self.tables.setdefault(table, [])
        if request.method == "GET":
            found = [r for r in rows if all(_matches(r, f, e) for f, e in filters.items())]
            if "limit" in params:
                found = found[: int(params["limit"])]
            return httpx.Response(200, json=found)
        self.mutations.append((request.method, table))
        if request.method == "PATCH":
            values = json.loads(request.content)
            for r in rows:
                if all(_matches(r, f, e) for f, e in filters.items()):
                    r.update(values)
            return httpx.Response(204)
        if request.method == "POST":
            row = json.loads(request.content)
            if table == "access_grants" and row.get("content_id") in self.fail_content_ids:
                return httpx.Response(500, json={"message": "grant insert failed"})
            keys = UNIQUE_KEYS.get(table)
            if keys:
                existing = [r for r in rows if all(r.get(k) == row.get(k) for k in keys)]
                if existing:
                    if "on_conflict" not in params:
                        return httpx.Response(409, json={"code": "23505", "message": "duplicate key value"})
                    existing[0].update(row)
                    return httpx.Response(201)
            rows.append(row)
            return httpx.Response(201)
        return httpx.Response(405)

    def _auth(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            self.create_user_calls += 1
            body = json.loads(request.content)
            if body["email"] in self.hidden_emails or any(u["email"] == body["email"] for u in self.users):
                return httpx.Response(
                    422,
                    json={"code": "email_exists", "msg": "A user with this email address has already been registered"},
                )
            user = {"id": str(uuid.uuid4()), "email": body["email"]}
            self.users.append(user)
            return httpx.Response(200, json=user)
        page = int(request.url.params.get("page", "1"))
        per_page = int(request.url.params.get("per_page", "50"))
        start = (page - 1) * per_page
        return httpx.Response(200, json={"users": self.users[start : start + per_page]})


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def settings():
    from reconciler.core.config import Settings
    return Settings()


@pytest_asyncio.fixture
async def http(backend: FakeBackend) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(backend.handler)) as client:
        yield client


@pytest.fixture
def ctx(http, settings):
    from reconciler.services.context import build_context
    return build_context(http, settings)


@pytest_asyncio.fixture
async def client(backend: FakeBackend) -> AsyncGenerator[httpx.AsyncClient, None]:
    from reconciler.deps import get_http_client
    from reconciler.main import app

    async def _mock_http() -> AsyncGenerator[httpx.AsyncClient, None]:
        async with httpx.AsyncClient(transport=httpx.MockTransport(backend.handler)) as c:
            yield c

    app.dependency_overrides[get_http_client] = _mock_http
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
