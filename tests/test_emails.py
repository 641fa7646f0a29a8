import pytest

from reconciler.models.order import Order
from reconciler.services import emails

pytestmark = pytest.mark.asyncio


def _order() -> Order:
    return Order(
        id="order-1",
        customer_name="Maria <b>",
        customer_email="buyer@example.com",
        items=[{"name": "Curso A", "price": 10}, {"name": "Curso B", "price": None}],
    )


async def test_render_replaces_known_keys_only():
    out = emails.render("Hi {{name}}, {{missing}}", {"name": "Ana"})
    assert out == "Hi Ana, {{missing}}"


async def test_template_variables_escape_and_list_items():
    variables = emails.template_variables(_order(), "https://club.example.com", "123456")
    assert variables["customer_name"] == "Maria &lt;b&gt;"
    assert variables["login_url"] == "https://club.example.com/login"
    assert "Curso A</strong> - R$ 10.00" in variables["items"]
    assert "Curso B</strong> - R$ 0.00" in variables["items"]
    assert variables["product_name"] == "Curso A"


async def test_default_template_when_none_configured(ctx):
    subject, html = await emails.resolve_template(ctx.store)
    assert subject == emails.DEFAULT_SUBJECT
    assert "{{login_url}}" in html


async def test_disabled_template_signals_skip(backend, ctx):
    backend.add("email_templates", id="t-1", event_type="payment_approved", subject="S", html_body="B", active=False)
    assert await emails.resolve_template(ctx.store) is None


async def test_configured_template_is_used(backend, ctx):
    backend.add(
        "email_templates", id="t-1", event_type="payment_approved", subject="Oi {{customer_name}}", html_body="<p>{{login_url}}</p>", active=True
    )
    assert await emails.resolve_template(ctx.store) == ("Oi {{customer_name}}", "<p>{{login_url}}</p>")
