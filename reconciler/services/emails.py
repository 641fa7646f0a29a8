"""Purchase confirmation email: template resolution, variable substitution, hand-off to the mail function."""

import html
from typing import Any

import httpx

from reconciler.core.config import Settings
from reconciler.core.exceptions import CollaboratorError, NotFoundError
from reconciler.db.store import RecordStore
from reconciler.models.email_template import EmailTemplate
from reconciler.models.integration import Integration
from reconciler.models.order import Order

SEND_EMAIL_FUNCTION = "send-email"
PAYMENT_APPROVED_EVENT = "payment_approved"

DEFAULT_SUBJECT = "Pagamento Aprovado - Acesso Liberado!"

DEFAULT_HTML = """<!DOCTYPE html>
<html lang="pt-BR">
<head><meta charset="UTF-8"><title>Acesso Liberado!</title></head>
<body style="margin:0;padding:0;background-color:#f6f6f6;font-family:Arial,sans-serif;">
  <div style="max-width:600px;margin:0 auto;background:#ffffff;padding:20px;text-align:center;">
    <p style="font-size:24px;font-weight:bold;color:#1a1a1a;">Ol&aacute;, {{customer_name}}!</p>
    <p style="font-size:16px;color:#555555;">Seu pagamento foi aprovado com sucesso!<br><br>
      Voc&ecirc; j&aacute; pode acessar a &aacute;rea de membros.</p>
    <div style="background:#f0f9ff;border-left:4px solid #007bff;padding:15px;margin:20px 0;text-align:left;">
      <p style="font-size:14px;font-weight:bold;color:#007bff;margin:0 0 10px 0;">PRODUTOS ADQUIRIDOS:</p>
      {{items}}
    </div>
    <div style="background:#f8f9fa;border:2px solid #007bff;border-radius:8px;padding:20px;margin:20px 0;text-align:left;">
      <p style="font-size:14px;font-weight:bold;color:#007bff;text-align:center;">SEUS DADOS DE ACESSO</p>
      <p style="font-size:14px;color:#333;"><strong>Email:</strong> {{customer_email}}</p>
      <p style="font-size:14px;color:#333;"><strong>Senha:</strong> {{password}}</p>
      <p style="font-size:12px;color:#666;font-style:italic;">Recomendamos alterar sua senha ap&oacute;s o primeiro acesso.</p>
    </div>
    <a href="{{login_url}}" target="_blank"
       style="background:#007bff;padding:14px 30px;color:#ffffff;display:inline-block;font-size:16px;font-weight:bold;text-decoration:none;border-radius:6px;">
      ACESSAR &Aacute;REA DE MEMBROS</a>
    <p style="font-size:11px;color:#aaaaaa;border-top:1px solid #eeeeee;margin-top:30px;padding-top:20px;">
      Este &eacute; um e-mail autom&aacute;tico transacional e n&atilde;o deve ser respondido.<br>{{product_name}}</p>
  </div>
</body>
</html>
"""


def render(template: str, variables: dict[str, Any]) -> str:
    """Plain {{key}} replacement; unknown placeholders are left as-is."""
    out = template
    for key, value in variables.items():
        out = out.replace("{{" + key + "}}", "" if value is None else str(value))
    return out


def render_items_html(order: Order) -> str:
    if not order.items:
        return f'<p style="font-size:14px;color:#333;margin:5px 0;"><strong>{html.escape(product_name(order))}</strong></p>'
    rows = []
    for item in order.items:
        price = f"{item.price:.2f}" if item.price is not None else "0.00"
        rows.append(
            f'<p style="font-size:14px;color:#333;margin:5px 0;"><strong>{html.escape(item.name)}</strong> - R$ {price}</p>'
        )
    return "\n".join(rows)


def product_name(order: Order) -> str:
    if order.items and order.items[0].name:
        return order.items[0].name
    return "seu produto"


def template_variables(order: Order, member_area_url: str, password: str) -> dict[str, Any]:
    return {
        "customer_name": html.escape(order.customer_name or ""),
        "customer_email": html.escape(order.customer_email or ""),
        "password": html.escape(password),
        "login_url": f"{member_area_url}/login",
        "product_name": html.escape(product_name(order)),
        "items": render_items_html(order),
        "order_id": order.id,
    }


async def resolve_template(store: RecordStore, event_type: str = PAYMENT_APPROVED_EVENT) -> tuple[str, str] | None:
    """(subject, html) for the event; default message if none configured; None if disabled."""
    template = await store.find_one(EmailTemplate, event_type=event_type)
    if template is None:
        return DEFAULT_SUBJECT, DEFAULT_HTML
    if not template.active:
        return None
    return template.subject or DEFAULT_SUBJECT, template.html_body or DEFAULT_HTML


async def resolve_sender(store: RecordStore, settings: Settings) -> Integration:
    integration = await store.find_one(Integration, name=settings.email_provider, active=True)
    if not integration or not integration.config:
        raise NotFoundError(f"Email provider '{settings.email_provider}' is not active or configured")
    return integration


class MailSender:
    """Client of the send-email function."""

    def __init__(self, http: httpx.AsyncClient, settings: Settings):
        self._http = http
        self._url = f"{settings.functions_url}/{SEND_EMAIL_FUNCTION}"
        self._key = settings.supabase_service_key
        self._timeout = settings.http_timeout_seconds

    async def send(self, to: str, subject: str, html_body: str, from_name: str | None = None) -> None:
        body: dict[str, Any] = {"to": to, "subject": subject, "html": html_body}
        if from_name:
            body["from_name"] = from_name
        try:
            resp = await self._http.post(
                self._url,
                json=body,
                headers={"Authorization": f"Bearer {self._key}", "Content-Type": "application/json"},
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            raise CollaboratorError(f"send-email failed: {e}") from e
        if resp.status_code >= 400:
            raise CollaboratorError(f"send-email returned {resp.status_code}", status=resp.status_code, body=resp.text)
