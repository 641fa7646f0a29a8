"""Mail sending through the configured provider integration (Resend API)."""

from typing import Any

import httpx

from reconciler.core.exceptions import BadRequestError
from reconciler.core.logging import get_logger
from reconciler.models.integration import Integration
from reconciler.services.context import PipelineContext

log = get_logger(__name__)


def sender_identity(sender_email: str, from_name: str | None) -> str:
    """Display-name form when a name is given, else the bare address."""
    if from_name:
        return f'"{from_name}" <{sender_email}>'
    return sender_email


async def send_via_provider(
    ctx: PipelineContext,
    to: str | list[str],
    subject: str | None,
    html: str | None = None,
    plain_text: str | None = None,
    from_name: str | None = None,
) -> dict[str, Any]:
    settings = ctx.settings
    if not to:
        raise BadRequestError("Missing 'to' field")
    if not html and not plain_text:
        raise BadRequestError("Missing content (html or text)")

    integration = await ctx.store.find_one(Integration, name=settings.email_provider, active=True)
    if not integration or not integration.config:
        log.warning("email_provider_not_configured", provider=settings.email_provider)
        raise BadRequestError(
            f"Email provider '{settings.email_provider}' is not active or configured.",
            details={"hint": "Activate the provider under Settings > Integrations."},
        )
    api_key = integration.config_value("apiKey", "api_key")
    if not api_key:
        raise BadRequestError("Missing Resend API Key in configuration.")
    sender_email = integration.config_value("senderEmail", "from_email", default=settings.default_sender_email)

    body: dict[str, Any] = {
        "from": sender_identity(sender_email, from_name),
        "to": to if isinstance(to, list) else [to],
        "subject": subject or "No Subject",
    }
    if html:
        body["html"] = html
    if plain_text:
        body["text"] = plain_text

    log.info("email_sending", to=body["to"], sender=body["from"])
    try:
        resp = await ctx.http.post(
            settings.resend_api_url,
            json=body,
            headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
            timeout=settings.http_timeout_seconds,
        )
    except httpx.HTTPError as e:
        raise BadRequestError("Resend API request failed", details={"reason": str(e)}) from e
    try:
        data = resp.json()
    except ValueError:
        data = {"body": resp.text}
    if resp.status_code >= 400:
        log.error("email_provider_rejected", status_code=resp.status_code)
        raise BadRequestError("Resend API rejected the request", details=data if isinstance(data, dict) else {"body": data})
    log.info("email_sent", provider_id=data.get("id") if isinstance(data, dict) else None)
    return data
