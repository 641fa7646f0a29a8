"""Payment gateway: credential selection and the authoritative status query."""

from typing import Any

import httpx

from reconciler.core.config import Settings
from reconciler.core.exceptions import CredentialNotFoundError, GatewayError
from reconciler.db.store import RecordStore
from reconciler.models.gateway import Gateway
from reconciler.models.payment import Payment


async def resolve_credential(store: RecordStore, settings: Settings, payment: Payment | None) -> Gateway:
    """Active gateway linked to the payment, else the first active one of this type.

    The fallback covers payment records that predate the gateway link or are not
    yet visible to this invocation.
    """
    gateways = await store.find(Gateway, name=settings.gateway_name, active=True)
    usable = [g for g in gateways if g.private_key]
    if not usable:
        raise CredentialNotFoundError(f"No active {settings.gateway_name} gateway found")
    if payment and payment.gateway_id:
        for g in usable:
            if g.id == payment.gateway_id:
                return g
    return usable[0]


class GatewayClient:
    def __init__(self, http: httpx.AsyncClient, settings: Settings):
        self._http = http
        self._base = settings.gateway_api_url.rstrip("/")
        self._timeout = settings.gateway_timeout_seconds

    async def fetch_payment(self, transaction_id: str, credential: Gateway) -> dict[str, Any]:
        """GET /v1/payments/{id}. Bounded by the gateway timeout."""
        url = f"{self._base}/v1/payments/{transaction_id}"
        try:
            resp = await self._http.get(
                url,
                headers={"Authorization": f"Bearer {credential.private_key}"},
                timeout=self._timeout,
            )
        except httpx.TimeoutException as e:
            raise GatewayError(f"Gateway status query timed out for {transaction_id}") from e
        except httpx.HTTPError as e:
            raise GatewayError(f"Gateway status query failed: {e}") from e
        if resp.status_code >= 400:
            raise GatewayError(
                f"Failed to fetch payment from gateway: {resp.status_code}",
                status=resp.status_code,
                body=resp.text,
            )
        data = resp.json()
        if not isinstance(data, dict):
            raise GatewayError("Gateway returned an unexpected payload", status=resp.status_code, body=resp.text)
        return data
