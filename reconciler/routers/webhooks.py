from fastapi import APIRouter, Depends, Request

from reconciler.deps import get_pipeline_context
from reconciler.services import reconciliation as reconciliation_service
from reconciler.services.context import PipelineContext

router = APIRouter()


async def _notification_payload(request: Request) -> dict:
    try:
        payload = await request.json()
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}
    # Some notification shapes only carry the id in the query string
    query_id = request.query_params.get("data.id") or request.query_params.get("id")
    if query_id and not reconciliation_service.extract_transaction_id(payload):
        payload = {**payload, "data": {"id": query_id}}
        payload.setdefault("type", request.query_params.get("type") or request.query_params.get("topic"))
    return payload


@router.post("/mercadopago")
async def mercadopago_webhook(request: Request, ctx: PipelineContext = Depends(get_pipeline_context)):
    """Gateway notification: re-read the transaction from the gateway and reconcile (idempotent)."""
    payload = await _notification_payload(request)
    return await reconciliation_service.handle_notification(ctx, payload)
