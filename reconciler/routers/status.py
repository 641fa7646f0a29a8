from fastapi import APIRouter, Depends, Query, Response

from reconciler.deps import get_pipeline_context
from reconciler.services import reconciliation as reconciliation_service
from reconciler.services.context import PipelineContext

router = APIRouter()

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


@router.get("/check-status")
async def check_status(
    response: Response,
    order_id: str = Query(..., alias="orderId", min_length=1),
    ctx: PipelineContext = Depends(get_pipeline_context),
):
    """Polled by the checkout page until the order reaches a terminal status. Always 200."""
    response.headers.update(NO_CACHE_HEADERS)
    return await reconciliation_service.check_order_status(ctx, order_id)
