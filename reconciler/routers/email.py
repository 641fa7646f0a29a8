from fastapi import APIRouter, Depends
from pydantic import BaseModel

from reconciler.deps import get_pipeline_context
from reconciler.services import mail_provider
from reconciler.services.context import PipelineContext

router = APIRouter()


class SendEmailRequest(BaseModel):
    to: str | list[str] | None = None
    subject: str | None = None
    html: str | None = None
    plain_text: str | None = None
    from_name: str | None = None


@router.post("/send-email")
async def send_email(body: SendEmailRequest, ctx: PipelineContext = Depends(get_pipeline_context)):
    """Send through the active provider integration; returns the provider response."""
    return await mail_provider.send_via_provider(
        ctx,
        body.to,
        body.subject,
        html=body.html,
        plain_text=body.plain_text,
        from_name=body.from_name,
    )
