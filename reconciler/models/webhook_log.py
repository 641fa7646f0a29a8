import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, Field


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class WebhookLog(BaseModel):
    """Append-only audit row for every pipeline decision and side-effect attempt."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    gateway_id: str | None = None
    direction: str = "incoming"
    event: str
    payload: str  # JSON-encoded
    raw_data: str | None = None
    processed: bool = False
    created_at: str = Field(default_factory=_now_iso)

    class Settings:
        name = "webhook_logs"
