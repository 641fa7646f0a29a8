from datetime import datetime

from pydantic import BaseModel, ConfigDict


class Payment(BaseModel):
    """One gateway transaction attempt for an order."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str
    order_id: str
    gateway_id: str | None = None
    transaction_id: str | None = None
    status: str = "pending"  # canonical: pending | paid | failed | refunded
    raw_response: str | None = None  # gateway payload, JSON-encoded
    user_id: str | None = None  # merchant owner
    created_at: datetime | None = None

    class Settings:
        name = "payments"
