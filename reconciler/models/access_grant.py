from pydantic import BaseModel, ConfigDict


class AccessGrant(BaseModel):
    """Buyer account -> content permission. Unique on (user_id, content_id)."""

    model_config = ConfigDict(extra="ignore")

    user_id: str
    content_id: str
    product_id: str | None = None
    status: str = "active"
    granted_at: str | None = None

    class Settings:
        name = "access_grants"
        conflict_keys = ("user_id", "content_id")
