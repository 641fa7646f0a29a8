from pydantic import BaseModel, ConfigDict


class Gateway(BaseModel):
    """Stored credential used to query a payment gateway."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    active: bool = False
    private_key: str | None = None

    class Settings:
        name = "gateways"
