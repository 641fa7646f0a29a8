from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator


class OrderItem(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    product_id: str | None = None  # absent on legacy single-product orders
    name: str = ""
    price: float | None = None


class Order(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str
    checkout_id: str | None = None
    status: str = "pending"
    customer_email: str | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    customer_cpf: str | None = None
    customer_user_id: str | None = None  # linked buyer account
    items: list[OrderItem] = []
    total: float | None = None
    amount: float | None = None
    currency: str | None = None
    payment_method: str | None = None
    user_id: str | None = None  # merchant owner
    created_at: datetime | None = None

    class Settings:
        name = "orders"

    @field_validator("items", mode="before")
    @classmethod
    def _items_default(cls, v):
        return v if isinstance(v, list) else []
