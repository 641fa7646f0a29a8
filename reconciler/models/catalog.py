"""Read-only catalog records walked during fulfillment."""

from pydantic import BaseModel, ConfigDict


class Checkout(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    product_id: str | None = None

    class Settings:
        name = "checkouts"


class ProductContent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    product_id: str
    content_id: str

    class Settings:
        name = "product_contents"


class Content(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    member_area_id: str | None = None

    class Settings:
        name = "contents"


class MemberArea(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    domain_id: str | None = None

    class Settings:
        name = "member_areas"


class Domain(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    domain: str

    class Settings:
        name = "domains"


class Profile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    email: str | None = None

    class Settings:
        name = "profiles"
