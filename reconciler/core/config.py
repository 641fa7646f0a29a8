from functools import lru_cache
from typing import Any, List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_CORS = ["*"]


def _parse_cors_origins(v: Any) -> List[str]:
    try:
        if v is None or v == "":
            return _DEFAULT_CORS.copy()
        if isinstance(v, list):
            return [x for x in v if isinstance(x, str) and x.strip()]
        s = str(v).strip()
        if not s:
            return _DEFAULT_CORS.copy()
        if s.startswith("["):
            import json
            out = json.loads(s)
            return [x for x in out if isinstance(x, str) and x.strip()] or _DEFAULT_CORS.copy()
        return [x.strip() for x in s.split(",") if x.strip()] or _DEFAULT_CORS.copy()
    except Exception:
        return _DEFAULT_CORS.copy()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # App
    env: str = Field(default="development", description="ENV")
    debug: bool = Field(default=False, description="DEBUG")

    # Record store (PostgREST + auth admin + edge functions)
    supabase_url: str = Field(default="http://localhost:54321", alias="SUPABASE_URL")
    supabase_service_key: str = Field(default="", alias="SUPABASE_SERVICE_ROLE_KEY")

    # Payment gateway
    gateway_name: str = Field(default="mercado_pago", alias="GATEWAY_NAME")
    gateway_api_url: str = Field(default="https://api.mercadopago.com", alias="GATEWAY_API_URL")
    gateway_timeout_seconds: float = Field(default=8.0, alias="GATEWAY_TIMEOUT_SECONDS")

    # Outbound calls to the store and collaborators
    http_timeout_seconds: float = Field(default=10.0, alias="HTTP_TIMEOUT_SECONDS")

    # Fulfillment
    default_member_password: str = Field(default="123456", alias="DEFAULT_MEMBER_PASSWORD")
    app_public_url: str = Field(default="https://seu-dominio.vercel.app", alias="APP_PUBLIC_URL")
    account_lookup_page_size: int = Field(default=200, alias="ACCOUNT_LOOKUP_PAGE_SIZE")
    account_lookup_max_pages: int = Field(default=10, alias="ACCOUNT_LOOKUP_MAX_PAGES")

    # Email provider
    email_provider: str = Field(default="resend", alias="EMAIL_PROVIDER")
    resend_api_url: str = Field(default="https://api.resend.com/emails", alias="RESEND_API_URL")
    default_sender_email: str = Field(default="onboarding@resend.dev", alias="DEFAULT_SENDER_EMAIL")

    # Sentry
    sentry_dsn: str | None = Field(default=None, alias="SENTRY_DSN")

    # CORS: env as string, exposed as list
    cors_origins_raw: str = Field(
        default="*",
        alias="CORS_ORIGINS",
        description="Comma-separated or JSON list",
    )

    @property
    def cors_origins(self) -> List[str]:
        return _parse_cors_origins(getattr(self, "cors_origins_raw", None))

    @property
    def rest_url(self) -> str:
        return f"{self.supabase_url.rstrip('/')}/rest/v1"

    @property
    def auth_admin_url(self) -> str:
        return f"{self.supabase_url.rstrip('/')}/auth/v1/admin/users"

    @property
    def functions_url(self) -> str:
        return f"{self.supabase_url.rstrip('/')}/functions/v1"


@lru_cache
def get_settings() -> Settings:
    return Settings()
