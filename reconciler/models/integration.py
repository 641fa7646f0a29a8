from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Integration(BaseModel):
    """Third-party provider settings (e.g. the email sender)."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    name: str
    active: bool = False
    config: dict[str, Any] | None = Field(default=None)

    class Settings:
        name = "integrations"

    def config_value(self, *keys: str, default: str | None = None) -> str | None:
        cfg = self.config or {}
        for key in keys:
            if cfg.get(key):
                return cfg[key]
        return default
