"""Shared FastAPI dependencies."""

from typing import AsyncGenerator

import httpx
from fastapi import Depends

from reconciler.core.config import Settings, get_settings
from reconciler.services.context import PipelineContext, build_context


async def get_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """One outbound client per invocation; closed when the request ends."""
    async with httpx.AsyncClient() as client:
        yield client


async def get_pipeline_context(
    http: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> PipelineContext:
    """Dependency: configuration and collaborators resolved once for this request."""
    return build_context(http, settings)
