"""Record store client: filtered reads, partial updates, inserts and upserts over PostgREST."""

from typing import Any, Iterable, TypeVar

import httpx
from pydantic import BaseModel

from reconciler.core.config import Settings
from reconciler.core.exceptions import StoreError
from reconciler.core.logging import get_logger

log = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


def _table(model: type[BaseModel] | str) -> str:
    if isinstance(model, str):
        return model
    return model.Settings.name  # type: ignore[attr-defined]


def _eq(value: Any) -> str:
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    return f"eq.{value}"


def _filters(filters: dict[str, Any]) -> dict[str, str]:
    return {field: _eq(value) for field, value in filters.items()}


class RecordStore:
    """Typed access to the named collections. No business logic lives here."""

    def __init__(self, http: httpx.AsyncClient, settings: Settings):
        self._http = http
        self._base = settings.rest_url
        self._timeout = settings.http_timeout_seconds
        self._key = settings.supabase_service_key

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._key,
            "Authorization": f"Bearer {self._key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        table: str,
        params: dict[str, str] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> httpx.Response:
        url = f"{self._base}/{table}"
        try:
            resp = await self._http.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(prefer),
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            raise StoreError(f"{method} {table} failed: {e}") from e
        if resp.status_code >= 400:
            raise StoreError(
                f"{method} {table} returned {resp.status_code}",
                status=resp.status_code,
                body=resp.text,
            )
        return resp

    async def select(
        self,
        model: type[BaseModel] | str,
        *,
        columns: str = "*",
        order: str | None = None,
        limit: int | None = None,
        **filters: Any,
    ) -> list[dict[str, Any]]:
        """select <columns> from <table> where field=value [order by ...] [limit n]"""
        params = {"select": columns, **_filters(filters)}
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)
        resp = await self._request("GET", _table(model), params=params)
        rows = resp.json()
        return rows if isinstance(rows, list) else []

    async def find(
        self,
        model: type[M],
        *,
        order: str | None = None,
        limit: int | None = None,
        **filters: Any,
    ) -> list[M]:
        rows = await self.select(model, order=order, limit=limit, **filters)
        return [model.model_validate(row) for row in rows]

    async def find_one(self, model: type[M], **filters: Any) -> M | None:
        found = await self.find(model, limit=1, **filters)
        return found[0] if found else None

    async def patch(self, model: type[BaseModel] | str, values: dict[str, Any], **filters: Any) -> None:
        """update <table> set values where field=value"""
        if not filters:
            raise ValueError("patch requires at least one filter")
        await self._request(
            "PATCH",
            _table(model),
            params=_filters(filters),
            json=values,
            prefer="return=minimal",
        )

    async def insert(self, model: type[BaseModel] | str, row: dict[str, Any]) -> None:
        await self._request("POST", _table(model), json=row, prefer="return=minimal")

    async def upsert(
        self,
        model: type[BaseModel],
        row: dict[str, Any],
        on_conflict: Iterable[str] | None = None,
    ) -> None:
        """Insert or merge on the unique key, so repeating the call never duplicates a row."""
        keys = on_conflict or model.Settings.conflict_keys  # type: ignore[attr-defined]
        await self._request(
            "POST",
            _table(model),
            params={"on_conflict": ",".join(keys)},
            json=row,
            prefer="resolution=merge-duplicates,return=minimal",
        )
