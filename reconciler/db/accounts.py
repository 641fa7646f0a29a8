"""Account registry (auth admin API): create buyer accounts and look them up by email."""

from typing import Any

import httpx

from reconciler.core.config import Settings
from reconciler.core.exceptions import AccountExistsError, StoreError

_ALREADY_REGISTERED_MARKERS = ("already registered", "already been registered", "email_exists")


def is_already_registered(body: str) -> bool:
    text = (body or "").lower()
    return any(marker in text for marker in _ALREADY_REGISTERED_MARKERS)


class AccountRegistry:
    def __init__(self, http: httpx.AsyncClient, settings: Settings):
        self._http = http
        self._url = settings.auth_admin_url
        self._timeout = settings.http_timeout_seconds
        self._key = settings.supabase_service_key
        self._page_size = settings.account_lookup_page_size
        self._max_pages = settings.account_lookup_max_pages

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self._key,
            "Authorization": f"Bearer {self._key}",
            "Content-Type": "application/json",
        }

    async def create_user(self, email: str, password: str, name: str | None = None) -> str:
        """Create a confirmed account and return its id.

        Raises AccountExistsError when the email is taken, StoreError otherwise.
        """
        body = {
            "email": email,
            "password": password,
            "email_confirm": True,
            "user_metadata": {"name": name or ""},
        }
        try:
            resp = await self._http.post(self._url, json=body, headers=self._headers(), timeout=self._timeout)
        except httpx.HTTPError as e:
            raise StoreError(f"create user failed: {e}") from e
        if resp.status_code >= 400:
            if is_already_registered(resp.text):
                raise AccountExistsError(email)
            raise StoreError(f"create user returned {resp.status_code}", status=resp.status_code, body=resp.text)
        data: dict[str, Any] = resp.json() or {}
        # Response shape differs between API versions
        user_id = data.get("id") or (data.get("user") or {}).get("id")
        if not user_id:
            raise StoreError("create user returned no id", status=resp.status_code, body=resp.text)
        return str(user_id)

    async def find_user_id_by_email(self, email: str) -> str | None:
        """Walk the paged user list; None if not found within the page limit."""
        wanted = email.strip().lower()
        for page in range(1, self._max_pages + 1):
            try:
                resp = await self._http.get(
                    self._url,
                    params={"page": str(page), "per_page": str(self._page_size)},
                    headers=self._headers(),
                    timeout=self._timeout,
                )
            except httpx.HTTPError as e:
                raise StoreError(f"list users failed: {e}") from e
            if resp.status_code >= 400:
                raise StoreError(f"list users returned {resp.status_code}", status=resp.status_code, body=resp.text)
            users = (resp.json() or {}).get("users") or []
            for user in users:
                if (user.get("email") or "").lower() == wanted:
                    return str(user["id"])
            if len(users) < self._page_size:
                return None
        return None
