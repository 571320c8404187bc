"""HTTP client for the Designer catalog (personas, problems, behaviours, LEIAs)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .config import CATALOG_BASE_URL, CATALOG_KEY, CATALOG_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

CATALOG_PATH = "/api/v1/catalog"
WIZARD_SEARCH_PATH = "/api/v1/wizard/search"

COMPONENT_TYPES = ("persona", "problem", "behaviour", "leia")


class CatalogClient:
    """
    Thin async wrapper around the Designer backend.

    Public searches authenticate with the catalog API key. When a user token is
    given, searches go to the wizard endpoints with bearer auth so the user's
    private components are included. Transport and HTTP status errors are
    raised as `httpx.HTTPError`.
    """

    def __init__(
        self,
        base_url: str = CATALOG_BASE_URL,
        api_key: str = CATALOG_KEY,
        timeout: float = CATALOG_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._client

    def _catalog_headers(self) -> dict[str, str]:
        return {"x-catalog-api-key": self.api_key} if self.api_key else {}

    async def _get(self, path: str, params: dict[str, Any] | None, headers: dict[str, str]) -> Any:
        resp = await self._get_client().get(path, params=params, headers=headers)
        resp.raise_for_status()
        return resp.json()

    async def search(
        self,
        component_type: str,
        params: dict[str, Any],
        user_token: str | None = None,
    ) -> dict[str, Any]:
        """Search one component collection; returns the raw `{count, <type>s: [...]}` body."""
        if component_type not in COMPONENT_TYPES:
            raise ValueError(f"Unknown component type: {component_type}")
        query = {k: v for k, v in params.items() if v not in (None, "")}
        collection = f"{component_type}s"
        if user_token:
            path = f"{WIZARD_SEARCH_PATH}/{collection}"
            headers = {"Authorization": f"Bearer {user_token}"}
        else:
            path = f"{CATALOG_PATH}/{collection}"
            headers = self._catalog_headers()
        logger.debug("Catalog search %s params=%s private=%s", path, query, bool(user_token))
        data = await self._get(path, query, headers)
        return data if isinstance(data, dict) else {}

    async def get_component(self, component_type: str, component_id: str) -> dict[str, Any]:
        if component_type not in COMPONENT_TYPES:
            raise ValueError(f"Unknown component type: {component_type}")
        path = f"{CATALOG_PATH}/{component_type}s/{component_id}"
        data = await self._get(path, None, self._catalog_headers())
        return data if isinstance(data, dict) else {}

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
