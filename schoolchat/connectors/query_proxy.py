"""
Remote query proxy client.

In cloud mode queries are not run against MySQL directly. They are POSTed to
an HTTP proxy as {fun: "get", projectId, datasetId, query}, authenticated
with a short-lived identity token fetched from the instance metadata server.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from schoolchat.config import QueryProxySettings
from schoolchat.models.query import DecomposedQuery

logger = logging.getLogger(__name__)


class QueryProxyError(Exception):
    """The proxy rejected the request or could not be reached."""

    pass


class IdentityTokenError(QueryProxyError):
    """No identity token could be obtained."""

    pass


class IdentityTokenSource:
    """Fetch an identity token for an audience from the metadata server."""

    def __init__(
        self,
        metadata_url: str,
        audience: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.metadata_url = metadata_url
        self.audience = audience
        self.timeout = timeout
        self._transport = transport

    async def fetch(self) -> str:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(
                    self.metadata_url,
                    params={"audience": self.audience},
                    headers={"Metadata-Flavor": "Google"},
                )
        except httpx.HTTPError as exc:
            raise IdentityTokenError(f"Authentication failed: {exc}") from exc

        if response.status_code != 200:
            raise IdentityTokenError(
                f"Authentication failed: Failed to get identity token: "
                f"{response.status_code} {response.reason_phrase}"
            )
        return response.text.strip()


class QueryProxyClient:
    """HTTP client for the remote query proxy."""

    def __init__(
        self,
        base_url: str,
        project_id: str | None,
        dataset_id: str,
        token_source: IdentityTokenSource,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.project_id = project_id
        self.dataset_id = dataset_id
        self.token_source = token_source
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        settings: QueryProxySettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> QueryProxyClient:
        if not settings.base_url:
            raise ValueError("Query proxy base URL is not configured")
        return cls(
            base_url=settings.base_url,
            project_id=settings.project_id,
            dataset_id=settings.dataset_id,
            token_source=IdentityTokenSource(
                settings.metadata_url,
                audience=settings.base_url,
                timeout=settings.timeout_seconds,
                transport=transport,
            ),
            timeout=settings.timeout_seconds,
            transport=transport,
        )

    async def run_query(self, sql: str, timeout: float | None = None) -> list[dict[str, Any]]:
        """
        Forward a full SQL string to the proxy.

        Returns:
            Result rows. A JSON object response is treated as one row.

        Raises:
            QueryProxyError: On token, transport or non-2xx failures
        """
        token = await self.token_source.fetch()
        body = {
            "fun": "get",
            "projectId": self.project_id,
            "datasetId": self.dataset_id,
            "query": sql,
        }
        try:
            async with httpx.AsyncClient(
                timeout=timeout or self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    f"{self.base_url}/query",
                    json=body,
                    headers={"Authorization": f"Bearer {token}"},
                )
        except httpx.HTTPError as exc:
            raise QueryProxyError(f"API request failed: {exc}. Query: {sql}") from exc

        if not response.is_success:
            raise QueryProxyError(
                f"API request failed: {response.status_code} {response.reason_phrase}. "
                f"Query: {sql}. Error: {response.text}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise QueryProxyError(f"API returned invalid JSON. Query: {sql}") from exc

        if isinstance(payload, list):
            return payload
        return [payload]

    async def run_structured(
        self, decomposed: DecomposedQuery, timeout: float | None = None
    ) -> list[dict[str, Any]]:
        """Send a query rebuilt from table, select list and clauses."""
        return await self.run_query(decomposed.to_sql(), timeout=timeout)
