"""PostgREST remote data service adapter.

Talks to a PostgREST endpoint (as exposed by Supabase under ``/rest/v1``)
with ``httpx``. Every failure is raised as RemoteReadError or RemoteWriteError
with the transport or HTTP error chained.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ....config.settings import EvolveSettings
from ....core.exceptions import ConfigurationError, RemoteReadError, RemoteWriteError
from ..entities.protocols import Record
from ..entities.query import RemoteQuery

logger = logging.getLogger(__name__)

REST_PATH = "/rest/v1"


def _format_filter_value(value: Any) -> str:
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    return f"eq.{value}"


def _compact(columns: str) -> str:
    return "".join(columns.split())


class PostgrestDataService:
    """RemoteDataService over the PostgREST HTTP interface."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the adapter.

        Args:
            base_url: Project URL; ``/rest/v1`` is appended
            api_key: Anonymous or service API key sent as ``apikey``
            access_token: User JWT for row level security (defaults to api_key)
            timeout: Request timeout in seconds
            client: Preconfigured client; base_url and headers are then taken as is
        """
        if client is None:
            if not base_url or not api_key:
                raise ConfigurationError("base_url and api_key are required for the remote data service")
            client = httpx.AsyncClient(
                base_url=f"{base_url.rstrip('/')}{REST_PATH}",
                headers={
                    "apikey": api_key,
                    "Authorization": f"Bearer {access_token or api_key}",
                    "Content-Type": "application/json",
                },
                timeout=timeout,
            )
        self._client = client

    @classmethod
    def from_settings(cls, settings: EvolveSettings, access_token: Optional[str] = None) -> "PostgrestDataService":
        api_key = settings.remote_api_key.get_secret_value() if settings.remote_api_key else None
        return cls(
            base_url=settings.remote_base_url,
            api_key=api_key,
            access_token=access_token,
            timeout=settings.remote_timeout_seconds,
        )

    def set_access_token(self, access_token: str) -> None:
        """Send requests as a signed-in user from now on."""
        self._client.headers["Authorization"] = f"Bearer {access_token}"

    def _query_params(self, query: Optional[RemoteQuery]) -> Dict[str, str]:
        params: Dict[str, str] = {"select": "*"}
        if query is None:
            return params

        if query.select:
            params["select"] = _compact(query.select)
        for column, value in query.filters.items():
            params[column] = _format_filter_value(value)
        if query.order_by:
            direction = "desc" if query.descending else "asc"
            params["order"] = f"{query.order_by}.{direction}"
        if query.limit is not None:
            params["limit"] = str(query.limit)
        if query.offset is not None:
            params["offset"] = str(query.offset)
        return params

    async def read(self, resource: str, query: Optional[RemoteQuery] = None) -> List[Record]:
        params = self._query_params(query)
        try:
            response = await self._client.get(f"/{resource}", params=params)
            response.raise_for_status()
            rows = response.json()
        except httpx.HTTPStatusError as e:
            raise RemoteReadError(
                f"Reading {resource} failed: {e.response.text}",
                resource=resource,
                status_code=e.response.status_code,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise RemoteReadError(f"Reading {resource} failed: {e}", resource=resource) from e

        if not isinstance(rows, list):
            raise RemoteReadError(f"Unexpected response shape reading {resource}", resource=resource)

        logger.debug(f"Read {len(rows)} rows from {resource}")
        return rows

    async def read_single(self, resource: str, query: Optional[RemoteQuery] = None) -> Optional[Record]:
        query = query or RemoteQuery()
        rows = await self.read(resource, query.window(query.offset or 0, 1))
        return rows[0] if rows else None

    async def write(
        self,
        resource: str,
        payload: Record,
        match: Optional[Dict[str, Any]] = None,
        on_conflict: Optional[str] = None,
    ) -> Record:
        prefer = "return=representation"
        params: Dict[str, str] = {}

        try:
            if match:
                params = {column: _format_filter_value(value) for column, value in match.items()}
                response = await self._client.patch(
                    f"/{resource}", params=params, json=payload, headers={"Prefer": prefer}
                )
            else:
                if on_conflict:
                    params["on_conflict"] = _compact(on_conflict)
                    prefer = f"{prefer},resolution=merge-duplicates"
                response = await self._client.post(
                    f"/{resource}", params=params, json=payload, headers={"Prefer": prefer}
                )
            response.raise_for_status()
            rows = response.json()
        except httpx.HTTPStatusError as e:
            raise RemoteWriteError(
                f"Writing {resource} failed: {e.response.text}",
                resource=resource,
                status_code=e.response.status_code,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise RemoteWriteError(f"Writing {resource} failed: {e}", resource=resource) from e

        if isinstance(rows, dict):
            return rows
        if not rows:
            raise RemoteWriteError(f"Write to {resource} matched no rows", resource=resource)
        return rows[0]

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "PostgrestDataService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
