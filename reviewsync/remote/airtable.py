# reviewsync Airtable Store
# httpx-based RemoteStore for an Airtable table with paginated listing

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from reviewsync.sync.cancel import CancellationToken
from reviewsync.sync.errors import Cancelled, RecordDecodeError, RemoteRejection, TransportError
from reviewsync.sync.names import pick_display_name
from reviewsync.sync.record import FieldDelta, Record, decode_record, encode_delta
from reviewsync.utils.clock import format_timestamp

if TYPE_CHECKING:
    from reviewsync.config.schema import RemoteConfig
    from reviewsync.sync.scope import ScopePredicate

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.airtable.com/v0"

# Statuses that are worth retrying on the next cycle
TRANSIENT_STATUSES = {408, 429}


def since_formula(since: datetime) -> str:
    """
    Build a filter matching records created or modified at or after a time.

    Uses NOT(IS_BEFORE(...)) so the boundary itself is included.
    """
    stamp = format_timestamp(since)
    return (
        "OR("
        f'NOT(IS_BEFORE(CREATED_TIME(), DATETIME_PARSE("{stamp}"))), '
        f'NOT(IS_BEFORE(LAST_MODIFIED_TIME(), DATETIME_PARSE("{stamp}")))'
        ")"
    )


def _rejection(response: httpx.Response) -> RemoteRejection:
    """Build a RemoteRejection from a 4xx response body."""
    message = response.reason_phrase or "Request rejected"
    error_type = None
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        if text:
            message = text
    else:
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            message = error.get("message") or message
            error_type = error.get("type")
        elif isinstance(error, str):
            error_type = error
    return RemoteRejection(message, status=response.status_code, error_type=error_type)


class AirtableStore:
    """
    Remote store backed by the Airtable REST API.

    Usage:
        async with AirtableStore.from_config(config.remote) as store:
            records = await store.list_all(scope)
    """

    def __init__(
        self,
        base_id: str,
        table_id: str,
        api_token: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        view: str | None = None,
        page_size: int = 100,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize Airtable store.

        Args:
            base_id: Airtable base identifier.
            table_id: Table identifier or name.
            api_token: Personal access token.
            base_url: API root URL.
            view: Optional view applied to the full listing.
            page_size: Records per page (Airtable caps this at 100).
            timeout: Request timeout in seconds.
            client: Optional preconfigured httpx client (tests, proxies).
        """
        self.base_id = base_id
        self.table_id = table_id
        self.base_url = base_url.rstrip("/")
        self.view = view
        self.page_size = page_size
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = {"Authorization": f"Bearer {api_token}"}

    @classmethod
    def from_config(cls, config: RemoteConfig, *, client: httpx.AsyncClient | None = None) -> AirtableStore:
        """
        Create a store from configuration, reading the token from the environment.

        Raises:
            ValueError: If the token environment variable is not set.
        """
        api_token = os.environ.get(config.token_env, "")
        if not api_token:
            raise ValueError(f"API token not set: export {config.token_env}=...")
        return cls(
            config.base_id,
            config.table_id,
            api_token,
            base_url=config.base_url,
            view=config.view,
            page_size=config.page_size,
            timeout=config.timeout,
            client=client,
        )

    @property
    def table_url(self) -> str:
        return f"{self.base_url}/{quote(self.base_id, safe='')}/{quote(self.table_id, safe='')}"

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this store created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> AirtableStore:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def list_since(self, since: datetime) -> list[Record]:
        """List records created or modified at or after `since` (inclusive)."""
        return await self._list({"filterByFormula": since_formula(since)})

    async def list_all(self, scope: ScopePredicate | None = None) -> list[Record]:
        """List all records, filtered server-side by the scope and view."""
        params: dict[str, str] = {}
        if scope is not None:
            params["filterByFormula"] = scope.to_formula()
        if self.view:
            params["view"] = self.view
        return await self._list(params)

    async def patch(
        self,
        identity: str,
        delta: FieldDelta,
        token: CancellationToken | None = None,
    ) -> Record:
        """
        Apply a field delta to a record.

        Returns:
            The record as stored after the write.

        Raises:
            Cancelled: If the token fired before the response arrived.
            RemoteRejection: If the store refused the write.
            TransportError: On network failures.
        """
        url = f"{self.table_url}/{quote(identity, safe='')}"
        body = {"fields": encode_delta(delta)}
        logger.debug("PATCH %s %s", url, body)
        data = await self._request("PATCH", url, json=body, token=token)
        return decode_record(data)

    async def list_table_names(self, table_id: str, name_fields: Sequence[str] = ("Name",)) -> dict[str, str]:
        """
        Build an identity to display name map for a linked table.

        Args:
            table_id: Linked table identifier or name.
            name_fields: Fields tried in order for the display name.

        Returns:
            Display name per record identity.
        """
        url = f"{self.base_url}/{quote(self.base_id, safe='')}/{quote(table_id, safe='')}"
        names: dict[str, str] = {}
        for raw in await self._fetch_all(url, {}):
            identity = raw.get("id") if isinstance(raw, dict) else None
            if not isinstance(identity, str) or not identity:
                raise RecordDecodeError(f"Record payload has no id: {raw!r}")
            fields = raw.get("fields")
            names[identity] = pick_display_name(identity, fields if isinstance(fields, dict) else {}, name_fields)
        logger.debug("Loaded %d name(s) from %s", len(names), table_id)
        return names

    async def _list(self, params: dict[str, str]) -> list[Record]:
        """Fetch and decode every page of a listing of the reviewed table."""
        return [decode_record(raw) for raw in await self._fetch_all(self.table_url, params)]

    async def _fetch_all(self, url: str, params: dict[str, str]) -> list[Any]:
        """Follow offset pagination and collect the raw records of every page."""
        records: list[Any] = []
        offset: str | None = None

        while True:
            page_params: dict[str, Any] = {**params, "pageSize": str(self.page_size)}
            if offset:
                page_params["offset"] = offset

            data = await self._request("GET", url, params=page_params)
            raw_records = data.get("records") or []
            if not isinstance(raw_records, list):
                raise RecordDecodeError("Listing response has malformed records")
            records.extend(raw_records)

            offset = data.get("offset")
            if not offset:
                break

        return records

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        token: CancellationToken | None = None,
    ) -> dict[str, Any]:
        """Send a request and map failures onto the sync error taxonomy."""
        try:
            response = await self._send(method, url, params=params, json=json, token=token)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        status = response.status_code
        if status >= 500 or status in TRANSIENT_STATUSES:
            raise TransportError(f"HTTP {status}: {response.text.strip()[:200]}", status=status)
        if status >= 400:
            raise _rejection(response)

        try:
            data = response.json()
        except ValueError as e:
            raise RecordDecodeError(f"Response from {url} is not JSON") from e
        if not isinstance(data, dict):
            raise RecordDecodeError(f"Response from {url} is not an object")
        return data

    async def _send(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None,
        json: Any,
        token: CancellationToken | None,
    ) -> httpx.Response:
        if token is None:
            return await self._client.request(method, url, params=params, json=json, headers=self._headers)

        token.raise_if_cancelled()
        send = asyncio.ensure_future(
            self._client.request(method, url, params=params, json=json, headers=self._headers)
        )
        waiter = asyncio.ensure_future(token.wait())
        try:
            done, _ = await asyncio.wait({send, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not send.done():
                send.cancel()

        if send not in done:
            raise Cancelled(f"{method} {url} superseded")
        return send.result()
