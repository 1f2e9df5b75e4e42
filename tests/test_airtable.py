# reviewsync Airtable Store Tests
# Tests for listing, patching and error mapping against a mocked HTTP transport

import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from reviewsync.config.schema import RemoteConfig
from reviewsync.remote.airtable import AirtableStore, since_formula
from reviewsync.sync.cancel import CancellationToken
from reviewsync.sync.errors import Cancelled, RecordDecodeError, RemoteRejection, TransportError
from reviewsync.sync.record import NumberValue


def _store(handler) -> AirtableStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AirtableStore("appTEST", "tblTEST", "pat-secret", client=client, view="Open Items")


def _payload(identity: str, **fields) -> dict:
    return {"id": identity, "createdTime": "2024-05-01T10:00:00.000Z", "fields": fields}


class TestSinceFormula:
    """Tests for the change window filter."""

    def test_inclusive_boundary(self):
        formula = since_formula(datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))
        assert formula.count("NOT(IS_BEFORE(") == 2
        assert "CREATED_TIME()" in formula
        assert "LAST_MODIFIED_TIME()" in formula
        assert '"2024-05-01T12:00:00.000Z"' in formula


class TestListing:
    """Tests for paginated listing."""

    @pytest.mark.asyncio
    async def test_list_all_follows_offsets(self, scope):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.url.params.get("offset") == "page2":
                return httpx.Response(200, json={"records": [_payload("rec2", Amount=2)]})
            return httpx.Response(200, json={"records": [_payload("rec1", Amount=1)], "offset": "page2"})

        store = _store(handler)
        records = await store.list_all(scope)

        assert [r.id for r in records] == ["rec1", "rec2"]
        assert len(requests) == 2
        first = requests[0]
        assert first.url.path == "/v0/appTEST/tblTEST"
        assert first.headers["Authorization"] == "Bearer pat-secret"
        assert first.url.params["filterByFormula"] == scope.to_formula()
        assert first.url.params["view"] == "Open Items"
        assert first.url.params["pageSize"] == "100"

    @pytest.mark.asyncio
    async def test_list_since_uses_change_window(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"records": []})

        since = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        records = await _store(handler).list_since(since)

        assert records == []
        assert seen[0].url.params["filterByFormula"] == since_formula(since)
        assert "view" not in seen[0].url.params

    @pytest.mark.asyncio
    async def test_malformed_records_raise(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"records": "nope"})

        with pytest.raises(RecordDecodeError):
            await _store(handler).list_all()

    @pytest.mark.asyncio
    async def test_non_json_body_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>")

        with pytest.raises(RecordDecodeError):
            await _store(handler).list_all()


class TestLinkedTableNames:
    """Tests for loading display names of a linked table."""

    @pytest.mark.asyncio
    async def test_names_follow_offsets_and_prefer_name_fields(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.url.params.get("offset") == "page2":
                return httpx.Response(
                    200,
                    json={
                        "records": [
                            _payload("recS3"),
                            _payload("recS4", Tags=["Preferred", "Local"]),
                        ]
                    },
                )
            return httpx.Response(
                200,
                json={
                    "records": [
                        _payload("recS1", Notes="Call first", **{"Subcontractor Company Name": "Acme Framing"}),
                        _payload("recS2", Name="  ", Notes="Brightline Drywall"),
                    ],
                    "offset": "page2",
                },
            )

        names = await _store(handler).list_table_names("tblSubs", ["Subcontractor Company Name", "Name"])

        assert names == {
            "recS1": "Acme Framing",
            "recS2": "Brightline Drywall",
            "recS3": "recS3",
            "recS4": "Preferred",
        }
        assert len(requests) == 2
        assert requests[0].url.path == "/v0/appTEST/tblSubs"
        assert "filterByFormula" not in requests[0].url.params
        assert "view" not in requests[0].url.params

    @pytest.mark.asyncio
    async def test_record_without_id_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"records": [{"fields": {"Name": "Orphan"}}]})

        with pytest.raises(RecordDecodeError):
            await _store(handler).list_table_names("tblSubs")

    @pytest.mark.asyncio
    async def test_forbidden_table_is_rejection(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={"error": {"type": "INVALID_PERMISSIONS", "message": "No access"}})

        with pytest.raises(RemoteRejection):
            await _store(handler).list_table_names("tblSubs")


class TestPatch:
    """Tests for writes."""

    @pytest.mark.asyncio
    async def test_patch_sends_fields(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_payload("recX", Amount=50))

        record = await _store(handler).patch("recX", {"Amount": NumberValue(50), "Note": None})

        assert record.value("Amount") == 50
        assert seen[0].method == "PATCH"
        assert seen[0].url.path == "/v0/appTEST/tblTEST/recX"
        assert json.loads(seen[0].content) == {"fields": {"Amount": 50, "Note": None}}

    @pytest.mark.asyncio
    async def test_already_cancelled_token_sends_nothing(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_payload("recX"))

        token = CancellationToken()
        token.cancel()

        with pytest.raises(Cancelled):
            await _store(handler).patch("recX", {"Amount": NumberValue(1)}, token)
        assert seen == []

    @pytest.mark.asyncio
    async def test_token_aborts_in_flight_request(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(10)
            return httpx.Response(200, json=_payload("recX"))

        token = CancellationToken()
        task = asyncio.create_task(_store(handler).patch("recX", {"Amount": NumberValue(1)}, token))
        await asyncio.sleep(0.01)
        token.cancel()

        with pytest.raises(Cancelled):
            await asyncio.wait_for(task, 1)


class TestErrorMapping:
    """Tests for HTTP failure classification."""

    @pytest.mark.asyncio
    async def test_validation_error_is_rejection(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                422,
                json={"error": {"type": "INVALID_VALUE_FOR_COLUMN", "message": "Field Amount cannot accept text"}},
            )

        with pytest.raises(RemoteRejection) as exc_info:
            await _store(handler).patch("recX", {"Amount": NumberValue(1)})

        error = exc_info.value
        assert error.status == 422
        assert error.error_type == "INVALID_VALUE_FOR_COLUMN"
        assert error.message == "Field Amount cannot accept text"
        assert str(error) == "HTTP 422 - Field Amount cannot accept text [INVALID_VALUE_FOR_COLUMN]"

    @pytest.mark.asyncio
    async def test_string_error_is_rejection(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"error": "NOT_FOUND"})

        with pytest.raises(RemoteRejection) as exc_info:
            await _store(handler).patch("recMissing", {"Amount": NumberValue(1)})
        assert exc_info.value.error_type == "NOT_FOUND"
        assert exc_info.value.status == 404

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [408, 429, 500, 503])
    async def test_transient_statuses_are_transport_errors(self, status):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, text="try later")

        with pytest.raises(TransportError) as exc_info:
            await _store(handler).list_all()
        assert exc_info.value.status == status

    @pytest.mark.asyncio
    async def test_connection_failure_is_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportError):
            await _store(handler).list_since(datetime(2024, 5, 1, tzinfo=timezone.utc))


class TestFromConfig:
    """Tests for building a store from configuration."""

    def test_missing_token(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("REVIEWSYNC_TEST_TOKEN", raising=False)
        config = RemoteConfig(base_id="appA", table_id="tblB", token_env="REVIEWSYNC_TEST_TOKEN")

        with pytest.raises(ValueError, match="REVIEWSYNC_TEST_TOKEN"):
            AirtableStore.from_config(config)

    @pytest.mark.asyncio
    async def test_token_from_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("REVIEWSYNC_TEST_TOKEN", "pat-env")
        config = RemoteConfig(base_id="appA", table_id="tbl B", token_env="REVIEWSYNC_TEST_TOKEN", page_size=10)

        async with AirtableStore.from_config(config) as store:
            assert store.page_size == 10
            assert store.table_url == "https://api.airtable.com/v0/appA/tbl%20B"
            assert store._headers["Authorization"] == "Bearer pat-env"
