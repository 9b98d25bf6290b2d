"""Tests for the API client: headers, error mapping, paging and tracing."""

from __future__ import annotations

import httpx
import pytest

from oceanctl import __version__
from oceanctl.client import ApiClient
from oceanctl.exceptions import (
    AuthError,
    ConnectionError_,
    NotFoundError,
    PaginationError,
    RemoteAPIError,
    ServerError,
)
from oceanctl.models import Droplet
from oceanctl.output import OutputManager, set_output


# ---------------------------------------------------------------------------
# Context manager
# ---------------------------------------------------------------------------


class TestContextManager:
    def test_enter_creates_and_exit_closes_client(self) -> None:
        client = ApiClient("tok")
        assert client._client is None
        with client:
            assert client._client is not None
        assert client._client is None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class TestRequests:
    def test_sends_bearer_token_and_user_agent(self, fake_api) -> None:
        fake_api.add("GET", "v2/account", {"account": {"email": "a@b.c"}})

        with fake_api.client(token="secret") as client:
            body = client.get("v2/account")

        assert body == {"account": {"email": "a@b.c"}}
        request = fake_api.requests[0]
        assert request.headers["Authorization"] == "Bearer secret"
        assert request.headers["User-Agent"] == f"oceanctl/{__version__}"
        assert str(request.url) == fake_api.base_url + "v2/account"

    def test_drops_none_params(self, fake_api) -> None:
        fake_api.add("GET", "v2/storage/drives", {"drives": []})

        with fake_api.client() as client:
            client.get("v2/storage/drives", params={"region": None, "page": 1})

        assert dict(fake_api.requests[0].url.params) == {"page": "1"}

    def test_post_sends_json_body(self, fake_api) -> None:
        fake_api.add("POST", "v2/storage/drives", {"drive": {"id": "d1"}}, status=201)

        with fake_api.client() as client:
            client.post("v2/storage/drives", json_body={"name": "data"})

        assert fake_api.body_of(fake_api.requests[0]) == {"name": "data"}

    def test_delete_with_body(self, fake_api) -> None:
        fake_api.add("DELETE", "v2/storage/drives/attachments", status=204)

        with fake_api.client() as client:
            result = client.delete("v2/storage/drives/attachments", json_body={"drive_id": "d1"})

        assert result is None
        assert fake_api.body_of(fake_api.requests[0]) == {"drive_id": "d1"}

    def test_non_json_success_body_raises(self, fake_api) -> None:
        fake_api.add(
            "GET", "v2/account", handler=lambda r: httpx.Response(200, text="<html>")
        )
        with fake_api.client() as client, pytest.raises(RemoteAPIError, match="not JSON"):
            client.get("v2/account")


class TestErrorMapping:
    @pytest.mark.parametrize(
        "status, exc_type, exit_code",
        [
            (401, AuthError, 3),
            (403, AuthError, 3),
            (404, NotFoundError, 4),
            (500, ServerError, 5),
            (503, ServerError, 5),
            (422, RemoteAPIError, 5),
        ],
    )
    def test_status_maps_to_exception(self, fake_api, status, exc_type, exit_code) -> None:
        fake_api.add("GET", "v2/account", {"id": "x", "message": "went wrong"}, status=status)

        with fake_api.client() as client, pytest.raises(exc_type) as exc_info:
            client.get("v2/account")

        assert type(exc_info.value) is exc_type
        assert exc_info.value.status_code == status
        assert exc_info.value.exit_code == exit_code
        assert str(exc_info.value) == f"HTTP {status}: went wrong"

    def test_transport_error_maps_to_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with ApiClient("t", transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(ConnectionError_, match="refused"):
                client.get("v2/account")

    def test_requests_are_not_retried(self, fake_api) -> None:
        fake_api.add("GET", "v2/account", {"message": "busy"}, status=503)

        with fake_api.client() as client, pytest.raises(ServerError):
            client.get("v2/account")

        assert len(fake_api.requests) == 1


# ---------------------------------------------------------------------------
# Paging
# ---------------------------------------------------------------------------


class TestFetchPage:
    def test_first_page_and_next_token(self, fake_api) -> None:
        fake_api.add(
            "GET",
            "v2/droplets",
            {
                "droplets": [{"id": 1, "name": "a"}],
                "links": {"pages": {"next": "https://api.test/v2/droplets?page=2&per_page=200"}},
            },
        )

        with fake_api.client() as client:
            page = client.fetch_page("v2/droplets", "droplets", Droplet.model_validate, None)

        assert [d.name for d in page.items] == ["a"]
        assert page.next_token == "2"
        params = fake_api.requests[0].url.params
        assert params["page"] == "1"
        assert params["per_page"] == "200"

    def test_last_page_has_no_token(self, fake_api) -> None:
        fake_api.add("GET", "v2/droplets", {"droplets": [], "links": {}})

        with fake_api.client() as client:
            page = client.fetch_page("v2/droplets", "droplets", Droplet.model_validate, "3")

        assert page.items == []
        assert page.is_last
        assert fake_api.requests[0].url.params["page"] == "3"

    @pytest.mark.parametrize("token", ["abc", "0", "-1"])
    def test_malformed_token_raises_without_request(self, fake_api, token) -> None:
        with fake_api.client() as client, pytest.raises(PaginationError, match="malformed"):
            client.fetch_page("v2/droplets", "droplets", Droplet.model_validate, token)
        assert fake_api.requests == []

    def test_malformed_next_link_raises(self, fake_api) -> None:
        fake_api.add(
            "GET",
            "v2/droplets",
            {"droplets": [], "links": {"pages": {"next": "https://api.test/v2/droplets"}}},
        )
        with fake_api.client() as client, pytest.raises(PaginationError, match="next page link"):
            client.fetch_page("v2/droplets", "droplets", Droplet.model_validate, None)


# ---------------------------------------------------------------------------
# Tracing
# ---------------------------------------------------------------------------


class TestTrace:
    def test_trace_writes_request_lines_to_stderr(self, fake_api, capfd) -> None:
        set_output(OutputManager(no_color=True, trace=True))
        fake_api.add("GET", "v2/account", {"account": {}})

        with fake_api.client(trace=True) as client:
            client.get("v2/account")

        captured = capfd.readouterr()
        assert captured.out == ""
        assert "> GET https://api.test/v2/account" in captured.err
        assert "< 200 GET https://api.test/v2/account" in captured.err

    def test_no_trace_by_default(self, fake_api, capfd) -> None:
        set_output(OutputManager(no_color=True, trace=True))
        fake_api.add("GET", "v2/account", {"account": {}})

        with fake_api.client() as client:
            client.get("v2/account")

        assert capfd.readouterr().err == ""
