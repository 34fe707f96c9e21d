"""Test the client-side submission relay and its transport chain"""
import json

import httpx
import pytest

from formrelay.config.client_store import RelayConfig
from formrelay.exceptions import ConfigurationError, InvalidEmailError, MissingFieldsError
from formrelay.relay import (
    DirectTransport,
    FireAndForgetTransport,
    FormPostTransport,
    ProxyTransport,
    SubmissionRelay,
)

SHEET_URL = "http://sheet.test/exec"
PROXY_URL = "http://proxy.test"


def make_client(handler, calls: list | None = None) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by ``handler``"""

    def recording(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return handler(request)

    return httpx.AsyncClient(transport=httpx.MockTransport(recording))


def transport_kind(request: httpx.Request) -> str:
    """Classify a request by the transport that sent it"""
    if request.url.host == "proxy.test":
        return "proxy"
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        return "direct"
    if content_type.startswith("text/plain"):
        return "fire-and-forget"
    return "form-post"


@pytest.fixture
def direct_config() -> RelayConfig:
    return RelayConfig(script_url=SHEET_URL)


@pytest.fixture
def proxy_config() -> RelayConfig:
    return RelayConfig(script_url=SHEET_URL, server_url=PROXY_URL, use_server=True)


class TestRelayValidation:
    """Checks that run before any network call"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("missing", ["name", "email", "message"])
    async def test_missing_field_makes_no_request(self, proxy_config, valid_form, missing):
        calls = []
        del valid_form[missing]
        async with make_client(lambda r: httpx.Response(200, json={"success": True}), calls) as client:
            relay = SubmissionRelay(proxy_config, client=client)
            with pytest.raises(MissingFieldsError):
                await relay.submit(valid_form)
        assert calls == []

    @pytest.mark.asyncio
    async def test_bad_email_makes_no_request(self, proxy_config, valid_form):
        calls = []
        valid_form["email"] = "not-an-email"
        async with make_client(lambda r: httpx.Response(200, json={"success": True}), calls) as client:
            relay = SubmissionRelay(proxy_config, client=client)
            with pytest.raises(InvalidEmailError):
                await relay.submit(valid_form)
        assert calls == []

    @pytest.mark.asyncio
    async def test_no_destination_configured(self, valid_form):
        calls = []
        async with make_client(lambda r: httpx.Response(200), calls) as client:
            relay = SubmissionRelay(RelayConfig(), client=client)
            with pytest.raises(ConfigurationError):
                await relay.submit(valid_form)
        assert calls == []

    @pytest.mark.asyncio
    async def test_proxy_flag_without_url_is_not_enough(self, valid_form):
        async with make_client(lambda r: httpx.Response(200)) as client:
            relay = SubmissionRelay(RelayConfig(use_server=True), client=client)
            with pytest.raises(ConfigurationError):
                await relay.submit(valid_form)


class TestFallbackChain:
    """Ordering and fallthrough of the transport chain"""

    @pytest.mark.asyncio
    async def test_proxy_success(self, proxy_config, valid_form):
        calls = []

        def handler(request):
            return httpx.Response(200, json={"success": True, "message": "Form submitted successfully"})

        async with make_client(handler, calls) as client:
            result = await SubmissionRelay(proxy_config, client=client).submit(valid_form)

        assert result.success is True
        assert result.confirmed is True
        assert result.transport == "proxy"
        assert [transport_kind(r) for r in calls] == ["proxy"]
        assert str(calls[0].url) == f"{PROXY_URL}/api/submit"
        body = json.loads(calls[0].content)
        assert body["scriptUrl"] == SHEET_URL

    @pytest.mark.asyncio
    async def test_proxy_timeout_falls_back_to_direct(self, proxy_config, valid_form):
        calls = []

        def handler(request):
            if request.url.host == "proxy.test":
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(200, json={"success": True, "row": 2})

        async with make_client(handler, calls) as client:
            result = await SubmissionRelay(proxy_config, client=client).submit(valid_form)

        assert result.success is True
        assert result.confirmed is True
        assert result.transport == "direct"
        assert [transport_kind(r) for r in calls] == ["proxy", "direct"]
        assert len(result.errors) == 1
        assert result.errors[0].startswith("proxy:")

    @pytest.mark.asyncio
    async def test_proxy_reporting_failure_falls_back(self, proxy_config, valid_form):
        def handler(request):
            if request.url.host == "proxy.test":
                return httpx.Response(500, json={"success": False, "error": "Failed"})
            return httpx.Response(200, json={"success": True})

        async with make_client(handler) as client:
            result = await SubmissionRelay(proxy_config, client=client).submit(valid_form)

        assert result.transport == "direct"

    @pytest.mark.asyncio
    async def test_undecodable_proxy_body_falls_back(self, proxy_config, valid_form):
        calls = []

        def handler(request):
            if request.url.host == "proxy.test":
                return httpx.Response(200, content=b"\xff\xfe\xfa garbage")
            return httpx.Response(200, json={"success": True})

        async with make_client(handler, calls) as client:
            result = await SubmissionRelay(proxy_config, client=client).submit(valid_form)

        assert result.success is True
        assert result.transport == "direct"
        assert [transport_kind(r) for r in calls] == ["proxy", "direct"]

    @pytest.mark.asyncio
    async def test_undecodable_direct_body_falls_through(self, direct_config, valid_form):
        calls = []

        def handler(request):
            if transport_kind(request) == "direct":
                return httpx.Response(200, content=b"\xff\xfe\xfa garbage")
            return httpx.Response(200, text="ok")

        async with make_client(handler, calls) as client:
            result = await SubmissionRelay(direct_config, client=client).submit(valid_form)

        assert result.success is True
        assert result.confirmed is False
        assert result.transport == "fire-and-forget"

    @pytest.mark.asyncio
    async def test_direct_only_when_proxy_disabled(self, direct_config, valid_form):
        calls = []
        async with make_client(lambda r: httpx.Response(200, json={"success": True}), calls) as client:
            result = await SubmissionRelay(direct_config, client=client).submit(valid_form)

        assert result.transport == "direct"
        assert [transport_kind(r) for r in calls] == ["direct"]

    @pytest.mark.asyncio
    async def test_direct_rejection_ends_chain(self, direct_config, valid_form):
        calls = []
        body = {"success": False, "error": "Missing required fields"}
        async with make_client(lambda r: httpx.Response(200, json=body), calls) as client:
            result = await SubmissionRelay(direct_config, client=client).submit(valid_form)

        assert result.success is False
        assert result.confirmed is True
        assert result.message == "Missing required fields"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_fire_and_forget_assumed_success(self, direct_config, valid_form):
        """Only the unobservable send gets through; success is assumed"""
        calls = []

        def handler(request):
            if transport_kind(request) == "direct":
                raise httpx.ConnectError("blocked by cross-origin policy", request=request)
            return httpx.Response(500, text="whatever happened is not observed")

        async with make_client(handler, calls) as client:
            result = await SubmissionRelay(direct_config, client=client).submit(valid_form)

        assert result.success is True
        assert result.confirmed is False
        assert result.assumed is True
        assert result.transport == "fire-and-forget"
        assert [transport_kind(r) for r in calls] == ["direct", "fire-and-forget"]
        assert json.loads(calls[1].content)["name"] == "Jane"

    @pytest.mark.asyncio
    async def test_form_post_is_last_resort(self, direct_config, valid_form):
        calls = []

        def handler(request):
            if transport_kind(request) in ("direct", "fire-and-forget"):
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, text="<html></html>")

        async with make_client(handler, calls) as client:
            result = await SubmissionRelay(direct_config, client=client).submit(valid_form)

        assert result.success is True
        assert result.assumed is True
        assert result.transport == "form-post"
        assert [transport_kind(r) for r in calls] == ["direct", "fire-and-forget", "form-post"]
        fields = dict(httpx.QueryParams(calls[2].content.decode()))
        assert fields["message"] == "hi"
        assert fields["phone"] == ""

    @pytest.mark.asyncio
    async def test_every_transport_fails(self, proxy_config, valid_form):
        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        async with make_client(handler) as client:
            result = await SubmissionRelay(proxy_config, client=client).submit(valid_form)

        assert result.success is False
        assert result.transport is None
        assert [error.split(":")[0] for error in result.errors] == [
            "proxy",
            "direct",
            "fire-and-forget",
            "form-post",
        ]

    @pytest.mark.asyncio
    async def test_custom_chain(self, direct_config, valid_form):
        calls = []
        async with make_client(lambda r: httpx.Response(200), calls) as client:
            relay = SubmissionRelay(direct_config, transports=[FormPostTransport()], client=client)
            result = await relay.submit(valid_form)

        assert result.transport == "form-post"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_resubmission_sends_twice(self, direct_config, valid_form):
        calls = []
        async with make_client(lambda r: httpx.Response(200, json={"success": True}), calls) as client:
            relay = SubmissionRelay(direct_config, client=client)
            await relay.submit(valid_form)
            await relay.submit(valid_form)

        assert len(calls) == 2


class TestTransports:
    """Individual transport behaviour"""

    def test_default_timeouts(self):
        assert ProxyTransport().timeout == 30.0
        assert DirectTransport().timeout == 30.0

    def test_applies(self, direct_config, proxy_config):
        assert not ProxyTransport().applies(direct_config)
        assert ProxyTransport().applies(proxy_config)
        assert FireAndForgetTransport().applies(direct_config)
        assert not DirectTransport().applies(RelayConfig(server_url=PROXY_URL, use_server=True))


class TestConnectionCheck:
    """Connectivity tests from the client side"""

    @pytest.mark.asyncio
    async def test_direct_probe(self, direct_config):
        calls = []
        body = {"status": "OK", "message": "Form handler is running", "version": "1.0.0"}
        async with make_client(lambda r: httpx.Response(200, json=body), calls) as client:
            check = await SubmissionRelay(direct_config, client=client).test_connection()

        assert check.success is True
        assert check.via == "direct"
        assert check.data["status"] == "OK"
        assert calls[0].method == "GET"

    @pytest.mark.asyncio
    async def test_probe_through_proxy(self, proxy_config):
        calls = []
        body = {"success": True, "status": 200, "statusText": "OK", "data": {"status": "OK"}}
        async with make_client(lambda r: httpx.Response(200, json=body), calls) as client:
            check = await SubmissionRelay(proxy_config, client=client).test_connection()

        assert check.success is True
        assert check.via == "proxy"
        assert check.status == 200
        assert str(calls[0].url) == f"{PROXY_URL}/api/test-connection"
        assert json.loads(calls[0].content) == {"scriptUrl": SHEET_URL}

    @pytest.mark.asyncio
    async def test_unreachable(self, direct_config):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with make_client(handler) as client:
            check = await SubmissionRelay(direct_config, client=client).test_connection()

        assert check.success is False
        assert "ConnectError" in check.error

    @pytest.mark.asyncio
    async def test_requires_destination(self):
        with pytest.raises(ConfigurationError):
            await SubmissionRelay(RelayConfig()).test_connection()
