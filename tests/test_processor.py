"""ProcessorClient request shapes and failure mapping."""

import asyncio
import base64
from urllib.parse import parse_qs

import httpx
import pytest

from payrelay.common.errors import TransportError, UpstreamError
from payrelay.services.relay.processor import ProcessorClient, build_order_payload

EXPECTED_BASIC = "Basic " + base64.b64encode(b"client-id:client-secret").decode()


def test_build_order_payload():
    """Order payload is a single capture-intent purchase unit."""

    assert build_order_payload("USD", "10.00") == {
        "intent": "CAPTURE",
        "purchase_units": [{"amount": {"currency_code": "USD", "value": "10.00"}}],
    }


def test_access_token_uses_basic_auth_and_form_body(processor, fake_processor):
    """Token exchange uses Basic auth and client-credentials grant."""

    async def fetch():
        async with processor.session() as http:
            return await processor.get_access_token(http)

    assert asyncio.run(fetch()) == "token-1"

    [call] = fake_processor.requests
    assert call.url == "https://api-m.sandbox.paypal.com/v1/oauth2/token"
    assert call.headers["authorization"] == EXPECTED_BASIC
    assert call.headers["content-type"] == "application/x-www-form-urlencoded"
    assert parse_qs(call.content.decode()) == {"grant_type": ["client_credentials"]}


def test_live_environment_targets_live_api(settings, fake_processor):
    """Live environment switches the processor host."""

    live = settings.model_copy(update={"environment": "live"})
    client = ProcessorClient(live, transport=httpx.MockTransport(fake_processor.handler))

    asyncio.run(client.generate_client_token())

    assert {r.url.host for r in fake_processor.requests} == {"api-m.paypal.com"}


def test_order_action_quotes_path_segments(processor, fake_processor):
    """Order id and intent cannot escape their path segments."""

    fake_processor.action_omits_id = True

    asyncio.run(processor.order_action("A/B", "capture"))

    action = fake_processor.requests[-1]
    assert action.url.raw_path == b"/v2/checkout/orders/A%2FB/capture"


def test_token_failure_raises_upstream_error(processor, fake_processor):
    """Rejected token exchange stops the operation without retry."""

    fake_processor.failures["/v1/oauth2/token"] = 401

    with pytest.raises(UpstreamError) as excinfo:
        asyncio.run(processor.create_order("USD", "1.00"))

    assert excinfo.value.upstream_status == 401
    assert excinfo.value.status_code == 500
    assert len(fake_processor.requests) == 1


def test_missing_access_token_is_upstream_error(settings):
    """A token response without a token is an upstream failure."""

    def handler(request):
        return httpx.Response(200, json={"token_type": "Bearer"})

    client = ProcessorClient(settings, transport=httpx.MockTransport(handler))

    with pytest.raises(UpstreamError, match="no access_token"):
        asyncio.run(client.generate_client_token("cust-1"))


def test_malformed_json_is_upstream_error(settings):
    """Non-JSON processor replies are upstream failures."""

    def handler(request):
        if request.url.path == "/v1/oauth2/token":
            return httpx.Response(200, json={"access_token": "tok"})
        return httpx.Response(200, text="<html>gateway</html>")

    client = ProcessorClient(settings, transport=httpx.MockTransport(handler))

    with pytest.raises(UpstreamError, match="Malformed JSON"):
        asyncio.run(client.create_order("USD", "1.00"))


def test_network_failure_raises_transport_error(settings):
    """Connection failures map to transport errors, attempted once."""

    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    client = ProcessorClient(settings, transport=httpx.MockTransport(handler))

    with pytest.raises(TransportError, match="ConnectError"):
        asyncio.run(client.order_action("ORDER-1", "capture"))

    assert len(calls) == 1


def test_redirect_loop_raises_transport_error(settings):
    """Non-transport request errors still map to transport errors."""

    def handler(request):
        raise httpx.TooManyRedirects("Exceeded maximum allowed redirects.", request=request)

    client = ProcessorClient(settings, transport=httpx.MockTransport(handler))

    with pytest.raises(TransportError, match="TooManyRedirects"):
        asyncio.run(client.create_order("USD", "1.00"))
