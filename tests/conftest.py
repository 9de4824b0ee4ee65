"""Shared fixtures: a scripted processor API behind httpx.MockTransport."""

import asyncio
import base64
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from payrelay.common.config import RelaySettings
from payrelay.services.relay.main import create_app
from payrelay.services.relay.processor import ProcessorClient

CLIENT_ID = "client-id"
CLIENT_SECRET = "client-secret"
EXPECTED_BASIC = "Basic " + base64.b64encode(f"{CLIENT_ID}:{CLIENT_SECRET}".encode()).decode()
OPTIONAL_ENV = (
    "SERVICE_NAME",
    "PORT",
    "ENVIRONMENT",
    "UPSTREAM_TIMEOUT_SECONDS",
    "RECEIPT_WEBHOOK_URL",
    "OTEL_EXPORTER_OTLP_ENDPOINT",
)


class FakeProcessor:
    """In-memory stand-in for the processor's token, order and identity APIs."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.tokens_issued = 0
        self.failures: dict[str, int] = {}
        self.action_omits_id = False

    def calls_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        # Yield so concurrent requests interleave.
        await asyncio.sleep(0)
        path = request.url.path

        if path in self.failures:
            return httpx.Response(self.failures[path], json={"name": "UPSTREAM_FAILURE"})

        if path == "/v1/oauth2/token":
            if request.headers.get("authorization") != EXPECTED_BASIC:
                return httpx.Response(401, json={"error": "invalid_client"})
            self.tokens_issued += 1
            return httpx.Response(
                200,
                json={"access_token": f"token-{self.tokens_issued}", "token_type": "Bearer", "expires_in": 32400},
            )

        bearer = request.headers.get("authorization", "").removeprefix("Bearer ")

        if path == "/v2/checkout/orders":
            body = json.loads(request.content)
            return httpx.Response(
                201,
                json={
                    "id": "5O190127TN364715T",
                    "status": "CREATED",
                    "intent": body["intent"],
                    "purchase_units": body["purchase_units"],
                    "links": [{"rel": "approve", "href": "https://example.test/approve"}],
                },
            )

        if path.startswith("/v2/checkout/orders/"):
            order_id, intent = path.removeprefix("/v2/checkout/orders/").rsplit("/", 1)
            payload = {"status": "COMPLETED", "intent": intent}
            if not self.action_omits_id:
                payload["id"] = order_id
            return httpx.Response(201, json=payload)

        if path == "/v1/identity/generate-token":
            customer_id = json.loads(request.content)["customer_id"] if request.content else "anonymous"
            return httpx.Response(200, json={"client_token": f"ct:{customer_id}:{bearer}"})

        return httpx.Response(404, json={"name": "RESOURCE_NOT_FOUND"})


class RecordingReceiptSender:
    name = "recording"

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    async def send(self, order_id: str, email: str) -> None:
        self.sent.append((order_id, email))


@pytest.fixture
def settings(tmp_path, monkeypatch):
    for name in OPTIONAL_ENV:
        monkeypatch.delenv(name, raising=False)
    return RelaySettings(
        _env_file=None,
        paypal_client_id=CLIENT_ID,
        paypal_secret_key=CLIENT_SECRET,
        static_dir=tmp_path,
    )


@pytest.fixture
def fake_processor():
    return FakeProcessor()


@pytest.fixture
def processor(settings, fake_processor):
    return ProcessorClient(settings, transport=httpx.MockTransport(fake_processor.handler))


@pytest.fixture
def receipts():
    return RecordingReceiptSender()


@pytest.fixture
def app(settings, processor, receipts):
    return create_app(settings, processor=processor, receipt_sender=receipts)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
