"""Client for the PayPal-compatible processor REST API.

Every public operation opens its own HTTP session and exchanges the service
credentials for a fresh bearer token before making the actual call. Tokens are
never stored on the client.
"""

from time import perf_counter
from typing import Any
from urllib.parse import quote

import httpx

from payrelay.common.config import RelaySettings
from payrelay.common.errors import TransportError, UpstreamError
from payrelay.common.logging import logger
from payrelay.common.metrics import upstream_latency_seconds, upstream_requests_total

TOKEN_PATH = "/v1/oauth2/token"
ORDERS_PATH = "/v2/checkout/orders"
CLIENT_TOKEN_PATH = "/v1/identity/generate-token"


def build_order_payload(currency: str, amount: str) -> dict[str, Any]:
    """Capture-intent order with a single purchase unit."""

    return {
        "intent": "CAPTURE",
        "purchase_units": [
            {
                "amount": {
                    "currency_code": currency,
                    "value": amount,
                }
            }
        ],
    }


class ProcessorClient:
    """Thin async wrapper around the processor's token, order and identity APIs."""

    def __init__(
        self,
        settings: RelaySettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = settings.processor_base_url
        self.client_id = settings.paypal_client_id
        self.client_secret = settings.paypal_secret_key
        self.timeout = settings.upstream_timeout_seconds
        self.transport = transport

    def session(self) -> httpx.AsyncClient:
        # timeout=None disables httpx's default timeout.
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
        )

    async def _call(
        self,
        http: httpx.AsyncClient,
        operation: str,
        failure: str,
        path: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """POST to the processor once and raise a relay error on any failure."""

        start = perf_counter()
        try:
            resp = await http.post(path, **kwargs)
        except httpx.RequestError as exc:
            upstream_requests_total.labels(operation=operation, outcome="transport_error").inc()
            raise TransportError(f"{failure}. {type(exc).__name__}: {exc}") from exc
        finally:
            upstream_latency_seconds.labels(operation=operation).observe(max(0.0, perf_counter() - start))

        if not resp.is_success:
            upstream_requests_total.labels(operation=operation, outcome="rejected").inc()
            raise UpstreamError(f"{failure}. Status: {resp.status_code}", resp.status_code, resp.text)
        upstream_requests_total.labels(operation=operation, outcome="ok").inc()
        return resp

    @staticmethod
    def _json(resp: httpx.Response, failure: str) -> dict[str, Any]:
        try:
            body = resp.json()
        except ValueError as exc:
            raise UpstreamError(f"{failure}. Malformed JSON", resp.status_code, resp.text) from exc
        if not isinstance(body, dict):
            raise UpstreamError(f"{failure}. Unexpected JSON payload", resp.status_code, resp.text)
        return body

    async def get_access_token(self, http: httpx.AsyncClient) -> str:
        """Client-credentials exchange; returns the bearer token string."""

        failure = "Failed to retrieve access token"
        resp = await self._call(
            http,
            "access_token",
            failure,
            TOKEN_PATH,
            auth=httpx.BasicAuth(self.client_id, self.client_secret),
            data={"grant_type": "client_credentials"},
        )
        token = self._json(resp, failure).get("access_token")
        if not token:
            raise UpstreamError(f"{failure}. Response has no access_token", resp.status_code, resp.text)
        return token

    @staticmethod
    def _bearer(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}

    async def create_order(self, currency: str, amount: str) -> dict[str, Any]:
        """Create a capture-intent order and return the processor's order object."""

        failure = "Failed to create payment order"
        async with self.session() as http:
            token = await self.get_access_token(http)
            resp = await self._call(
                http,
                "create_order",
                failure,
                ORDERS_PATH,
                headers=self._bearer(token),
                json=build_order_payload(currency, amount),
            )
        order = self._json(resp, failure)
        logger.info("order created id=%s status=%s", order.get("id"), order.get("status"))
        return order

    async def order_action(self, order_id: str, intent: str) -> dict[str, Any]:
        """Apply an action verb (e.g. `capture`) to an existing order."""

        failure = "Failed to complete order"
        path = f"{ORDERS_PATH}/{quote(order_id, safe='')}/{quote(intent, safe='')}"
        async with self.session() as http:
            token = await self.get_access_token(http)
            resp = await self._call(http, "order_action", failure, path, headers=self._bearer(token))
        return self._json(resp, failure)

    async def generate_client_token(self, customer_id: str | None = None) -> str:
        """Request an identity client token, optionally scoped to a customer."""

        failure = "Failed to retrieve client token"
        kwargs: dict[str, Any] = {}
        if customer_id:
            kwargs["json"] = {"customer_id": customer_id}
        async with self.session() as http:
            token = await self.get_access_token(http)
            resp = await self._call(
                http,
                "client_token",
                failure,
                CLIENT_TOKEN_PATH,
                headers=self._bearer(token),
                **kwargs,
            )
        client_token = self._json(resp, failure).get("client_token")
        if not client_token:
            raise UpstreamError(f"{failure}. Response has no client_token", resp.status_code, resp.text)
        return client_token
