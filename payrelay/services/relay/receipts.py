"""Receipt dispatch for completed orders."""

from typing import Protocol

import httpx

from payrelay.common.logging import logger
from payrelay.common.metrics import receipts_dispatched_total


class ReceiptSender(Protocol):
    name: str

    async def send(self, order_id: str, email: str) -> None: ...


class LogReceiptSender:
    """Records receipt requests in the structured log only."""

    name = "log"

    async def send(self, order_id: str, email: str) -> None:
        logger.info("receipt requested order_id=%s", order_id)
        logger.debug("receipt recipient order_id=%s email=%s", order_id, email)


class WebhookReceiptSender:
    """Hands receipts to an external mailer over HTTP."""

    name = "webhook"

    def __init__(self, url: str, timeout: float | None = 5.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def send(self, order_id: str, email: str) -> None:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            resp = await client.post(self.url, json={"id": order_id, "email": email})
        resp.raise_for_status()


async def dispatch_receipt(sender: ReceiptSender, order_id: str, email: str) -> None:
    """Run one receipt dispatch after the response has been sent.

    Failures are logged and counted; they never reach the caller.
    """

    try:
        await sender.send(order_id, email)
    except Exception as exc:
        receipts_dispatched_total.labels(sender=sender.name, outcome="failed").inc()
        logger.exception("receipt dispatch failed order_id=%s: %s", order_id, exc)
        return
    receipts_dispatched_total.labels(sender=sender.name, outcome="sent").inc()
