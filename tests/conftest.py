"""Shared fixtures: a fake LNbank transport and a fake hub websocket."""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import pytest
from websockets.exceptions import ConnectionClosedOK
from websockets.frames import Close

from lnbridge.domain.enums import InvoiceStatus
from lnbridge.domain.models import LightningInvoice
from lnbridge.domain.value_objects import LightMoney
from lnbridge.infrastructure.lnbank.hub_protocol import RECORD_SEPARATOR
from lnbridge.infrastructure.lnbank.wire import (
    ChannelData,
    InvoiceData,
    NodeInfoData,
    PaymentData,
    PayResponseData,
)

# Valid compressed pubkeys (66 hex chars, prefix 02/03)
PUBKEY_A = "03e7156ae33b0a208d0744199163177e909e80176e55d97a2f221ede0f934dd9ad"
PUBKEY_B = "02" + "ab" * 32
TXID = "c" * 64
SERVER = "https://btcpay.example.com"
API_TOKEN = "test-token-123"


def invoice_data(invoice_id: str = "inv-1", status: str = "Unpaid", **overrides: Any) -> InvoiceData:
    fields: dict[str, Any] = {
        "id": invoice_id,
        "status": status,
        "BOLT11": f"lnbc10u1{invoice_id}",
        "amount": "1000000",
        "createdAt": 1_700_000_000,
        "expiresAt": 1_700_003_600,
    }
    fields.update(overrides)
    return InvoiceData.model_validate(fields)


def make_invoice(invoice_id: str, status: InvoiceStatus = InvoiceStatus.PAID) -> LightningInvoice:
    return LightningInvoice(
        id=invoice_id,
        bolt11=f"lnbc1{invoice_id}",
        status=status,
        amount=LightMoney(1_000),
        amount_received=LightMoney(1_000) if status == InvoiceStatus.PAID else None,
        paid_at=datetime(2024, 1, 1, tzinfo=UTC) if status == InvoiceStatus.PAID else None,
    )


class FakeLNbankTransport:
    """Stand-in for LNbankTransport.

    ``responses`` maps operation name to the value to return, or to an
    exception instance to raise. Every call is recorded in ``calls``.
    """

    def __init__(self, **responses: Any):
        self.responses: dict[str, Any] = {
            "get_info": NodeInfoData(block_height=800_000, node_uris=[]),
            "get_invoice": invoice_data(),
            "create_invoice": invoice_data(),
            "get_payment": PaymentData(),
            "pay": PayResponseData(result="Ok"),
            "get_deposit_address": "bc1qar0srrr7xfkvy5l643lydnw9re59gtzzwf5mdq",
            "list_channels": [],
            "cancel_invoice": None,
            "open_channel": None,
            "connect_to": None,
        }
        self.responses.update(responses)
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.closed = False

    async def _answer(self, operation: str, *args: Any) -> Any:
        self.calls.append((operation, args))
        response = self.responses[operation]
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return await response(*args)
        return response

    async def get_info(self):
        return await self._answer("get_info")

    async def get_invoice(self, invoice_id):
        return await self._answer("get_invoice", invoice_id)

    async def cancel_invoice(self, invoice_id):
        return await self._answer("cancel_invoice", invoice_id)

    async def create_invoice(self, request):
        return await self._answer("create_invoice", request)

    async def get_payment(self, payment_hash):
        return await self._answer("get_payment", payment_hash)

    async def pay(self, request):
        return await self._answer("pay", request)

    async def get_deposit_address(self):
        return await self._answer("get_deposit_address")

    async def list_channels(self) -> list[ChannelData]:
        return await self._answer("list_channels")

    async def open_channel(self, request):
        return await self._answer("open_channel", request)

    async def connect_to(self, request):
        return await self._answer("connect_to", request)

    async def aclose(self) -> None:
        self.closed = True

    def last_request(self, operation: str) -> Any:
        return [args for name, args in self.calls if name == operation][-1][0]


class FakeHubSocket:
    """In-memory websocket speaking to the listener.

    Frames queued with :meth:`push` are returned by ``recv()`` in order; an
    exception instance is raised instead of returned.
    """

    def __init__(self, handshake_response: str | None = "{}" + RECORD_SEPARATOR):
        self.incoming: asyncio.Queue[Any] = asyncio.Queue()
        self.sent: list[str] = []
        self.closed = False
        if handshake_response is not None:
            self.push(handshake_response)

    def push(self, frame: Any) -> None:
        self.incoming.put_nowait(frame)

    def push_record(self, record: str) -> None:
        self.push(record + RECORD_SEPARATOR)

    def push_remote_close(self) -> None:
        self.push(ConnectionClosedOK(Close(1000, ""), Close(1000, ""), rcvd_then_sent=True))

    async def send(self, data: str) -> None:
        self.sent.append(data)

    async def recv(self) -> Any:
        frame = await self.incoming.get()
        if isinstance(frame, BaseException):
            raise frame
        return frame

    async def close(self) -> None:
        self.closed = True


class FakeConnect:
    """Connect factory handing out one FakeHubSocket and recording the call."""

    def __init__(self, socket: FakeHubSocket | None = None, error: BaseException | None = None):
        self.socket = socket
        self.error = error
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def __call__(self, url: str, **kwargs: Any) -> FakeHubSocket:
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        if self.socket is None:
            self.socket = FakeHubSocket()
        return self.socket


def invoice_frame(invoice_id: str) -> str:
    return (
        '{"type":1,"target":"transaction-update",'
        f'"arguments":[{{"invoiceId":"{invoice_id}","status":"Paid"}}]}}'
    )


@pytest.fixture
def fake_transport() -> FakeLNbankTransport:
    return FakeLNbankTransport()


@pytest.fixture
def hub_socket() -> FakeHubSocket:
    return FakeHubSocket()


@pytest.fixture
def fake_connect(hub_socket: FakeHubSocket) -> FakeConnect:
    return FakeConnect(hub_socket)


@pytest.fixture
def invoice_fetcher() -> Callable[[str], Any]:
    """Async invoice lookup returning a PAID invoice for any id."""

    async def fetch(invoice_id: str) -> LightningInvoice:
        return make_invoice(invoice_id)

    return fetch
