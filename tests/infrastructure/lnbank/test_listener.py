"""Tests for the LNbank hub invoice listener.

Tests cover:
- Lifecycle transitions (CREATED → RUNNING → CLOSED)
- Frame handling (invocations, pings, close messages)
- Consumption after closure and cancellation
"""

import asyncio

import pytest
from conftest import API_TOKEN, FakeConnect, FakeHubSocket, invoice_frame
from websockets.exceptions import ConnectionClosedError
from websockets.frames import Close

from lnbridge.domain.enums import ListenerState
from lnbridge.exceptions import (
    HubClosedError,
    ListenerClosedError,
    ListenerConnectionError,
    ListenerStateError,
    LNbankApiError,
    ParseError,
)
from lnbridge.infrastructure.lnbank.hub_protocol import (
    close_message,
    handshake_request,
    ping_message,
)
from lnbridge.infrastructure.lnbank.listener import LNbankInvoiceListener, hub_url_for

HUB_URL = "wss://btcpay.example.com/plugins/lnbank/hubs/transaction"
PING = '{"type":6}'


def make_listener(connect, fetch, **kwargs) -> LNbankInvoiceListener:
    return LNbankInvoiceListener(HUB_URL, API_TOKEN, fetch, connect=connect, **kwargs)


async def next_invoice(listener: LNbankInvoiceListener):
    return await asyncio.wait_for(listener.wait_invoice(), timeout=1)


async def wait_closed(listener: LNbankInvoiceListener) -> None:
    for _ in range(100):
        if listener.state is ListenerState.CLOSED:
            return
        await asyncio.sleep(0.01)
    raise AssertionError("listener did not close")


class TestHubUrl:
    @pytest.mark.parametrize(
        "server,expected",
        [
            ("https://btcpay.example.com", HUB_URL),
            ("https://btcpay.example.com/", HUB_URL),
            ("http://localhost:14142", "ws://localhost:14142/plugins/lnbank/hubs/transaction"),
        ],
    )
    def test_scheme_mapping(self, server: str, expected: str) -> None:
        assert hub_url_for(server) == expected


class TestStart:
    @pytest.mark.asyncio
    async def test_start_opens_and_handshakes(self, fake_connect, hub_socket, invoice_fetcher) -> None:
        listener = make_listener(fake_connect, invoice_fetcher)
        assert listener.state is ListenerState.CREATED

        await listener.start()
        try:
            assert listener.state is ListenerState.RUNNING
            url, kwargs = fake_connect.calls[0]
            assert url == HUB_URL
            assert kwargs["additional_headers"] == {"Authorization": f"Bearer {API_TOKEN}"}
            assert hub_socket.sent[0] == handshake_request()
        finally:
            await listener.close()

    @pytest.mark.asyncio
    async def test_start_twice_is_rejected(self, fake_connect, invoice_fetcher) -> None:
        listener = make_listener(fake_connect, invoice_fetcher)
        await listener.start()
        try:
            with pytest.raises(ListenerStateError):
                await listener.start()
        finally:
            await listener.close()

    @pytest.mark.asyncio
    async def test_wait_before_start_is_rejected(self, fake_connect, invoice_fetcher) -> None:
        with pytest.raises(ListenerStateError):
            await make_listener(fake_connect, invoice_fetcher).wait_invoice()

    @pytest.mark.asyncio
    async def test_connection_failure(self, invoice_fetcher) -> None:
        listener = make_listener(FakeConnect(error=OSError("refused")), invoice_fetcher)

        with pytest.raises(ListenerConnectionError) as exc:
            await listener.start()

        assert isinstance(exc.value.original_error, OSError)
        assert listener.state is ListenerState.CLOSED
        with pytest.raises(ListenerClosedError):
            await next_invoice(listener)

    @pytest.mark.asyncio
    async def test_rejected_handshake(self, invoice_fetcher) -> None:
        socket = FakeHubSocket(handshake_response='{"error":"unsupported protocol"}\x1e')
        listener = make_listener(FakeConnect(socket), invoice_fetcher)

        with pytest.raises(ListenerConnectionError) as exc:
            await listener.start()

        assert isinstance(exc.value.original_error, ParseError)
        assert socket.closed
        assert listener.state is ListenerState.CLOSED

    @pytest.mark.asyncio
    async def test_handshake_timeout(self, invoice_fetcher) -> None:
        socket = FakeHubSocket(handshake_response=None)
        listener = make_listener(FakeConnect(socket), invoice_fetcher, open_timeout_seconds=0.05)

        with pytest.raises(ListenerConnectionError):
            await listener.start()

        assert socket.closed


class TestNotifications:
    @pytest.mark.asyncio
    async def test_invoices_in_arrival_order(self, fake_connect, hub_socket, invoice_fetcher) -> None:
        listener = make_listener(fake_connect, invoice_fetcher)
        await listener.start()
        try:
            hub_socket.push_record(invoice_frame("a"))
            hub_socket.push(invoice_frame("b") + "\x1e" + invoice_frame("c") + "\x1e")

            ids = [(await next_invoice(listener)).id for _ in range(3)]

            assert ids == ["a", "b", "c"]
        finally:
            await listener.close()

    @pytest.mark.asyncio
    async def test_pings_and_unrelated_messages_are_ignored(
        self, fake_connect, hub_socket, invoice_fetcher
    ) -> None:
        listener = make_listener(fake_connect, invoice_fetcher)
        await listener.start()
        try:
            hub_socket.push_record(PING)
            hub_socket.push_record('{"type":1,"target":"other","arguments":[{"foo":1}]}')
            hub_socket.push_record('{"type":3,"invocationId":"1"}')
            hub_socket.push_record(invoice_frame("x"))

            assert (await next_invoice(listener)).id == "x"
            assert listener.state is ListenerState.RUNNING
        finally:
            await listener.close()

    @pytest.mark.asyncio
    async def test_messages_sent_with_handshake_are_delivered(self, invoice_fetcher) -> None:
        socket = FakeHubSocket(handshake_response="{}\x1e" + invoice_frame("early") + "\x1e")
        listener = make_listener(FakeConnect(socket), invoice_fetcher)
        await listener.start()
        try:
            assert (await next_invoice(listener)).id == "early"
        finally:
            await listener.close()

    @pytest.mark.asyncio
    async def test_async_iteration(self, fake_connect, hub_socket, invoice_fetcher) -> None:
        listener = make_listener(fake_connect, invoice_fetcher)
        await listener.start()
        hub_socket.push_record(invoice_frame("1"))
        hub_socket.push_record(invoice_frame("2"))
        hub_socket.push_record('{"type":7}')

        received = [invoice.id async for invoice in listener]

        assert received == ["1", "2"]
        assert listener.state is ListenerState.CLOSED

    @pytest.mark.asyncio
    async def test_keepalive_pings(self, fake_connect, hub_socket, invoice_fetcher) -> None:
        listener = make_listener(fake_connect, invoice_fetcher, keepalive_interval_seconds=0.01)
        await listener.start()
        try:
            await asyncio.sleep(0.05)
            assert ping_message() in hub_socket.sent
        finally:
            await listener.close()


class TestClosure:
    @pytest.mark.asyncio
    async def test_close_wakes_waiters(self, fake_connect, hub_socket, invoice_fetcher) -> None:
        listener = make_listener(fake_connect, invoice_fetcher)
        await listener.start()
        waiter = asyncio.create_task(listener.wait_invoice())
        await asyncio.sleep(0)

        await listener.close()

        with pytest.raises(ListenerClosedError):
            await asyncio.wait_for(waiter, timeout=1)
        assert listener.state is ListenerState.CLOSED
        assert hub_socket.closed

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, fake_connect, invoice_fetcher) -> None:
        listener = make_listener(fake_connect, invoice_fetcher)
        await listener.start()

        await listener.close()
        await listener.close()

        assert listener.state is ListenerState.CLOSED
        for _ in range(2):
            with pytest.raises(ListenerClosedError):
                await next_invoice(listener)

    @pytest.mark.asyncio
    async def test_caller_close_discards_queued_invoices(
        self, fake_connect, hub_socket, invoice_fetcher
    ) -> None:
        listener = make_listener(fake_connect, invoice_fetcher)
        await listener.start()
        hub_socket.push_record(invoice_frame("queued"))
        await asyncio.sleep(0.05)

        await listener.close()

        with pytest.raises(ListenerClosedError):
            await next_invoice(listener)

    @pytest.mark.asyncio
    async def test_cancel_event_closes(self, fake_connect, hub_socket, invoice_fetcher) -> None:
        cancel = asyncio.Event()
        listener = make_listener(fake_connect, invoice_fetcher, cancel_event=cancel)
        await listener.start()
        assert listener.state is ListenerState.RUNNING

        cancel.set()
        await wait_closed(listener)

        with pytest.raises(ListenerClosedError):
            await next_invoice(listener)
        assert hub_socket.closed

    @pytest.mark.asyncio
    async def test_cancel_takes_effect_before_the_next_read(
        self, fake_connect, hub_socket, invoice_fetcher
    ) -> None:
        cancel = asyncio.Event()
        listener = make_listener(fake_connect, invoice_fetcher, cancel_event=cancel)
        await listener.start()
        hub_socket.push_record(invoice_frame("queued"))
        await asyncio.sleep(0.05)

        cancel.set()

        with pytest.raises(ListenerClosedError):
            await next_invoice(listener)
        assert listener.state is ListenerState.CLOSED

    @pytest.mark.asyncio
    async def test_state_reflects_cancel_immediately(
        self, fake_connect, hub_socket, invoice_fetcher
    ) -> None:
        cancel = asyncio.Event()
        listener = make_listener(fake_connect, invoice_fetcher, cancel_event=cancel)
        await listener.start()

        cancel.set()

        assert listener.state is ListenerState.CLOSED
        await listener.close()
        assert hub_socket.closed
        assert hub_socket.sent[-1] == close_message()

    @pytest.mark.asyncio
    async def test_cancel_before_start(self, fake_connect, invoice_fetcher) -> None:
        cancel = asyncio.Event()
        cancel.set()
        listener = make_listener(fake_connect, invoice_fetcher, cancel_event=cancel)

        with pytest.raises(ListenerConnectionError):
            await listener.start()

        assert fake_connect.calls == []
        assert listener.state is ListenerState.CLOSED

    @pytest.mark.asyncio
    async def test_remote_close_delivers_received_invoices_first(
        self, fake_connect, hub_socket, invoice_fetcher
    ) -> None:
        listener = make_listener(fake_connect, invoice_fetcher)
        await listener.start()
        hub_socket.push_record(invoice_frame("a"))
        hub_socket.push_record(invoice_frame("b"))
        hub_socket.push_remote_close()
        await wait_closed(listener)

        assert (await next_invoice(listener)).id == "a"
        assert (await next_invoice(listener)).id == "b"
        with pytest.raises(ListenerClosedError):
            await next_invoice(listener)
        assert listener.close_cause is None

    @pytest.mark.asyncio
    async def test_hub_close_with_error(self, fake_connect, hub_socket, invoice_fetcher) -> None:
        listener = make_listener(fake_connect, invoice_fetcher)
        await listener.start()
        hub_socket.push_record('{"type":7,"error":"Server shutting down"}')
        await wait_closed(listener)

        with pytest.raises(ListenerClosedError) as exc:
            async for _ in listener:
                pass

        assert isinstance(exc.value.original_error, HubClosedError)
        assert hub_socket.closed

    @pytest.mark.asyncio
    async def test_connection_loss(self, fake_connect, hub_socket, invoice_fetcher) -> None:
        listener = make_listener(fake_connect, invoice_fetcher)
        await listener.start()
        hub_socket.push(ConnectionClosedError(Close(1011, "internal error"), None))
        await wait_closed(listener)

        with pytest.raises(ListenerClosedError) as exc:
            await next_invoice(listener)

        assert isinstance(exc.value.original_error, ConnectionClosedError)

    @pytest.mark.asyncio
    async def test_malformed_frame_closes(self, fake_connect, hub_socket, invoice_fetcher) -> None:
        listener = make_listener(fake_connect, invoice_fetcher)
        await listener.start()
        hub_socket.push("this is not json\x1e")
        await wait_closed(listener)

        with pytest.raises(ListenerClosedError) as exc:
            await next_invoice(listener)

        assert isinstance(exc.value.original_error, ParseError)

    @pytest.mark.asyncio
    async def test_failed_invoice_lookup_closes(self, fake_connect, hub_socket) -> None:
        async def failing_fetch(invoice_id: str):
            raise LNbankApiError("gone", error_code="invoice-not-found", status_code=404)

        listener = make_listener(fake_connect, failing_fetch)
        await listener.start()
        hub_socket.push_record(invoice_frame("missing"))
        await wait_closed(listener)

        with pytest.raises(ListenerClosedError) as exc:
            await next_invoice(listener)

        assert isinstance(exc.value.original_error, LNbankApiError)

    @pytest.mark.asyncio
    async def test_context_manager_closes(self, fake_connect, hub_socket, invoice_fetcher) -> None:
        async with make_listener(fake_connect, invoice_fetcher) as listener:
            assert listener.state is ListenerState.RUNNING

        assert listener.state is ListenerState.CLOSED
        assert hub_socket.closed
