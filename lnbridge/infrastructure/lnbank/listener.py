"""Invoice listener on the LNbank transaction hub.

The listener owns one websocket to the hub. A background reader decodes hub
frames, resolves each referenced invoice through the client and queues it for
the consumer in arrival order.

Lifecycle:
    CREATED → RUNNING (start() succeeds)
    RUNNING → CLOSED (close(), cancel event, remote close, connection loss,
                      undecodable frame or failed invoice lookup)

CLOSED is terminal and the socket is closed on entering it. There is no
reconnect; call ``listen()`` again for a new listener.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from websockets.asyncio.client import connect as websocket_connect
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK, WebSocketException

from ...domain.enums import ListenerState
from ...domain.models import LightningInvoice
from ...exceptions import (
    HubClosedError,
    ListenerClosedError,
    ListenerConnectionError,
    ListenerStateError,
    LnBridgeError,
)
from ...utils.logging import get_logger
from . import hub_protocol
from .hub_protocol import HubMessage, MessageType

logger = get_logger(__name__)

HUB_PATH = "plugins/lnbank/hubs/transaction"
KEEPALIVE_INTERVAL_SECONDS = 15.0
MAX_FRAME_BYTES = 1024 * 1024

InvoiceFetcher = Callable[[str], Awaitable[LightningInvoice]]
ConnectFactory = Callable[..., Awaitable[Any]]

_CLOSED = object()


def hub_url_for(server: str) -> str:
    """Websocket URL of the transaction hub for a BTCPay Server base URL."""
    base = server.rstrip("/")
    if base.startswith("https://"):
        base = "wss://" + base[len("https://") :]
    elif base.startswith("http://"):
        base = "ws://" + base[len("http://") :]
    return f"{base}/{HUB_PATH}"


class LNbankInvoiceListener:
    """Stream of invoices notified by the LNbank hub.

    Usage:
        listener = await client.listen()
        async for invoice in listener:
            ...

    ``wait_invoice()`` returns the next invoice. After closure, invoices that
    were already resolved before a remote close are still handed out; then
    every call raises :class:`ListenerClosedError`. A caller-side ``close()``
    (or the cancel event firing) discards whatever is still queued.
    """

    def __init__(
        self,
        hub_url: str,
        api_token: str,
        fetch_invoice: InvoiceFetcher,
        *,
        cancel_event: asyncio.Event | None = None,
        open_timeout_seconds: float = 10.0,
        keepalive_interval_seconds: float = KEEPALIVE_INTERVAL_SECONDS,
        connect: ConnectFactory | None = None,
    ) -> None:
        self.hub_url = hub_url
        self._api_token = api_token
        self._fetch_invoice = fetch_invoice
        self._cancel_event = cancel_event
        self._open_timeout = open_timeout_seconds
        self._keepalive_interval = keepalive_interval_seconds
        self._connect = connect or websocket_connect

        self._state = ListenerState.CREATED
        self._socket: Any = None
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._cause: BaseException | None = None
        self._tasks: list[asyncio.Task[None]] = []
        self._log = logger.bind(listener_id=uuid.uuid4().hex[:8], hub_url=hub_url)

    @property
    def state(self) -> ListenerState:
        self._check_cancelled()
        return self._state

    @property
    def close_cause(self) -> BaseException | None:
        """Why the listener closed, when it was not closed by the caller."""
        return self._cause

    async def start(self) -> None:
        """Open the hub connection and start reading.

        Raises:
            ListenerStateError: If the listener was already started or closed
            ListenerConnectionError: If the hub cannot be reached or rejects the handshake
        """
        if self._state is not ListenerState.CREATED:
            raise ListenerStateError(
                "Listener can only be started once",
                current_state=self._state.value,
                attempted_action="start",
            )
        if self._cancel_event is not None and self._cancel_event.is_set():
            self._state = ListenerState.CLOSED
            self._queue.put_nowait(_CLOSED)
            raise ListenerConnectionError("Listen cancelled before the hub connection was opened")

        try:
            async with asyncio.timeout(self._open_timeout):
                self._socket = await self._connect(
                    self.hub_url,
                    additional_headers={"Authorization": f"Bearer {self._api_token}"},
                    open_timeout=self._open_timeout,
                    max_size=MAX_FRAME_BYTES,
                )
                await self._socket.send(hub_protocol.handshake_request())
                early_messages = hub_protocol.check_handshake_response(await self._socket.recv())
        except (OSError, TimeoutError, WebSocketException, LnBridgeError) as e:
            self._state = ListenerState.CLOSED
            self._cause = e
            self._queue.put_nowait(_CLOSED)
            await self._close_socket()
            self._log.warning("listener_connect_failed", error=str(e), error_type=type(e).__name__)
            raise ListenerConnectionError(
                f"Could not open LNbank hub connection: {e}",
                context={"hub_url": self.hub_url},
                original_error=e,
            ) from e

        self._state = ListenerState.RUNNING
        self._tasks.append(asyncio.create_task(self._read_loop(early_messages)))
        self._tasks.append(asyncio.create_task(self._keepalive_loop()))
        if self._cancel_event is not None:
            self._tasks.append(asyncio.create_task(self._watch_cancel(self._cancel_event)))
        self._log.info("listener_started")

    async def wait_invoice(self) -> LightningInvoice:
        """Wait for the next notified invoice.

        Raises:
            ListenerStateError: If the listener was never started
            ListenerClosedError: If the listener is closed and nothing is left to hand out
        """
        if self._state is ListenerState.CREATED:
            raise ListenerStateError(
                "Listener has not been started",
                current_state=self._state.value,
                attempted_action="wait_invoice",
            )
        self._check_cancelled()
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the marker for the next waiter.
            self._queue.put_nowait(_CLOSED)
            raise ListenerClosedError("Invoice listener is closed", original_error=self._cause)
        return item

    async def close(self) -> None:
        """Close the listener. Idempotent."""
        await self._finish(None, discard_pending=True)

    def __aiter__(self) -> AsyncIterator[LightningInvoice]:
        return self

    async def __anext__(self) -> LightningInvoice:
        try:
            return await self.wait_invoice()
        except ListenerClosedError:
            if self._cause is not None:
                raise
            raise StopAsyncIteration from None

    async def __aenter__(self) -> LNbankInvoiceListener:
        if self._state is ListenerState.CREATED:
            await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _read_loop(self, pending: list[HubMessage]) -> None:
        cause: BaseException | None = None
        try:
            for message in pending:
                if not await self._dispatch(message):
                    return
            while True:
                data = await self._socket.recv()
                for message in hub_protocol.decode(data):
                    if not await self._dispatch(message):
                        return
        except ConnectionClosedOK:
            self._log.info("listener_remote_closed")
        except ConnectionClosed as e:
            cause = e
            self._log.warning("listener_connection_lost", error=str(e))
        except Exception as e:
            cause = e
            self._log.exception("listener_failed", error=str(e), error_type=type(e).__name__)
        finally:
            if self._state is not ListenerState.CLOSED:
                await self._finish(cause or self._cause, discard_pending=False)

    async def _dispatch(self, message: HubMessage) -> bool:
        """Handle one hub message; False once the hub asked to close."""
        if message.type == MessageType.PING:
            return True
        if message.type == MessageType.CLOSE:
            self._log.info("listener_hub_close", error=message.error)
            if message.error:
                self._cause = HubClosedError(f"Hub closed the connection: {message.error}")
            return False

        invoice_id = message.invoice_id
        if invoice_id is None:
            self._log.debug("listener_message_ignored", type=message.type, target=message.target)
            return True

        invoice = await self._fetch_invoice(invoice_id)
        if self._state is ListenerState.CLOSED:
            return False
        self._log.debug("listener_invoice_received", invoice_id=invoice_id, status=invoice.status.value)
        self._queue.put_nowait(invoice)
        return True

    async def _keepalive_loop(self) -> None:
        # The hub drops clients that stay silent past its timeout.
        try:
            while True:
                await asyncio.sleep(self._keepalive_interval)
                await self._socket.send(hub_protocol.ping_message())
        except ConnectionClosed:
            return

    def _check_cancelled(self) -> None:
        """Enter CLOSED as soon as the cancel event is seen; teardown follows in close()."""
        if (
            self._state is ListenerState.RUNNING
            and self._cancel_event is not None
            and self._cancel_event.is_set()
        ):
            while not self._queue.empty():
                self._queue.get_nowait()
            self._state = ListenerState.CLOSED
            self._queue.put_nowait(_CLOSED)
            self._log.info("listener_cancelled")

    async def _watch_cancel(self, cancel_event: asyncio.Event) -> None:
        await cancel_event.wait()
        self._check_cancelled()
        await self.close()

    async def _finish(self, cause: BaseException | None, *, discard_pending: bool) -> None:
        already_closed = (
            self._state is ListenerState.CLOSED and self._socket is None and not self._tasks
        )
        if discard_pending:
            while not self._queue.empty():
                self._queue.get_nowait()
        if already_closed:
            if discard_pending:
                self._queue.put_nowait(_CLOSED)
            return

        self._state = ListenerState.CLOSED
        if cause is not None:
            self._cause = cause
        self._queue.put_nowait(_CLOSED)

        current = asyncio.current_task()
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            if task is not current:
                task.cancel()
        await self._close_socket()
        for task in tasks:
            if task is not current:
                await asyncio.gather(task, return_exceptions=True)

        self._log.info("listener_closed", cause=repr(self._cause) if self._cause else None)

    async def _close_socket(self) -> None:
        socket, self._socket = self._socket, None
        if socket is None:
            return
        try:
            await socket.send(hub_protocol.close_message())
        except (OSError, WebSocketException) as e:
            self._log.debug("listener_close_message_failed", error=str(e))
        try:
            await socket.close()
        except (OSError, WebSocketException) as e:
            self._log.debug("listener_socket_close_failed", error=str(e))


__all__ = [
    "LNbankInvoiceListener",
    "hub_url_for",
]
