"""Protocols callers program against.

Every backend adapter implements :class:`LightningClient`; callers hold only
this type and never learn which backend is behind it.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from datetime import timedelta
from typing import Protocol, runtime_checkable

from .enums import ConnectionResult, ListenerState
from .models import (
    CreateInvoiceParams,
    LightningChannel,
    LightningInvoice,
    LightningNodeInformation,
    LightningPayment,
    OpenChannelRequest,
    OpenChannelResponse,
    PayInvoiceParams,
    PayResponse,
)
from .value_objects import BitcoinAddress, LightMoney, NodeInfo


@runtime_checkable
class InvoiceListener(Protocol):
    """Live stream of invoice notifications.

    Obtained already started from :meth:`LightningClient.listen`. Consumption
    order equals arrival order; once closed, consumption raises
    :class:`lnbridge.exceptions.ListenerClosedError`.
    """

    @property
    def state(self) -> ListenerState: ...

    async def wait_invoice(self) -> LightningInvoice:
        """Wait for the next invoice notification."""
        ...

    async def close(self) -> None:
        """Close the push channel. Idempotent."""
        ...

    def __aiter__(self) -> AsyncIterator[LightningInvoice]: ...


@runtime_checkable
class LightningClient(Protocol):
    """Unified Lightning node operations.

    Every operation is a coroutine; cancelling the awaiting task abandons the
    backend call and propagates :class:`asyncio.CancelledError`.
    """

    async def get_info(self) -> LightningNodeInformation: ...

    async def get_invoice(self, invoice_id: str) -> LightningInvoice: ...

    async def get_payment(self, payment_hash: str) -> LightningPayment: ...

    async def get_deposit_address(self) -> BitcoinAddress: ...

    async def cancel_invoice(self, invoice_id: str) -> None: ...

    async def list_channels(self) -> list[LightningChannel]: ...

    async def create_invoice(
        self,
        amount: LightMoney | CreateInvoiceParams,
        description: str | None = None,
        expiry: timedelta | None = None,
    ) -> LightningInvoice: ...

    async def pay(
        self, bolt11: str, pay_params: PayInvoiceParams | None = None
    ) -> PayResponse: ...

    async def open_channel(self, request: OpenChannelRequest) -> OpenChannelResponse: ...

    async def connect_to(self, node_info: NodeInfo) -> ConnectionResult: ...

    async def listen(self, cancel_event: asyncio.Event | None = None) -> InvoiceListener: ...

    async def aclose(self) -> None: ...
