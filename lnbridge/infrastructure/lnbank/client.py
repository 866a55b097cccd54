"""LNbank implementation of :class:`lnbridge.domain.ports.LightningClient`.

Translates between the LNbank wire shapes and the canonical domain model:
amounts become :class:`LightMoney`, status strings become enums, node URIs,
public keys, outpoints and addresses are parsed into value objects. Backend
error codes are decoded into results only for ``open_channel`` and
``connect_to``; every other failure reaches the caller unchanged.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Any

import httpx

from ...domain.enums import (
    ConnectionResult,
    InvoiceStatus,
    Network,
    OpenChannelResult,
    PaymentStatus,
    PayResult,
)
from ...domain.models import (
    CreateInvoiceParams,
    LightningChannel,
    LightningInvoice,
    LightningNodeInformation,
    LightningPayment,
    OpenChannelRequest,
    OpenChannelResponse,
    PayDetails,
    PayInvoiceParams,
    PayResponse,
)
from ...domain.result_mapping import map_connection_error, map_open_channel_error
from ...domain.value_objects import BitcoinAddress, LightMoney, NodeInfo, OutPoint, PubKey
from ...exceptions import LNbankApiError, ParseError
from ...utils.logging import get_logger
from .listener import ConnectFactory, LNbankInvoiceListener, hub_url_for
from .transport import LNbankTransport
from .wire import (
    ChannelData,
    ConnectRequestData,
    CreateInvoiceRequestData,
    InvoiceData,
    OpenChannelRequestData,
    PayDetailsData,
    PaymentData,
    PayRequestData,
)

logger = get_logger(__name__)


def _normalize(value: str) -> str:
    return value.strip().lower().replace("_", "").replace("-", "")


_INVOICE_STATUSES = {
    "unpaid": InvoiceStatus.UNPAID,
    "paid": InvoiceStatus.PAID,
    "expired": InvoiceStatus.EXPIRED,
    "cancelled": InvoiceStatus.CANCELLED,
    "canceled": InvoiceStatus.CANCELLED,
}

_PAYMENT_STATUSES = {
    "unknown": PaymentStatus.UNKNOWN,
    "pending": PaymentStatus.PENDING,
    "complete": PaymentStatus.COMPLETE,
    "failed": PaymentStatus.FAILED,
}

_PAY_RESULTS = {
    "ok": PayResult.OK,
    "couldnotfindroute": PayResult.COULD_NOT_FIND_ROUTE,
    "error": PayResult.ERROR,
}


def _invoice_status(value: str) -> InvoiceStatus:
    try:
        return _INVOICE_STATUSES[_normalize(value)]
    except KeyError:
        raise ParseError("Unknown invoice status", field="status", value=value) from None


def _payment_status(value: str | None) -> PaymentStatus:
    # Payments in flight may report states newer than this client knows about.
    if value is None:
        return PaymentStatus.UNKNOWN
    return _PAYMENT_STATUSES.get(_normalize(value), PaymentStatus.UNKNOWN)


def _pay_result(value: str) -> PayResult:
    try:
        return _PAY_RESULTS[_normalize(value)]
    except KeyError:
        raise ParseError("Unknown pay result", field="result", value=value) from None


def _money(msat: int | None) -> LightMoney | None:
    return LightMoney(msat) if msat is not None else None


def _seconds(value: timedelta | None) -> int | None:
    return int(value.total_seconds()) if value is not None else None


def to_invoice(data: InvoiceData) -> LightningInvoice:
    return LightningInvoice(
        id=data.id,
        bolt11=data.bolt11,
        status=_invoice_status(data.status),
        amount=_money(data.amount),
        amount_received=_money(data.amount_received),
        created_at=data.created_at,
        paid_at=data.paid_at,
        expires_at=data.expires_at,
    )


def to_payment(data: PaymentData) -> LightningPayment:
    return LightningPayment.from_totals(
        total_amount=_money(data.total_amount),
        fee_amount=_money(data.fee_amount),
        id=data.id,
        payment_hash=data.payment_hash,
        status=_payment_status(data.status),
        created_at=data.created_at,
        bolt11=data.bolt11,
        preimage=data.preimage,
    )


def to_channel(data: ChannelData) -> LightningChannel:
    """Map one channel. Key and channel point must parse; failures propagate."""
    return LightningChannel(
        is_public=data.is_public,
        is_active=data.is_active,
        remote_node=PubKey.parse(data.remote_node),
        local_balance=LightMoney(data.local_balance),
        capacity=LightMoney(data.capacity),
        channel_point=OutPoint.parse(data.channel_point),
    )


def to_pay_details(data: PayDetailsData) -> PayDetails:
    return PayDetails(
        total_amount=_money(data.total_amount),
        fee_amount=_money(data.fee_amount),
        preimage=data.preimage,
        payment_hash=data.payment_hash,
        status=_payment_status(data.status),
    )


class LNbankLightningClient:
    """Lightning client backed by a BTCPay Server LNbank wallet.

    Holds only configuration and the transport, so one instance can serve
    concurrent calls.

    Usage:
        async with LNbankLightningClient("https://btcpay.example", token) as client:
            info = await client.get_info()
    """

    def __init__(
        self,
        server: str,
        api_token: str,
        network: Network = Network.MAINNET,
        *,
        transport: LNbankTransport | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 30.0,
        listener_open_timeout_seconds: float = 10.0,
        listener_connect: ConnectFactory | None = None,
    ) -> None:
        self.server = server.rstrip("/")
        self.network = network
        self._api_token = api_token
        self._owns_transport = transport is None
        self._transport = transport or LNbankTransport(
            self.server,
            api_token,
            timeout_seconds=timeout_seconds,
            http_client=http_client,
        )
        self._listener_open_timeout = listener_open_timeout_seconds
        self._listener_connect = listener_connect

    def __repr__(self) -> str:
        return f"LNbankLightningClient(server={self.server!r}, network={self.network.value!r})"

    async def get_info(self) -> LightningNodeInformation:
        data = await self._transport.get_info()
        return LightningNodeInformation.from_uris(data.block_height, data.node_uris)

    async def get_invoice(self, invoice_id: str) -> LightningInvoice:
        return to_invoice(await self._transport.get_invoice(invoice_id))

    async def get_payment(self, payment_hash: str) -> LightningPayment:
        return to_payment(await self._transport.get_payment(payment_hash))

    async def get_deposit_address(self) -> BitcoinAddress:
        address = await self._transport.get_deposit_address()
        return BitcoinAddress.parse(address, self.network)

    async def cancel_invoice(self, invoice_id: str) -> None:
        await self._transport.cancel_invoice(invoice_id)
        logger.info("invoice_cancelled", invoice_id=invoice_id)

    async def list_channels(self) -> list[LightningChannel]:
        """List channels in backend order.

        Raises:
            PubKeyParseError: If a channel reports a malformed remote node key
            OutPointParseError: If a channel reports a malformed channel point
        """
        return [to_channel(channel) for channel in await self._transport.list_channels()]

    async def create_invoice(
        self,
        amount: LightMoney | CreateInvoiceParams,
        description: str | None = None,
        expiry: timedelta | None = None,
    ) -> LightningInvoice:
        """Create an invoice.

        Accepts either ``(amount, description, expiry)`` or a single
        :class:`CreateInvoiceParams`; both forms produce the same request.
        """
        if isinstance(amount, CreateInvoiceParams):
            if description is not None or expiry is not None:
                raise TypeError("Pass either CreateInvoiceParams or amount/description/expiry")
            params = amount
        else:
            if expiry is None:
                raise TypeError("create_invoice() requires an expiry when given an amount")
            params = CreateInvoiceParams(amount=amount, description=description or "", expiry=expiry)

        request = CreateInvoiceRequestData(
            amount=params.amount.msat,
            description=params.description,
            expiry=int(params.expiry.total_seconds()),
            description_hash_only=params.description_hash_only,
            private_route_hints=params.private_route_hints,
        )
        invoice = to_invoice(await self._transport.create_invoice(request))
        logger.info("invoice_created", invoice_id=invoice.id, amount_msat=params.amount.msat)
        return invoice

    async def pay(self, bolt11: str, pay_params: PayInvoiceParams | None = None) -> PayResponse:
        params = pay_params or PayInvoiceParams()
        request = PayRequestData(
            payment_request=bolt11,
            max_fee_percent=params.max_fee_percent,
            max_fee_flat=params.max_fee_flat.msat if params.max_fee_flat else None,
            amount=params.amount.msat if params.amount else None,
            send_timeout=_seconds(params.send_timeout),
        )
        data = await self._transport.pay(request)
        response = PayResponse(
            result=_pay_result(data.result),
            details=to_pay_details(data.details) if data.details else None,
            error_detail=data.error_detail,
        )
        logger.info("pay_attempted", result=response.result.value)
        return response

    async def open_channel(self, request: OpenChannelRequest) -> OpenChannelResponse:
        """Open a channel, decoding known backend rejections into the result.

        Raises:
            UnsupportedErrorCodeError: If the backend rejects with an unknown code
        """
        wire_request = OpenChannelRequestData(
            node_uri=str(request.node_info),
            channel_amount=request.channel_amount_sat,
            fee_rate=request.fee_rate_sat_per_vbyte,
        )
        try:
            await self._transport.open_channel(wire_request)
        except LNbankApiError as e:
            result = map_open_channel_error(e.error_code)
            logger.info(
                "open_channel_rejected",
                node=request.node_info.host_port,
                error_code=e.error_code,
                result=result.value,
            )
            return OpenChannelResponse(result)
        return OpenChannelResponse(OpenChannelResult.OK)

    async def connect_to(self, node_info: NodeInfo) -> ConnectionResult:
        """Connect to a peer.

        Raises:
            UnsupportedErrorCodeError: If the backend rejects with an unknown code
        """
        try:
            await self._transport.connect_to(ConnectRequestData(node_uri=str(node_info)))
        except LNbankApiError as e:
            result = map_connection_error(e.error_code)
            logger.info("connect_rejected", node=node_info.host_port, error_code=e.error_code)
            return result
        return ConnectionResult.OK

    async def listen(self, cancel_event: asyncio.Event | None = None) -> LNbankInvoiceListener:
        """Open the push channel and return a running listener.

        Setting ``cancel_event`` closes the listener; if it is already set the
        push channel is never opened.

        Raises:
            ListenerConnectionError: If the hub cannot be reached
        """
        listener = LNbankInvoiceListener(
            hub_url_for(self.server),
            self._api_token,
            self.get_invoice,
            cancel_event=cancel_event,
            open_timeout_seconds=self._listener_open_timeout,
            connect=self._listener_connect,
        )
        await listener.start()
        return listener

    async def aclose(self) -> None:
        """Release the transport when this client created it."""
        if self._owns_transport:
            await self._transport.aclose()

    async def __aenter__(self) -> LNbankLightningClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


__all__ = ["LNbankLightningClient", "to_channel", "to_invoice", "to_payment"]
