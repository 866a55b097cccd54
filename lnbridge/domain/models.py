"""Canonical Lightning entities returned by every backend adapter.

Entities are created fresh from each backend response and never cached; none
of them carries identity beyond the call that produced it.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from .enums import InvoiceStatus, OpenChannelResult, PaymentStatus, PayResult
from .value_objects import LightMoney, NodeInfo, OutPoint, PubKey


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _msat(value: LightMoney | None) -> int | None:
    return value.msat if value is not None else None


@dataclass(frozen=True)
class LightningNodeInformation:
    """Node status: chain tip seen by the node and the URIs it is reachable at."""

    block_height: int
    node_info_list: tuple[NodeInfo, ...] = ()

    @classmethod
    def from_uris(cls, block_height: int, uris: list[str]) -> "LightningNodeInformation":
        """Build node information, dropping URIs that do not parse.

        A malformed URI never fails the whole response; the remaining ones keep
        their order.
        """
        parsed = (NodeInfo.try_parse(uri) for uri in uris)
        return cls(
            block_height=block_height,
            node_info_list=tuple(info for info in parsed if info is not None),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "block_height": self.block_height,
            "node_info_list": [str(info) for info in self.node_info_list],
        }


@dataclass(frozen=True)
class LightningInvoice:
    """Incoming payment request and its lifecycle.

    A PAID invoice is expected to carry ``paid_at`` and ``amount_received``;
    this is what backends report, not something enforced here.
    """

    id: str
    bolt11: str
    status: InvoiceStatus
    amount: LightMoney | None = None
    amount_received: LightMoney | None = None
    created_at: datetime | None = None
    paid_at: datetime | None = None
    expires_at: datetime | None = None

    @property
    def is_paid(self) -> bool:
        return self.status == InvoiceStatus.PAID

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "bolt11": self.bolt11,
            "status": self.status.value,
            "amount_msat": _msat(self.amount),
            "amount_received_msat": _msat(self.amount_received),
            "created_at": _iso(self.created_at),
            "paid_at": _iso(self.paid_at),
            "expires_at": _iso(self.expires_at),
        }


@dataclass(frozen=True)
class LightningPayment:
    """Outgoing payment attempt.

    ``amount`` is what reached the payee (sent minus fee) and ``amount_sent`` is
    the total that left the wallet.
    """

    id: str | None
    payment_hash: str | None
    status: PaymentStatus
    amount: LightMoney | None = None
    amount_sent: LightMoney | None = None
    created_at: datetime | None = None
    bolt11: str | None = None
    preimage: str | None = None

    @classmethod
    def from_totals(
        cls,
        *,
        total_amount: LightMoney | None,
        fee_amount: LightMoney | None,
        **fields: Any,
    ) -> "LightningPayment":
        """Build a payment, deriving the net amount from total and fee.

        The net amount is None unless both operands are known.
        """
        net = None
        if total_amount is not None and fee_amount is not None:
            net = total_amount - fee_amount
        return cls(amount=net, amount_sent=total_amount, **fields)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "payment_hash": self.payment_hash,
            "status": self.status.value,
            "amount_msat": _msat(self.amount),
            "amount_sent_msat": _msat(self.amount_sent),
            "created_at": _iso(self.created_at),
            "bolt11": self.bolt11,
            "preimage": self.preimage,
        }


@dataclass(frozen=True)
class LightningChannel:
    """One channel from a listing. No identity across listings."""

    is_public: bool
    is_active: bool
    remote_node: PubKey
    local_balance: LightMoney
    capacity: LightMoney
    channel_point: OutPoint

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_public": self.is_public,
            "is_active": self.is_active,
            "remote_node": self.remote_node.hex,
            "local_balance_msat": self.local_balance.msat,
            "capacity_msat": self.capacity.msat,
            "channel_point": str(self.channel_point),
        }


@dataclass(frozen=True)
class CreateInvoiceParams:
    """Invoice creation request."""

    amount: LightMoney
    description: str
    expiry: timedelta
    description_hash_only: bool = False
    private_route_hints: bool = False

    def __post_init__(self) -> None:
        if self.expiry <= timedelta(0):
            raise ValueError(f"Invoice expiry must be positive, got {self.expiry}")


@dataclass(frozen=True)
class PayInvoiceParams:
    """Optional limits for a pay attempt."""

    max_fee_percent: float | None = None
    max_fee_flat: LightMoney | None = None
    amount: LightMoney | None = None
    send_timeout: timedelta | None = None


@dataclass(frozen=True)
class PayDetails:
    """Settlement details reported for a successful pay attempt."""

    total_amount: LightMoney | None = None
    fee_amount: LightMoney | None = None
    preimage: str | None = None
    payment_hash: str | None = None
    status: PaymentStatus = PaymentStatus.UNKNOWN


@dataclass(frozen=True)
class PayResponse:
    """Outcome of :meth:`LightningClient.pay`."""

    result: PayResult
    details: PayDetails | None = None
    error_detail: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.result == PayResult.OK


@dataclass(frozen=True)
class OpenChannelRequest:
    """Channel funding request."""

    node_info: NodeInfo
    channel_amount_sat: int
    fee_rate_sat_per_vbyte: int | None = None

    def __post_init__(self) -> None:
        if self.channel_amount_sat <= 0:
            raise ValueError(f"Channel amount must be positive, got {self.channel_amount_sat}")
        if self.fee_rate_sat_per_vbyte is not None and self.fee_rate_sat_per_vbyte <= 0:
            raise ValueError(f"Fee rate must be positive, got {self.fee_rate_sat_per_vbyte}")


@dataclass(frozen=True)
class OpenChannelResponse:
    """Wraps the single result of an open-channel attempt."""

    result: OpenChannelResult
