"""LNbank wire shapes.

Pydantic models for the JSON bodies exchanged with the LNbank API. Amounts are
millisatoshis (the API sends them as strings or integers), timestamps are Unix
seconds or ISO 8601. Unknown fields are ignored so newer servers keep working.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for LNbank payloads: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize for a request body."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ============================================================================
# RESPONSES
# ============================================================================


class NodeInfoData(WireModel):
    block_height: int
    node_uris: list[str] = Field(default_factory=list, alias="nodeURIs")


class InvoiceData(WireModel):
    id: str
    status: str
    bolt11: str = Field(alias="BOLT11")
    amount: int | None = None
    amount_received: int | None = None
    created_at: datetime | None = None
    paid_at: datetime | None = None
    expires_at: datetime | None = None


class PaymentData(WireModel):
    id: str | None = None
    payment_hash: str | None = None
    status: str | None = None
    total_amount: int | None = None
    fee_amount: int | None = None
    created_at: datetime | None = None
    bolt11: str | None = Field(default=None, alias="BOLT11")
    preimage: str | None = None


class ChannelData(WireModel):
    is_public: bool
    is_active: bool
    remote_node: str
    local_balance: int
    capacity: int
    channel_point: str


class PayDetailsData(WireModel):
    total_amount: int | None = None
    fee_amount: int | None = None
    preimage: str | None = None
    payment_hash: str | None = None
    status: str | None = None


class PayResponseData(WireModel):
    result: str
    error_detail: str | None = None
    details: PayDetailsData | None = None


class DepositAddressData(WireModel):
    address: str


class ApiErrorData(WireModel):
    """BTCPay error body."""

    code: str
    message: str = ""


# ============================================================================
# REQUESTS
# ============================================================================


class CreateInvoiceRequestData(WireModel):
    amount: int
    description: str
    expiry: int
    description_hash_only: bool = False
    private_route_hints: bool = False


class PayRequestData(WireModel):
    payment_request: str
    max_fee_percent: float | None = None
    max_fee_flat: int | None = None
    amount: int | None = None
    send_timeout: int | None = None


class OpenChannelRequestData(WireModel):
    node_uri: str = Field(alias="nodeURI")
    channel_amount: int
    fee_rate: int | None = None


class ConnectRequestData(WireModel):
    node_uri: str = Field(alias="nodeURI")
