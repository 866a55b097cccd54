"""Domain enums for the Lightning client model."""

from enum import Enum


class InvoiceStatus(str, Enum):
    """Lightning invoice status.

    Lifecycle:
        UNPAID → PAID (payment received)
        UNPAID → EXPIRED (time expired)
        UNPAID → CANCELLED (cancelled through the client)
    """

    UNPAID = "unpaid"
    PAID = "paid"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value


class PaymentStatus(str, Enum):
    """Outgoing payment status."""

    UNKNOWN = "unknown"
    PENDING = "pending"
    COMPLETE = "complete"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


class PayResult(str, Enum):
    """Outcome of a pay attempt."""

    OK = "ok"
    COULD_NOT_FIND_ROUTE = "could_not_find_route"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


class OpenChannelResult(str, Enum):
    """Outcome of an open-channel attempt. Exactly one per attempt."""

    OK = "ok"
    ALREADY_EXISTS = "already_exists"
    CANNOT_AFFORD_FUNDING = "cannot_afford_funding"
    NEED_MORE_CONF = "need_more_conf"
    PEER_NOT_CONNECTED = "peer_not_connected"

    def __str__(self) -> str:
        return self.value


class ConnectionResult(str, Enum):
    """Outcome of a connect-to-peer attempt."""

    OK = "ok"
    COULD_NOT_CONNECT = "could_not_connect"

    def __str__(self) -> str:
        return self.value


class ListenerState(str, Enum):
    """Invoice listener lifecycle.

    Lifecycle:
        CREATED → RUNNING (push channel established)
        RUNNING → CLOSED (close(), remote close, connection loss or cancellation)

    CLOSED is terminal.
    """

    CREATED = "created"
    RUNNING = "running"
    CLOSED = "closed"

    def __str__(self) -> str:
        return self.value


class Network(str, Enum):
    """Bitcoin network a node operates on."""

    MAINNET = "mainnet"
    TESTNET = "testnet"
    SIGNET = "signet"
    REGTEST = "regtest"

    def __str__(self) -> str:
        return self.value

    @property
    def bech32_hrp(self) -> str:
        """Human-readable part of segwit addresses on this network."""
        return {
            Network.MAINNET: "bc",
            Network.TESTNET: "tb",
            Network.SIGNET: "tb",
            Network.REGTEST: "bcrt",
        }[self]

    @property
    def base58_prefixes(self) -> tuple[str, ...]:
        """Leading characters of legacy P2PKH/P2SH addresses on this network."""
        if self is Network.MAINNET:
            return ("1", "3")
        return ("m", "n", "2")
