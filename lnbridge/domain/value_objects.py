"""Domain value objects for the Lightning client model.

Value Objects:
- Immutable (frozen dataclasses)
- No identity (equality based on attributes)
- Parsed eagerly from backend text; ``parse`` raises, ``try_parse`` does not
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from ..exceptions import (
    AddressParseError,
    NodeInfoParseError,
    OutPointParseError,
    PubKeyParseError,
)
from .enums import Network

MSAT_PER_SAT = 1000
DEFAULT_PEER_PORT = 9735

_HEX64 = re.compile(r"^[0-9a-fA-F]{64}$")
_IPV6_HOST_PORT = re.compile(r"^\[(?P<host>[:0-9a-fA-F.]+)\](?::(?P<port>\d+))?$")
_DECIMAL_INDEX = re.compile(r"^[0-9]+$")
_HOST_PORT = re.compile(r"^(?P<host>[^:\[\]]+)(?::(?P<port>\d+))?$")
_BECH32_CHARSET = set("qpzry9x8gf2tvdw0s3jn54khce6mua7l")
_BASE58_CHARSET = set("123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz")


@dataclass(frozen=True, order=True)
class LightMoney:
    """Lightning amount in millisatoshis.

    Arithmetic stays in integer millisatoshis, so ``total - fee`` is exact.
    """

    msat: int

    def __post_init__(self) -> None:
        if not isinstance(self.msat, int) or isinstance(self.msat, bool):
            raise TypeError(f"LightMoney expects an int of millisatoshis, got {self.msat!r}")

    @classmethod
    def from_satoshis(cls, sats: int | Decimal) -> "LightMoney":
        """Build an amount from satoshis (fractional satoshis allowed as Decimal)."""
        return cls(int(Decimal(sats) * MSAT_PER_SAT))

    @property
    def satoshis(self) -> Decimal:
        """Get amount in satoshis (may be fractional)."""
        return Decimal(self.msat) / MSAT_PER_SAT

    def __add__(self, other: "LightMoney") -> "LightMoney":
        if not isinstance(other, LightMoney):
            return NotImplemented
        return LightMoney(self.msat + other.msat)

    def __sub__(self, other: "LightMoney") -> "LightMoney":
        if not isinstance(other, LightMoney):
            return NotImplemented
        return LightMoney(self.msat - other.msat)

    def __str__(self) -> str:
        return f"{self.msat} msat"


@dataclass(frozen=True)
class PubKey:
    """Compressed secp256k1 public key (33 bytes, prefix 02 or 03)."""

    value: bytes

    def __post_init__(self) -> None:
        if len(self.value) != 33 or self.value[0] not in (2, 3):
            raise PubKeyParseError(
                "Public key must be 33 bytes starting with 02 or 03",
                field="pubkey",
                value=self.value.hex(),
            )

    @classmethod
    def parse(cls, text: str) -> "PubKey":
        """Parse a hex encoded compressed public key."""
        try:
            raw = bytes.fromhex(text)
        except (ValueError, TypeError) as e:
            raise PubKeyParseError(
                "Public key is not valid hex", field="pubkey", value=text, original_error=e
            ) from e
        return cls(raw)

    @property
    def hex(self) -> str:
        return self.value.hex()

    def __str__(self) -> str:
        return self.hex


@dataclass(frozen=True)
class NodeInfo:
    """Peer connection URI: ``<pubkey>@<host>:<port>``."""

    pubkey: PubKey
    host: str
    port: int = DEFAULT_PEER_PORT

    def __post_init__(self) -> None:
        if not self.host:
            raise NodeInfoParseError("Host must not be empty", field="host")
        if not 0 < self.port < 65536:
            raise NodeInfoParseError("Port out of range", field="port", value=self.port)

    @classmethod
    def parse(cls, uri: str) -> "NodeInfo":
        """Parse a ``pubkey@host[:port]`` URI.

        Raises:
            NodeInfoParseError: If any part of the URI is malformed
        """
        pubkey_hex, sep, rest = uri.strip().partition("@")
        if not sep or not rest:
            raise NodeInfoParseError(
                "Node URI must be in <pubkey>@<host>:<port> format", field="uri", value=uri
            )
        try:
            pubkey = PubKey.parse(pubkey_hex)
        except PubKeyParseError as e:
            raise NodeInfoParseError(
                "Node URI has an invalid public key", field="uri", value=uri, original_error=e
            ) from e

        match = _IPV6_HOST_PORT.match(rest) or _HOST_PORT.match(rest)
        if not match:
            raise NodeInfoParseError("Node URI has an invalid host", field="uri", value=uri)
        port = int(match.group("port")) if match.group("port") else DEFAULT_PEER_PORT
        return cls(pubkey=pubkey, host=match.group("host"), port=port)

    @classmethod
    def try_parse(cls, uri: str) -> "NodeInfo | None":
        """Parse a URI, returning None instead of raising when it is malformed."""
        try:
            return cls.parse(uri)
        except NodeInfoParseError:
            return None

    @property
    def host_port(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}"

    def __str__(self) -> str:
        return f"{self.pubkey.hex}@{self.host_port}"


@dataclass(frozen=True)
class OutPoint:
    """Reference to the on-chain output funding a channel."""

    txid: str
    index: int

    def __post_init__(self) -> None:
        if not _HEX64.match(self.txid):
            raise OutPointParseError("Transaction id must be 64 hex chars", field="txid", value=self.txid)
        if self.index < 0:
            raise OutPointParseError("Output index cannot be negative", field="index", value=self.index)

    @classmethod
    def parse(cls, text: str) -> "OutPoint":
        """Parse ``<txid>:<index>`` (``<txid>-<index>`` is accepted too)."""
        for separator in (":", "-"):
            txid, sep, index = text.strip().rpartition(separator)
            if sep:
                break
        else:
            raise OutPointParseError("Channel point must be <txid>:<index>", field="channel_point", value=text)

        if not _DECIMAL_INDEX.match(index):
            raise OutPointParseError("Output index must be a decimal number", field="channel_point", value=text)
        return cls(txid=txid.lower(), index=int(index))

    def __str__(self) -> str:
        return f"{self.txid}:{self.index}"


@dataclass(frozen=True)
class BitcoinAddress:
    """On-chain address checked against the network it was issued for.

    Only the encoding envelope is checked (prefix and alphabet), not the checksum.
    """

    value: str
    network: Network

    @classmethod
    def parse(cls, text: str, network: Network) -> "BitcoinAddress":
        address = text.strip()
        lowered = address.lower()
        hrp = network.bech32_hrp

        if lowered.startswith(f"{hrp}1"):
            data = lowered[len(hrp) + 1 :]
            mixed_case = address != lowered and address != address.upper()
            if mixed_case or len(data) < 6 or not set(data) <= _BECH32_CHARSET:
                raise AddressParseError("Malformed bech32 address", field="address", value=address)
            return cls(value=address, network=network)

        if (
            address[:1] in network.base58_prefixes
            and 26 <= len(address) <= 35
            and set(address) <= _BASE58_CHARSET
        ):
            return cls(value=address, network=network)

        raise AddressParseError(
            f"Address is not valid on {network}", field="address", value=address
        )

    def __str__(self) -> str:
        return self.value

    def to_dict(self) -> dict[str, Any]:
        return {"address": self.value, "network": self.network.value}
