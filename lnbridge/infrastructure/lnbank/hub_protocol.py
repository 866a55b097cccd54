"""SignalR JSON hub protocol, the subset the LNbank transaction hub speaks.

Every message is a JSON object terminated by the record separator ``\\x1e``;
one websocket message may carry several of them.
"""

import json
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from ...exceptions import ParseError

RECORD_SEPARATOR = "\x1e"
PROTOCOL_NAME = "json"
PROTOCOL_VERSION = 1


class MessageType(IntEnum):
    INVOCATION = 1
    STREAM_ITEM = 2
    COMPLETION = 3
    STREAM_INVOCATION = 4
    CANCEL_INVOCATION = 5
    PING = 6
    CLOSE = 7


@dataclass(frozen=True)
class HubMessage:
    """One decoded hub message."""

    type: int
    target: str | None = None
    arguments: list[Any] = field(default_factory=list)
    error: str | None = None

    @property
    def invoice_id(self) -> str | None:
        """Invoice referenced by an invocation, if any."""
        if self.type != MessageType.INVOCATION or not self.arguments:
            return None
        payload = self.arguments[0]
        if not isinstance(payload, dict):
            return None
        invoice_id = payload.get("invoiceId") or payload.get("InvoiceId")
        return str(invoice_id) if invoice_id else None


def encode(message: dict[str, Any]) -> str:
    return json.dumps(message, separators=(",", ":")) + RECORD_SEPARATOR


def handshake_request() -> str:
    return encode({"protocol": PROTOCOL_NAME, "version": PROTOCOL_VERSION})


def ping_message() -> str:
    return encode({"type": MessageType.PING.value})


def close_message() -> str:
    return encode({"type": MessageType.CLOSE.value})


def split_records(data: str | bytes) -> list[dict[str, Any]]:
    """Split one websocket message into its JSON records.

    Raises:
        ParseError: If a record is not a JSON object
    """
    text = data.decode("utf-8") if isinstance(data, bytes) else data
    records = []
    for chunk in text.split(RECORD_SEPARATOR):
        if not chunk.strip():
            continue
        try:
            record = json.loads(chunk)
        except json.JSONDecodeError as e:
            raise ParseError("Malformed hub frame", value=chunk, original_error=e) from e
        if not isinstance(record, dict):
            raise ParseError("Hub frame is not a JSON object", value=chunk)
        records.append(record)
    return records


def check_handshake_response(data: str | bytes) -> list[HubMessage]:
    """Validate the handshake answer, returning any messages sent along with it.

    Raises:
        ParseError: If the server rejected the handshake or answered garbage
    """
    records = split_records(data)
    if not records:
        raise ParseError("Empty handshake response")
    handshake, rest = records[0], records[1:]
    if "type" in handshake:
        raise ParseError("Expected handshake response, got a hub message", value=handshake)
    if handshake.get("error"):
        raise ParseError(f"Hub rejected handshake: {handshake['error']}")
    return [to_message(record) for record in rest]


def to_message(record: dict[str, Any]) -> HubMessage:
    try:
        message_type = int(record["type"])
    except (KeyError, TypeError, ValueError) as e:
        raise ParseError("Hub frame has no valid type", value=record, original_error=e) from e
    arguments = record.get("arguments") or []
    return HubMessage(
        type=message_type,
        target=record.get("target"),
        arguments=list(arguments) if isinstance(arguments, list) else [arguments],
        error=record.get("error"),
    )


def decode(data: str | bytes) -> list[HubMessage]:
    """Decode one websocket message into hub messages."""
    return [to_message(record) for record in split_records(data)]
