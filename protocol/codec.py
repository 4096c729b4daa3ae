"""
protocol/codec.py
=================
JSON wire encoding for the real-time simulation protocol.

:func:`decode_inbound` turns one text frame into exactly one of the five
inbound message models, or raises :class:`~protocol.errors.ProtocolError`.
:func:`encode_outbound` serialises an outbound dataclass to a text frame.
"""

from __future__ import annotations

import json
from typing import Union

import pydantic
from pydantic import TypeAdapter

from protocol.errors import ProtocolError
from protocol.message import INBOUND_TYPES, InboundMessage, OutboundMessage

_INBOUND = TypeAdapter(InboundMessage)


def _reject_constant(name: str) -> None:
    raise ProtocolError(f"invalid JSON: {name} is not a number")


def decode_inbound(raw: Union[str, bytes]) -> InboundMessage:
    """
    Decode a client frame.

    Args:
        raw (str | bytes): JSON text received from the client.

    Returns:
        InboundMessage: The decoded message model.

    Raises:
        ProtocolError: On invalid JSON (including ``NaN`` / ``Infinity``
            literals), a non-object payload, an unknown ``type`` or fields
            that do not match the message kind.
    """
    try:
        payload = json.loads(raw, parse_constant=_reject_constant)
    except (TypeError, ValueError) as exc:
        raise ProtocolError(f"invalid JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise ProtocolError("message must be a JSON object")

    kind = payload.get("type")
    if kind not in INBOUND_TYPES:
        raise ProtocolError(f"unknown message type: {kind!r}")

    try:
        return _INBOUND.validate_python(payload)
    except pydantic.ValidationError as exc:
        raise ProtocolError(
            f"malformed {kind} message ({exc.error_count()} error(s))"
        ) from exc


def encode_outbound(message: OutboundMessage) -> str:
    """Serialise an outbound message to a JSON text frame.

    Raises:
        ValueError: If the message carries a non-finite number, which
            strict JSON parsers on the client side cannot read.
    """
    return json.dumps(message.as_dict(), allow_nan=False)
