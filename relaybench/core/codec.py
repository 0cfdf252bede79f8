"""Framing of CRDT updates for transport over a text-only relay.

Two layers:

- **Frame**: ``MessageCodec.encode(id, raw)`` produces a binary frame
  (magic ``b"RB"``, version, big-endian uint64 id, big-endian uint32
  length, raw bytes). ``decode`` reverses it exactly, including for empty
  updates.
- **Wire wrapper**: ``wrap`` puts a frame into a tagged JSON object with a
  declared encoding so receivers can tell runs apart; ``unwrap`` accepts
  the structured wrapper, a JSON string of it, or a bare base64 frame.

Example::

    codec = MessageCodec()
    frame = codec.encode(7, b"\\x01\\x02")
    text = wrap("run-1", 7, frame)
    msg = unwrap(text)
    assert codec.decode(msg.frame) == (7, b"\\x01\\x02")
"""

from __future__ import annotations

import base64
import binascii
import json
import struct
from dataclasses import dataclass
from typing import Any

from relaybench.errors import CodecError

MAGIC = b"RB"
VERSION = 1
ENCODING_B64 = "b64"

_HEADER = struct.Struct(">2sBQI")
_MAX_ID = 2**64 - 1


class MessageCodec:
    """Encodes ``(update_id, raw_update)`` pairs into binary frames."""

    header_size = _HEADER.size

    def encode(self, update_id: int, raw: bytes) -> bytes:
        if not 0 <= update_id <= _MAX_ID:
            raise CodecError(f"update id out of range: {update_id}")
        raw = bytes(raw)
        return _HEADER.pack(MAGIC, VERSION, update_id, len(raw)) + raw

    def decode(self, frame: bytes) -> tuple[int, bytes]:
        if len(frame) < _HEADER.size:
            raise CodecError(f"frame too short: {len(frame)} bytes")
        magic, version, update_id, length = _HEADER.unpack_from(frame)
        if magic != MAGIC:
            raise CodecError(f"bad magic {magic!r}")
        if version != VERSION:
            raise CodecError(f"unsupported frame version {version}")
        body = bytes(frame[_HEADER.size:])
        if len(body) != length:
            raise CodecError(f"length mismatch: header says {length}, got {len(body)}")
        return update_id, body


@dataclass(frozen=True)
class WireMessage:
    """A relay message body after unwrapping.

    ``run_id`` and ``update_id`` are None for untagged messages.
    """

    run_id: str | None
    update_id: int | None
    frame: bytes


def wrap(run_id: str, update_id: int, frame: bytes) -> str:
    """Wrap a frame into the tagged JSON message body sent over the relay."""
    return json.dumps(
        {
            "runId": run_id,
            "id": update_id,
            "enc": ENCODING_B64,
            ENCODING_B64: base64.b64encode(frame).decode("ascii"),
        },
        separators=(",", ":"),
    )


def _b64(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CodecError(f"invalid base64 payload: {e}") from e


def _from_wrapper(obj: dict[str, Any]) -> WireMessage:
    enc = obj.get("enc", ENCODING_B64)
    if enc != ENCODING_B64:
        raise CodecError(f"unsupported encoding {enc!r}")

    if isinstance(obj.get("b64"), str):
        frame = _b64(obj["b64"])
    elif isinstance(obj.get("data"), str):
        frame = _b64(obj["data"])
    else:
        raise CodecError("wrapper has neither 'b64' nor 'data'")

    run_id = obj.get("runId")
    if run_id is not None and not isinstance(run_id, str):
        raise CodecError(f"runId must be a string, got {type(run_id).__name__}")

    update_id = obj.get("id")
    if update_id is not None and (isinstance(update_id, bool) or not isinstance(update_id, int)):
        raise CodecError(f"id must be an integer, got {update_id!r}")

    return WireMessage(run_id=run_id, update_id=update_id, frame=frame)


def unwrap(message: Any) -> WireMessage:
    """Turn a relay ``message`` field into a WireMessage.

    Raises:
        CodecError: If the message matches none of the accepted forms.
    """
    if isinstance(message, dict):
        return _from_wrapper(message)

    if isinstance(message, str):
        text = message.strip()
        if text.startswith("{"):
            try:
                obj = json.loads(text)
            except json.JSONDecodeError as e:
                raise CodecError(f"malformed JSON wrapper: {e}") from e
            if not isinstance(obj, dict):
                raise CodecError("JSON wrapper is not an object")
            return _from_wrapper(obj)
        if not text:
            raise CodecError("empty message")
        return WireMessage(run_id=None, update_id=None, frame=_b64(text))

    raise CodecError(f"unsupported message type {type(message).__name__}")


def decode_message(codec: MessageCodec, message: Any) -> tuple[WireMessage, int, bytes]:
    """Unwrap and decode a message body, checking the wrapper id against the frame."""
    wire = unwrap(message)
    update_id, raw = codec.decode(wire.frame)
    if wire.update_id is not None and wire.update_id != update_id:
        raise CodecError(f"wrapper id {wire.update_id} does not match frame id {update_id}")
    return wire, update_id, raw
