"""
Payload codecs.

A codec maps payloads to the text body the remote service transports and
back again. Codecs must satisfy decode(encode(x)) == x for every payload the
wire format can represent.
"""

import base64
import binascii
import json
import pickle
from typing import Any, Protocol

from reliable_queue.errors import CodecError


class Codec(Protocol):
    """Serializes payloads to and from message body text."""

    name: str

    def encode(self, payload: Any) -> str: ...

    def decode(self, text: str) -> Any: ...


class JsonCodec:
    """
    JSON codec. The default, readable by consumers in any language.

    Payloads that JSON would silently change (non-string keys, tuples, sets,
    NaN and infinities) are rejected instead of coerced.
    """

    name = "json"

    def encode(self, payload: Any) -> str:
        _check_json_payload(payload)
        try:
            return json.dumps(payload, separators=(",", ":"), allow_nan=False)
        except (TypeError, ValueError) as e:
            raise CodecError(f"Payload is not JSON serializable: {e}") from e

    def decode(self, text: str) -> Any:
        try:
            return json.loads(text)
        except (TypeError, ValueError) as e:
            raise CodecError(f"Message body is not valid JSON: {e}") from e


def _check_json_payload(payload: Any, path: str = "$") -> None:
    """Raise CodecError for values json.dumps would alter rather than reject."""
    if isinstance(payload, dict):
        for key, value in payload.items():
            if not isinstance(key, str):
                raise CodecError(
                    f"Payload key {key!r} at {path} is not a string; JSON would "
                    f"turn it into one"
                )
            _check_json_payload(value, f"{path}.{key}")
    elif isinstance(payload, list):
        for index, value in enumerate(payload):
            _check_json_payload(value, f"{path}[{index}]")
    elif isinstance(payload, (tuple, set, frozenset)):
        raise CodecError(
            f"Payload value at {path} is a {type(payload).__name__}; JSON would "
            f"decode it as a list"
        )


class PickleCodec:
    """
    Native Python serialization, base64-armoured so the body stays text.

    Round-trips arbitrary picklable objects (including bytes and tuples) but
    must only be used when every producer on the queue is trusted.
    """

    name = "pickle"

    def encode(self, payload: Any) -> str:
        try:
            raw = pickle.dumps(payload, protocol=pickle.HIGHEST_PROTOCOL)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise CodecError(f"Payload is not picklable: {e}") from e
        return base64.b64encode(raw).decode("ascii")

    def decode(self, text: str) -> Any:
        try:
            raw = base64.b64decode(text.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError) as e:
            raise CodecError(f"Message body is not base64 text: {e}") from e

        try:
            return pickle.loads(raw)
        except Exception as e:
            # Unpickling can fail with almost any exception type
            raise CodecError(f"Message body is not a pickled payload: {e}") from e


_codecs: dict[str, type] = {
    JsonCodec.name: JsonCodec,
    PickleCodec.name: PickleCodec,
}


def get_codec(name: str) -> Codec:
    """
    Get a codec instance by name.

    Args:
        name: Codec name ("json" or "pickle").

    Returns:
        A new codec instance.

    Raises:
        ValueError: If no codec is registered under that name.
    """
    try:
        return _codecs[name]()
    except KeyError:
        raise ValueError(
            f"Unknown codec {name!r}; expected one of {sorted(_codecs)}"
        ) from None
