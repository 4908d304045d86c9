"""
Decoder for DynamoDB typed-attribute documents.

Every value in a stream image is wrapped in a one-key mapping naming its type,
e.g. ``{"S": "hello"}`` or ``{"M": {"a": {"N": "1"}}}``. The decoder unwraps
them into plain Python values.
"""

from typing import Any, Dict, Mapping


def _decode_number(raw: Any) -> Any:
    """Decode N values; malformed text passes through unchanged."""
    if not isinstance(raw, str):
        return raw
    text = raw.strip()
    try:
        if any(marker in text for marker in (".", "e", "E")):
            return float(text)
        return int(text)
    except ValueError:
        return raw


def _decode_list(raw: Any) -> Any:
    if not isinstance(raw, list):
        return raw
    return [decode_value(item) for item in raw]


def _decode_string_set(raw: Any) -> Any:
    if not isinstance(raw, list):
        return raw
    return [str(item) for item in raw]


def _decode_number_set(raw: Any) -> Any:
    if not isinstance(raw, list):
        return raw
    return [_decode_number(item) for item in raw]


_DECODERS = {
    "S": lambda raw: raw if isinstance(raw, str) else str(raw),
    "N": _decode_number,
    "BOOL": bool,
    "NULL": lambda raw: None,
    "M": lambda raw: decode_image(raw) if isinstance(raw, Mapping) else raw,
    "L": _decode_list,
    "SS": _decode_string_set,
    "NS": _decode_number_set,
}


def decode_value(typed_value: Any) -> Any:
    """
    Decode a single typed value.

    Args:
        typed_value: A one-key mapping such as ``{"S": "x"}``

    Returns:
        The plain value. Unknown type tags yield the wrapped value unchanged;
        anything that is not a one-key mapping is returned as-is.
    """
    if not isinstance(typed_value, Mapping) or len(typed_value) != 1:
        return typed_value

    type_tag, raw = next(iter(typed_value.items()))
    decoder = _DECODERS.get(type_tag)
    if decoder is None:
        return raw
    return decoder(raw)


def decode_image(image: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Decode a typed-attribute mapping into a plain nested dict.

    The input is never mutated, so decoding the same image twice yields equal output.
    """
    if not image:
        return {}
    return {name: decode_value(typed_value) for name, typed_value in image.items()}
