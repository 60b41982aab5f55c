"""
Canonical JSON serialization per RFC 8785 (JCS).

This is the hashing input for every digest in a bundle, so the output
is a wire contract: other implementations MUST produce the same bytes.

Rules:
- Object keys sorted by UTF-16 code unit (code-point order for BMP keys)
- No whitespace between tokens
- Numbers: ECMAScript Number::toString (shortest round-trip digits)
- Strings: minimal escaping (control chars, backslash, double-quote,
  unpaired surrogates as lowercase \\uXXXX)
- null, true, false as literals
- Members whose value is UNDEFINED are omitted
"""

import json
import math
import re
from typing import Any, Mapping

# Largest integer a double holds exactly (Number.MAX_SAFE_INTEGER).
MAX_SAFE_INTEGER = 2**53 - 1

# A high+low pair, or any surrogate left over once pairs are consumed.
_SURROGATES = re.compile("[\ud800-\udbff][\udc00-\udfff]|[\ud800-\udfff]")


class _Undefined:
    """Marker for an absent value, the analogue of JavaScript ``undefined``."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False


UNDEFINED = _Undefined()


def canonical_json(value: Any) -> str:
    """
    Serialize a value to canonical JSON per RFC 8785.

    Args:
        value: None, bool, int, float, str, list/tuple or str-keyed dict,
            nested arbitrarily

    Returns:
        Canonical JSON string with sorted keys and no whitespace

    Raises:
        TypeError: If the value contains anything outside that union
    """
    return _serialize_value(value)


def canonical_bytes(value: Any) -> bytes:
    """UTF-8 encoding of canonical_json(value); the exact bytes that get hashed."""
    return canonical_json(value).encode("utf-8")


def _fold_surrogates(text: str, unpaired) -> str:
    """Join surrogate pairs into one code point and pass lone ones to ``unpaired``."""

    def _replace(match: re.Match) -> str:
        found = match.group()
        if len(found) == 2:
            high, low = ord(found[0]), ord(found[1])
            return chr(0x10000 + ((high - 0xD800) << 10) + (low - 0xDC00))
        return unpaired(found)

    return _SURROGATES.sub(_replace, text)


def utf8_bytes(text: str) -> bytes:
    """
    UTF-8 encode a string that may hold surrogates (json.loads of "\\ud800").

    Lone surrogates become U+FFFD, as in Node's Buffer and TextEncoder.
    """
    try:
        return text.encode("utf-8")
    except UnicodeEncodeError:
        return _fold_surrogates(text, lambda _: "\ufffd").encode("utf-8")


def signing_payload(bundle: Mapping[str, Any]) -> bytes:
    """Canonical bytes of a bundle with its ``signatures`` member excluded."""
    unsigned = {k: v for k, v in bundle.items() if k != "signatures"}
    return canonical_bytes(unsigned)


def _serialize_value(value: Any) -> str:
    if value is None or value is UNDEFINED:
        return "null"

    # bool is a subclass of int
    if isinstance(value, bool):
        return "true" if value else "false"

    if isinstance(value, (int, float)):
        return _serialize_number(value)

    if isinstance(value, str):
        return _serialize_string(value)

    if isinstance(value, (list, tuple)):
        return _serialize_array(value)

    if isinstance(value, Mapping):
        return _serialize_object(value)

    raise TypeError(f"Cannot canonicalize value of type {type(value).__name__}")


def _serialize_number(num: int | float) -> str:
    """Serialize per ECMAScript Number::toString, which RFC 8785 adopts."""
    if isinstance(num, int):
        if abs(num) < MAX_SAFE_INTEGER:
            return str(num)
        try:
            num = float(num)
        except OverflowError:
            # Beyond double range: a JavaScript host would hold Infinity.
            return "null"

    if math.isnan(num) or math.isinf(num):
        return "null"

    if num.is_integer() and abs(num) < MAX_SAFE_INTEGER:
        # Also maps -0.0 to "0"
        return str(int(num))

    return _es_number_to_string(num)


def _es_number_to_string(num: float) -> str:
    """
    Format a finite, non-zero double the way ECMAScript does.

    repr() already yields the shortest round-trip digits; only the
    placement of the decimal point and exponent differs from ES.
    """
    if num == 0:
        return "0"

    sign = "-" if num < 0 else ""
    mantissa, _, exp = repr(abs(num)).partition("e")
    int_part, _, frac_part = mantissa.partition(".")
    digits = int_part + frac_part

    # value = 0.<digits> * 10**point
    point = len(int_part) + (int(exp) if exp else 0)
    significant = digits.lstrip("0")
    point -= len(digits) - len(significant)
    digits = significant.rstrip("0")
    k = len(digits)

    if k <= point <= 21:
        text = digits + "0" * (point - k)
    elif 0 < point <= 21:
        text = digits[:point] + "." + digits[point:]
    elif -6 < point <= 0:
        text = "0." + "0" * (-point) + digits
    else:
        exponent = point - 1
        exp_sign = "+" if exponent >= 0 else "-"
        head = digits[0] if k == 1 else digits[0] + "." + digits[1:]
        text = f"{head}e{exp_sign}{abs(exponent)}"

    return sign + text


def _serialize_string(text: str) -> str:
    """
    JSON string escaping. json.dumps with ensure_ascii=False escapes only
    quote, backslash and C0 controls, matching JSON.stringify. Unpaired
    surrogates get the lowercase \\udxxx escape JSON.stringify has used
    since ES2019.
    """
    escaped = json.dumps(text, ensure_ascii=False)
    if not _SURROGATES.search(escaped):
        return escaped
    return _fold_surrogates(escaped, lambda lone: f"\\u{ord(lone):04x}")


def _serialize_array(arr: list | tuple) -> str:
    return "[" + ",".join(_serialize_value(item) for item in arr) + "]"


def _utf16_sort_key(key: str) -> bytes:
    return key.encode("utf-16-be", "surrogatepass")


def _serialize_object(obj: Mapping[str, Any]) -> str:
    for key in obj:
        if not isinstance(key, str):
            raise TypeError(f"Object keys must be strings, got {type(key).__name__}")

    pairs = []
    for key in sorted(obj, key=_utf16_sort_key):
        val = obj[key]
        if val is UNDEFINED:
            continue
        pairs.append(_serialize_string(key) + ":" + _serialize_value(val))

    return "{" + ",".join(pairs) + "}"
