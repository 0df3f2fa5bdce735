"""Hex, varint, base58 and base64 helpers shared across blobvault."""

import base64
import binascii
import hashlib
import struct
from typing import Any, Tuple

from ..exceptions import ValidationError

__all__ = [
    "hex_to_bytes",
    "encode_varint",
    "decode_varint",
    "double_sha256",
    "hash160",
    "encode_base58",
    "decode_base58",
    "encode_base58_check",
    "decode_base58_check",
    "utf8_to_base64",
    "base64_to_utf8",
    "bytes_to_base64",
    "bytes_to_base64url",
    "base64url_to_bytes",
    "base64_to_base64url",
    "base64url_to_base64",
    "normalize_base64",
    "decode_binary_value",
]

B58_DIGITS = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
B58_INDEX = {char: value for value, char in enumerate(B58_DIGITS)}

# (prefix byte, struct format, width) for the three wide varint forms
_VARINT_FORMS = ((0xfd, "<H", 2), (0xfe, "<I", 4), (0xff, "<Q", 8))


def hex_to_bytes(value: str) -> bytes:
    """
    Decode hex text, with or without a ``0x`` prefix.

    Raises:
        ValidationError: If the text is not hex
    """
    digits = value[2:] if value[:2] in ("0x", "0X") else value
    try:
        return bytes.fromhex(digits)
    except ValueError as e:
        raise ValidationError(f"Invalid hex string: {value}") from e


def encode_varint(n: int) -> bytes:
    """Bitcoin CompactSize encoding of ``n``."""
    if n < 0xfd:
        return bytes([n])
    for prefix, fmt, width in _VARINT_FORMS:
        if n < 1 << (8 * width):
            return bytes([prefix]) + struct.pack(fmt, n)
    raise ValueError(f"Varint out of range: {n}")


def decode_varint(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Read a CompactSize at ``offset``; returns ``(value, next_offset)``."""
    first = data[offset]
    if first < 0xfd:
        return first, offset + 1
    for prefix, fmt, width in _VARINT_FORMS:
        if first == prefix:
            return struct.unpack_from(fmt, data, offset + 1)[0], offset + 1 + width
    raise ValueError(f"Bad varint prefix: {first:#x}")


def double_sha256(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def hash160(data: bytes) -> bytes:
    """RIPEMD160 of SHA256, as used for key and script hashes."""
    return hashlib.new("ripemd160", hashlib.sha256(data).digest()).digest()


def encode_base58(data: bytes) -> str:
    value = int.from_bytes(data, "big")
    digits = []
    while value:
        value, digit = divmod(value, 58)
        digits.append(B58_DIGITS[digit])
    zeros = len(data) - len(data.lstrip(b"\x00"))
    return "1" * zeros + "".join(reversed(digits))


def decode_base58(text: str) -> bytes:
    """
    Raises:
        ValidationError: On a character outside the base58 alphabet
    """
    value = 0
    for char in text:
        if char not in B58_INDEX:
            raise ValidationError(f"Invalid Base58 character: {char}")
        value = value * 58 + B58_INDEX[char]
    zeros = len(text) - len(text.lstrip("1"))
    return bytes(zeros) + value.to_bytes((value.bit_length() + 7) // 8, "big")


def encode_base58_check(data: bytes) -> str:
    return encode_base58(data + double_sha256(data)[:4])


def decode_base58_check(text: str) -> bytes:
    """
    Raises:
        ValidationError: If the string is too short or the checksum is wrong
    """
    raw = decode_base58(text)
    if len(raw) < 4:
        raise ValidationError("Invalid Base58Check string: too short")
    if double_sha256(raw[:-4])[:4] != raw[-4:]:
        raise ValidationError("Invalid Base58Check checksum")
    return raw[:-4]


def _add_base64_padding(value: str) -> str:
    return value + "=" * (-len(value) % 4)


def utf8_to_base64(text: str) -> str:
    """Base64-encode the UTF-8 bytes of a string."""
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def base64_to_utf8(value: str) -> str:
    """
    Decode standard base64 text to a UTF-8 string.

    Raises:
        ValidationError: If the input is not valid base64 or not UTF-8
    """
    try:
        return base64.b64decode(value, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise ValidationError(f"Invalid base64 payload: {e}") from e


def bytes_to_base64(data: bytes) -> str:
    """Encode bytes as padded standard base64."""
    return base64.b64encode(data).decode("ascii")


def bytes_to_base64url(data: bytes) -> str:
    """Encode bytes as unpadded base64url."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def base64url_to_bytes(value: str) -> bytes:
    """
    Decode base64url text, padded or not.

    Raises:
        ValidationError: If the input is not valid base64url
    """
    try:
        return base64.urlsafe_b64decode(_add_base64_padding(value.strip()))
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"Invalid base64url value: {e}") from e


def base64_to_base64url(value: str) -> str:
    """Convert standard base64 text to unpadded base64url."""
    return value.replace("+", "-").replace("/", "_").rstrip("=")


def base64url_to_base64(value: str) -> str:
    """Convert base64url text to padded standard base64."""
    return _add_base64_padding(value.replace("-", "+").replace("_", "/"))


def normalize_base64(value: str) -> str:
    """
    Canonicalize base64 or base64url text to padded standard base64.

    The two alphabets only differ in ``+/`` versus ``-_`` and in
    padding, so a value in either form maps to the same output, and
    applying this twice is the same as applying it once.

    Raises:
        ValidationError: If the value is not decodable in either alphabet
    """
    candidate = value.strip()
    if not candidate:
        raise ValidationError("Empty base64 value")

    canonical = base64url_to_base64(candidate.rstrip("="))
    try:
        decoded = base64.b64decode(canonical, validate=True)
    except binascii.Error as e:
        raise ValidationError(f"Invalid base64 value: {value}") from e

    return base64.b64encode(decoded).decode("ascii")


def decode_binary_value(value: Any) -> bytes:
    """
    Coerce an extension output value to bytes.

    Accepts raw bytes-like objects, lists of ints, or base64/base64url text.

    Raises:
        ValidationError: If the value cannot be interpreted as binary
    """
    if value is None:
        raise ValidationError("Missing binary value")

    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)

    if isinstance(value, str):
        return base64.b64decode(normalize_base64(value))

    if isinstance(value, (list, tuple)):
        try:
            return bytes(value)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid byte sequence: {e}") from e

    raise ValidationError(f"Unsupported binary value type: {type(value).__name__}")
