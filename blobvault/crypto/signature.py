"""Bitcoin message signatures and DER transaction signatures."""

import base64
import binascii
from typing import Optional, Tuple, Union

from ..crypto.keys import PrivateKey, PublicKey
from ..exceptions import CryptoError
from ..utils.encoding import double_sha256, encode_varint

__all__ = [
    "message_digest",
    "sign_message",
    "verify_message",
    "sign_transaction",
    "parse_der_signature",
]

MESSAGE_MAGIC = b"\x18Bitcoin Signed Message:\n"

# Compact signature header: 27 + recid, plus 4 when the key is compressed
HEADER_BASE = 27
HEADER_COMPRESSED = 4


def message_digest(message: Union[str, bytes]) -> bytes:
    """Digest signed by ``signmessage``: sha256d(magic || varint(len) || message)."""
    if isinstance(message, str):
        message = message.encode("utf-8")
    return double_sha256(MESSAGE_MAGIC + encode_varint(len(message)) + message)


def sign_message(private_key: PrivateKey, message: Union[str, bytes]) -> str:
    """
    Sign ``message`` the way Bitcoin Core's ``signmessage`` does.

    Returns:
        Base64 of the 65-byte compact signature; the header always
        declares a compressed key.
    """
    compact = private_key.sign_recoverable(message_digest(message))
    r_s, recid = compact[:64], compact[64]
    header = HEADER_BASE + HEADER_COMPRESSED + recid
    return base64.b64encode(bytes([header]) + r_s).decode("ascii")


def verify_message(public_key: PublicKey, signature: str, message: Union[str, bytes]) -> bool:
    """True when ``signature`` recovers to ``public_key`` over ``message``."""
    try:
        raw = base64.b64decode(signature, validate=True)
    except binascii.Error:
        return False

    if len(raw) != 65 or not HEADER_BASE <= raw[0] < HEADER_BASE + 8:
        return False

    flags = raw[0] - HEADER_BASE
    compressed = bool(flags & HEADER_COMPRESSED)
    recid = flags & 0x03

    try:
        signer = PublicKey.recover(raw[1:] + bytes([recid]), message_digest(message), compressed=compressed)
    except CryptoError:
        return False
    return signer == PublicKey(public_key.point, compressed=compressed)


def sign_transaction(private_key: PrivateKey, sighash: bytes, sighash_type: int = 0x01) -> bytes:
    """DER signature over ``sighash`` followed by the sighash type byte."""
    if len(sighash) != 32:
        raise ValueError("Sighash must be 32 bytes")
    return private_key.sign(sighash) + bytes([sighash_type])


def _read_der_integer(data: bytes, offset: int) -> Tuple[int, int]:
    if data[offset] != 0x02:
        raise ValueError(f"expected integer tag at {offset}")
    size = data[offset + 1]
    start = offset + 2
    if start + size > len(data):
        raise ValueError("integer runs past the end")
    return int.from_bytes(data[start:start + size], "big"), start + size


def parse_der_signature(signature: bytes) -> Tuple[int, int, Optional[int]]:
    """
    Split a DER signature into ``(r, s, sighash_type)``.

    The trailing sighash byte is optional; ``sighash_type`` is None when
    the input is bare DER.

    Raises:
        CryptoError: If the encoding is malformed
    """
    try:
        if signature[0] != 0x30:
            raise ValueError("missing sequence tag")

        extra = len(signature) - (signature[1] + 2)
        if extra not in (0, 1):
            raise ValueError("incorrect length")
        sighash_type = signature[-1] if extra else None
        der = signature[:len(signature) - extra]

        r, offset = _read_der_integer(der, 2)
        s, _ = _read_der_integer(der, offset)
        return r, s, sighash_type

    except (IndexError, ValueError) as e:
        raise CryptoError(f"Invalid DER signature: {e}") from e
