"""Input checks shared by the key, path, Safe and ceremony code."""

import re
from typing import Optional, Union

from ..constants import HARDENED_OFFSET
from ..exceptions import InvalidPathError, ValidationError
from ..utils.encoding import hex_to_bytes

__all__ = [
    "CURVE_ORDER",
    "is_valid_private_key",
    "validate_private_key",
    "is_valid_public_key",
    "validate_public_key",
    "validate_path_index",
    "is_valid_eth_address",
    "validate_eth_address",
    "validate_challenge",
]

CURVE_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

ETH_ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")
BASE64URL_PATTERN = re.compile(r"^[A-Za-z0-9_\-+/]+={0,2}$")

# SEC1 encoded length -> allowed prefix bytes
_PUBLIC_KEY_PREFIXES = {33: (0x02, 0x03), 65: (0x04,)}


def _key_bytes(key: Union[str, bytes]) -> bytes:
    return hex_to_bytes(key) if isinstance(key, str) else bytes(key)


def validate_private_key(key: Union[str, bytes]) -> bytes:
    """
    Return the 32-byte scalar if it lies in ``[1, n)``.

    Raises:
        ValidationError: On bad hex, a wrong length or an out of range scalar
    """
    raw = _key_bytes(key)
    if len(raw) != 32:
        raise ValidationError(f"Private key must be 32 bytes, got {len(raw)}")
    if not 0 < int.from_bytes(raw, "big") < CURVE_ORDER:
        raise ValidationError("Private key is outside the curve order")
    return raw


def validate_public_key(key: Union[str, bytes]) -> bytes:
    """
    Check the SEC1 shape of a public key: 33 bytes with an 02/03 prefix
    or 65 bytes with 04. Whether the point is on the curve is left to
    coincurve.

    Raises:
        ValidationError: If the shape is wrong
    """
    raw = _key_bytes(key)
    prefixes = _PUBLIC_KEY_PREFIXES.get(len(raw))
    if prefixes is None:
        raise ValidationError(f"Public key must be 33 or 65 bytes, got {len(raw)}")
    if raw[0] not in prefixes:
        raise ValidationError(f"Bad prefix {raw[0]:#04x} for a {len(raw)}-byte public key")
    return raw


def is_valid_private_key(key: Union[str, bytes]) -> bool:
    try:
        validate_private_key(key)
    except ValidationError:
        return False
    return True


def is_valid_public_key(key: Union[str, bytes]) -> bool:
    try:
        validate_public_key(key)
    except ValidationError:
        return False
    return True


def validate_path_index(value: Optional[int], name: str) -> int:
    """
    Validate one unhardened BIP32 path segment.

    Raises:
        InvalidPathError: If the segment is missing, not an int, or out of range
    """
    if value is None:
        raise InvalidPathError(f"Missing derivation path segment: {name}", data={"segment": name})
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidPathError(
            f"Derivation path segment {name} must be an integer",
            data={"segment": name},
        )
    if not 0 <= value < HARDENED_OFFSET:
        raise InvalidPathError(
            f"Derivation path segment {name} out of range: {value}",
            data={"segment": name, "value": value},
        )
    return value


def is_valid_eth_address(address: str) -> bool:
    """Check the 0x + 40 hex shape; checksum casing is not enforced."""
    return bool(ETH_ADDRESS_PATTERN.match(address))


def validate_eth_address(address: Optional[str]) -> str:
    """
    Check the ``0x`` + 40 hex shape of an address and return it unchanged.

    Raises:
        ValidationError: If the address is missing or malformed
    """
    if not address or not is_valid_eth_address(address):
        raise ValidationError(f"Invalid Ethereum address: {address!r}")
    return address


def validate_challenge(challenge: Optional[str]) -> str:
    """
    Validate a WebAuthn challenge string from server options.

    Raises:
        ValidationError: If the challenge is missing or not base64 text
    """
    if not challenge:
        raise ValidationError("Options are missing a challenge")
    if not BASE64URL_PATTERN.match(challenge):
        raise ValidationError("Challenge must be base64url text")
    return challenge
