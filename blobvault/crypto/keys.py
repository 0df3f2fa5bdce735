"""secp256k1 keys on top of coincurve."""

from typing import Optional, Union

from coincurve import PrivateKey as SecpPrivateKey, PublicKey as SecpPublicKey

from ..exceptions import CryptoError
from ..types.common import PrivateKeyBytes, PublicKeyBytes
from ..utils.validation import validate_private_key, validate_public_key

__all__ = ["PrivateKey", "PublicKey"]


def _require_digest(message_hash: bytes) -> None:
    if len(message_hash) != 32:
        raise ValueError("Message hash must be 32 bytes")


class PrivateKey:
    """
    A signing key derived for a single operation.

    Nothing in blobvault keeps these around after the signature is made,
    and ``repr`` never shows the scalar.
    """

    def __init__(self, key: Union[bytes, str, "PrivateKey"]) -> None:
        """
        Args:
            key: 32 raw bytes, 64 hex chars, or a key to copy

        Raises:
            ValidationError: If the scalar is malformed or out of range
        """
        if isinstance(key, PrivateKey):
            self._secret, self._key = key._secret, key._key
        else:
            self._secret = PrivateKeyBytes(validate_private_key(key))
            self._key = SecpPrivateKey(self._secret)

    @property
    def secret(self) -> PrivateKeyBytes:
        return self._secret

    def hex(self) -> str:
        return self._secret.hex()

    def public_key(self, compressed: bool = True) -> "PublicKey":
        return PublicKey(self._key.public_key.format(compressed=compressed), compressed=compressed)

    def sign(self, message_hash: bytes) -> bytes:
        """ECDSA over a prehashed digest; DER, low-S, RFC 6979 nonce."""
        _require_digest(message_hash)
        try:
            return self._key.sign(message_hash, hasher=None)
        except Exception as e:
            raise CryptoError(f"Signing failed: {e}") from e

    def sign_recoverable(self, message_hash: bytes) -> bytes:
        """Compact ``r || s || recid`` signature over a prehashed digest."""
        _require_digest(message_hash)
        try:
            return self._key.sign_recoverable(message_hash, hasher=None)
        except Exception as e:
            raise CryptoError(f"Recoverable signing failed: {e}") from e

    def __eq__(self, other: object) -> bool:
        return isinstance(other, PrivateKey) and other._secret == self._secret

    def __repr__(self) -> str:
        return "PrivateKey(<redacted>)"


class PublicKey:
    """A secp256k1 point that remembers the encoding it was given in."""

    def __init__(
        self,
        key: Union[bytes, str, "PublicKey"],
        compressed: Optional[bool] = None
    ) -> None:
        """
        Args:
            key: SEC1 bytes or hex, or a key to copy
            compressed: Output encoding; follows the input length when None

        Raises:
            ValidationError: If the encoding is malformed
            CryptoError: If the bytes do not name a curve point
        """
        if isinstance(key, PublicKey):
            self._key, self._compressed = key._key, key._compressed
            return

        raw = validate_public_key(key)
        self._compressed = (len(raw) == 33) if compressed is None else compressed
        try:
            self._key = SecpPublicKey(raw)
        except ValueError as e:
            raise CryptoError(f"Public key is not on the curve: {e}") from e

    @classmethod
    def recover(cls, signature: bytes, message_hash: bytes, compressed: bool = True) -> "PublicKey":
        """Signer of a 65-byte compact signature over ``message_hash``."""
        try:
            point = SecpPublicKey.from_signature_and_message(signature, message_hash, hasher=None)
        except Exception as e:
            raise CryptoError(f"Public key recovery failed: {e}") from e
        return cls(point.format(compressed=compressed), compressed=compressed)

    @property
    def point(self) -> PublicKeyBytes:
        return PublicKeyBytes(self._key.format(compressed=self._compressed))

    def hex(self) -> str:
        return self.point.hex()

    def verify(self, signature: bytes, message_hash: bytes) -> bool:
        """True when ``signature`` is a valid DER signature by this key."""
        if len(message_hash) != 32:
            return False
        try:
            return self._key.verify(signature, message_hash, hasher=None)
        except (ValueError, TypeError):
            return False

    def __eq__(self, other: object) -> bool:
        return isinstance(other, PublicKey) and other.point == self.point

    def __repr__(self) -> str:
        return f"PublicKey({self.hex()})"
