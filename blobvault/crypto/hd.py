"""BIP32 extended keys."""

import hashlib
import hmac
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional

from coincurve import PublicKey as SecpPublicKey

from ..constants import BIP32_SEED_KEY, EXTENDED_KEY_VERSIONS, HARDENED_OFFSET, Network
from ..crypto.keys import PrivateKey
from ..exceptions import CryptoError, InvalidPathError
from ..utils.encoding import encode_base58_check, hash160
from ..utils.validation import CURVE_ORDER

__all__ = ["HDNode", "parse_path"]

_HARDENED_MARKERS = ("'", "h", "H")


def parse_path(path: str) -> List[int]:
    """
    Turn ``m/84'/0'/0'/0/5`` into a list of child indexes.

    ``'``, ``h`` and ``H`` all mark a hardened segment. A bare ``m`` (or
    an empty string) is the master node.

    Raises:
        InvalidPathError: On an empty, non-numeric or out of range segment
    """
    if path in ("", "m", "M"):
        return []

    segments = path.split("/")
    if segments[0] in ("m", "M"):
        segments = segments[1:]

    indexes = []
    for segment in segments:
        hardened = segment.endswith(_HARDENED_MARKERS)
        number = segment[:-1] if hardened else segment
        if not number.isdigit() or int(number) >= HARDENED_OFFSET:
            raise InvalidPathError(f"Invalid path segment: {segment!r}", data={"path": path})
        indexes.append(int(number) | (HARDENED_OFFSET if hardened else 0))
    return indexes


def _point(secret: bytes) -> bytes:
    return PrivateKey(secret).public_key(compressed=True).point


@dataclass(frozen=True, repr=False)
class HDNode:
    """
    One node of a BIP32 tree.

    ``private_key`` is None on a neutered node, which can still derive
    non-hardened children from ``public_key``.
    """

    private_key: Optional[bytes]
    public_key: bytes
    chain_code: bytes
    depth: int = 0
    parent_fingerprint: bytes = bytes(4)
    index: int = 0
    network: Network = Network.MAINNET

    @classmethod
    def from_seed(cls, seed: bytes, network: Network = Network.MAINNET) -> "HDNode":
        if not 16 <= len(seed) <= 64:
            raise ValueError("Seed must be between 16 and 64 bytes")

        digest = hmac.new(BIP32_SEED_KEY, seed, hashlib.sha512).digest()
        secret, chain_code = digest[:32], digest[32:]
        if not 0 < int.from_bytes(secret, "big") < CURVE_ORDER:
            raise CryptoError("Invalid master key")

        return cls(secret, _point(secret), chain_code, network=network)

    @property
    def fingerprint(self) -> bytes:
        return hash160(self.public_key)[:4]

    @property
    def is_private(self) -> bool:
        return self.private_key is not None

    def derive(self, index: int) -> "HDNode":
        """
        Child at ``index``; values from ``HARDENED_OFFSET`` up are hardened.

        An index whose tweak falls outside the curve order moves on to the
        next index, as BIP32 prescribes.
        """
        if not 0 <= index <= 0xFFFFFFFF:
            raise InvalidPathError(f"Child index out of range: {index}")

        suffix = index.to_bytes(4, "big")
        if index >= HARDENED_OFFSET:
            if not self.is_private:
                raise CryptoError("Cannot do hardened derivation without private key")
            data = bytes(1) + self.private_key + suffix
        else:
            data = self.public_key + suffix

        digest = hmac.new(self.chain_code, data, hashlib.sha512).digest()
        tweak, chain_code = digest[:32], digest[32:]
        tweak_int = int.from_bytes(tweak, "big")
        if tweak_int >= CURVE_ORDER:
            return self.derive(index + 1)

        if self.is_private:
            child_int = (int.from_bytes(self.private_key, "big") + tweak_int) % CURVE_ORDER
            if child_int == 0:
                return self.derive(index + 1)
            secret: Optional[bytes] = child_int.to_bytes(32, "big")
            point = _point(secret)
        else:
            secret = None
            try:
                point = SecpPublicKey(self.public_key).add(tweak).format(compressed=True)
            except ValueError:
                return self.derive(index + 1)

        return HDNode(
            secret,
            point,
            chain_code,
            depth=self.depth + 1,
            parent_fingerprint=self.fingerprint,
            index=index,
            network=self.network,
        )

    def derive_indexes(self, indexes: Iterable[int]) -> "HDNode":
        node = self
        for index in indexes:
            node = node.derive(index)
        return node

    def derive_path(self, path: str) -> "HDNode":
        return self.derive_indexes(parse_path(path))

    def neutered(self) -> "HDNode":
        return replace(self, private_key=None)

    def to_base58(self) -> str:
        """xprv/xpub on mainnet, tprv/tpub on testnet."""
        versions = EXTENDED_KEY_VERSIONS[self.network]
        if self.is_private:
            version, key_data = versions["private"], bytes(1) + self.private_key
        else:
            version, key_data = versions["public"], self.public_key

        return encode_base58_check(b"".join((
            version,
            bytes([self.depth]),
            self.parent_fingerprint,
            self.index.to_bytes(4, "big"),
            self.chain_code,
            key_data,
        )))

    def get_private_key(self) -> PrivateKey:
        if not self.is_private:
            raise ValueError("This is a public-only node")
        return PrivateKey(self.private_key)

    def __repr__(self) -> str:
        kind = "private" if self.is_private else "public"
        return f"HDNode({kind}, depth={self.depth}, fingerprint={self.fingerprint.hex()})"
