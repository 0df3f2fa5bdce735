"""Ethereum signing: EIP-191 personal messages and Safe signature adjustment."""

import logging
from typing import Union

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import keccak, to_checksum_address

from ..crypto.hd import HDNode
from ..crypto.keys import PrivateKey, PublicKey
from ..exceptions import CryptoError, SigningError
from ..types.common import EthAddress
from ..utils.encoding import hex_to_bytes

__all__ = ["EthSigner", "public_key_to_address", "adjust_signature_for_prefix"]

logger = logging.getLogger(__name__)

# Safe marks eth_sign signatures (made over the EIP-191 prefixed hash) by v + 4.
SAFE_ETH_SIGN_V_OFFSET = 4


def public_key_to_address(public_key: PublicKey) -> EthAddress:
    """Checksummed address of a secp256k1 public key."""
    uncompressed = PublicKey(public_key.point, compressed=False).point
    return EthAddress(to_checksum_address(keccak(uncompressed[1:])[-20:]))


class EthSigner:
    """Signs with one derived Ethereum key."""

    def __init__(self, private_key: PrivateKey) -> None:
        self._account = Account.from_key(private_key.secret)

    @classmethod
    def from_node(cls, node: HDNode) -> "EthSigner":
        return cls(node.get_private_key())

    @property
    def address(self) -> str:
        return self._account.address

    def sign_message(self, message: Union[str, bytes]) -> str:
        """
        EIP-191 personal_sign.

        Text is signed as UTF-8; bytes are signed as given.

        Returns:
            65-byte r || s || v signature as hex, without ``0x``
        """
        if isinstance(message, str):
            signable = encode_defunct(text=message)
        else:
            signable = encode_defunct(primitive=bytes(message))

        signed = self._account.sign_message(signable)
        return bytes(signed.signature).hex()

    def __repr__(self) -> str:
        return f"EthSigner({self.address})"


def adjust_signature_for_prefix(
    safe_tx_hash: str,
    signature: str,
    signer_address: str,
) -> str:
    """
    Rewrite ``v`` so a Safe contract can verify the signature.

    A ``v`` of 0 or 1 is first moved to 27 or 28.  If recovering over the
    raw, unprefixed hash does not give ``signer_address``, the signature
    was made over the EIP-191 prefixed hash and ``v`` is raised by 4.

    Args:
        safe_tx_hash: 32-byte Safe transaction hash, hex with or without 0x
        signature: 65-byte signature, hex with or without 0x
        signer_address: Address of the signing key

    Returns:
        Adjusted signature as 0x-prefixed hex

    Raises:
        SigningError: If the signature or hash is malformed
    """
    message_hash = hex_to_bytes(safe_tx_hash)
    raw = hex_to_bytes(signature)

    if len(message_hash) != 32:
        raise SigningError("Safe transaction hash must be 32 bytes")
    if len(raw) != 65:
        raise SigningError(f"Signature must be 65 bytes, got {len(raw)}")

    v = raw[64]
    if v in (0, 1):
        v += 27
    if v not in (27, 28):
        raise SigningError(f"Invalid signature v value: {raw[64]}")

    try:
        recovered = PublicKey.recover(raw[:64] + bytes([v - 27]), message_hash, compressed=False)
        is_raw_signature = public_key_to_address(recovered).lower() == signer_address.lower()
    except CryptoError:
        is_raw_signature = False

    if not is_raw_signature:
        v += SAFE_ETH_SIGN_V_OFFSET

    logger.debug(f"Adjusted Safe signature v to {v}")
    return "0x" + raw[:64].hex() + f"{v:02x}"
