"""
Key derivation from a decoded seed phrase.

The engine turns a mnemonic into a BIP32 master node and either exports
an extended public key or derives the leaf node used for signing.  Nodes
returned by :meth:`KeyDerivationEngine.derive_leaf` carry private key
material; callers use them for one signature and drop them.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..constants import BIP39_LANGUAGE, HARDENED_OFFSET, Network
from ..crypto.bip39 import mnemonic_to_seed, validate_mnemonic
from ..crypto.hd import HDNode
from ..exceptions import InvalidPathError, InvalidSecretError
from ..utils.validation import validate_path_index

__all__ = ["DerivationPath", "KeyDerivationEngine"]

logger = logging.getLogger(__name__)

# Change addresses are not used by the supported coins.
CHANGE_INDEX = 0


@dataclass(frozen=True)
class DerivationPath:
    """
    m/purpose[']/coin_type/account/0[/address_index]

    Only the purpose segment may be hardened, and only when the caller
    asks for it; some coin configurations deliberately derive it
    unhardened.
    """
    purpose: int
    coin_type: int
    account: int
    address_index: Optional[int] = None
    purpose_hardened: bool = False

    def __post_init__(self) -> None:
        validate_path_index(self.purpose, "purpose")
        validate_path_index(self.coin_type, "coin_type")
        validate_path_index(self.account, "account")
        if self.address_index is not None:
            validate_path_index(self.address_index, "address_index")

    @classmethod
    def for_message(
        cls,
        purpose: int,
        coin_type: int,
        account: int,
        purpose_hardened: bool = False,
    ) -> "DerivationPath":
        """Path used for health-check messages: address index 0."""
        return cls(purpose, coin_type, account, 0, purpose_hardened)

    @property
    def change(self) -> int:
        return CHANGE_INDEX

    @property
    def indexes(self) -> List[int]:
        purpose = self.purpose + HARDENED_OFFSET if self.purpose_hardened else self.purpose
        indexes = [purpose, self.coin_type, self.account, CHANGE_INDEX]
        if self.address_index is not None:
            indexes.append(self.address_index)
        return indexes

    def __str__(self) -> str:
        purpose = f"{self.purpose}'" if self.purpose_hardened else str(self.purpose)
        path = f"m/{purpose}/{self.coin_type}/{self.account}/{CHANGE_INDEX}"
        if self.address_index is not None:
            path += f"/{self.address_index}"
        return path


class KeyDerivationEngine:
    """Derives master, purpose-scoped and leaf nodes from a seed phrase."""

    def __init__(
        self,
        network: Network = Network.MAINNET,
        passphrase: str = "",
        language: str = BIP39_LANGUAGE,
    ) -> None:
        self.network = network
        self.language = language
        self._passphrase = passphrase

    def master_node(self, seed_phrase: str) -> HDNode:
        """
        Build the BIP32 master node for a mnemonic.

        Raises:
            InvalidSecretError: If the mnemonic fails checksum validation
                against this engine's wordlist
        """
        if not validate_mnemonic(seed_phrase, self.language):
            raise InvalidSecretError("Invalid seed phrase")
        seed = mnemonic_to_seed(seed_phrase, self._passphrase)
        return HDNode.from_seed(seed, self.network)

    def export_xpub(self, seed_phrase: str, hardened_purpose: Optional[int] = None) -> str:
        """
        Export an extended public key.

        Without a purpose (None or 0) this is the master xpub.  With one,
        it is the xpub of ``m/purpose'``, so the root's own public key is
        never exposed.
        """
        node = self.master_node(seed_phrase)

        if hardened_purpose:
            validate_path_index(hardened_purpose, "purpose")
            node = node.derive(hardened_purpose + HARDENED_OFFSET)
            logger.debug(f"Exporting xpub for m/{hardened_purpose}'")

        return node.neutered().to_base58()

    def derive_leaf(self, seed_phrase: str, path: DerivationPath) -> HDNode:
        """
        Derive the signing node for a full path.

        Raises:
            InvalidPathError: If ``path`` is not a DerivationPath
        """
        if not isinstance(path, DerivationPath):
            raise InvalidPathError(f"Expected a DerivationPath, got {type(path).__name__}")
        return self.master_node(seed_phrase).derive_indexes(path.indexes)
