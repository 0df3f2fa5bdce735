"""Key derivation and signing for blobvault."""

from ..crypto.bip39 import generate_mnemonic, mnemonic_to_seed, validate_mnemonic
from ..crypto.derivation import DerivationPath, KeyDerivationEngine
from ..crypto.ethereum import EthSigner, adjust_signature_for_prefix
from ..crypto.hd import HDNode, parse_path
from ..crypto.keys import PrivateKey, PublicKey
from ..crypto.psbt import PSBT
from ..crypto.safe import GnosisSafe, SafeTransaction
from ..crypto.signature import (
    sign_message,
    verify_message,
    sign_transaction,
    parse_der_signature,
)
from ..crypto.signing import SigningEngine

__all__ = [
    # Mnemonics
    "generate_mnemonic",
    "mnemonic_to_seed",
    "validate_mnemonic",

    # Keys and derivation
    "PrivateKey",
    "PublicKey",
    "HDNode",
    "parse_path",
    "DerivationPath",
    "KeyDerivationEngine",

    # Signatures
    "sign_message",
    "verify_message",
    "sign_transaction",
    "parse_der_signature",
    "PSBT",
    "EthSigner",
    "adjust_signature_for_prefix",
    "SafeTransaction",
    "GnosisSafe",
    "SigningEngine",
]
