"""
blobvault

Keeps a wallet seed phrase in a WebAuthn authenticator's large blob and
uses it, one ceremony at a time, to export extended public keys and sign
Bitcoin PSBTs, messages and Ethereum Safe transactions.
"""

from .ceremony import (
    CeremonyAdapter,
    CredentialAPI,
    CredentialAPIError,
    normalize_credential_id,
    sanitize_authentication_response,
)
from .codec import BlobCodec, DecodedBlob
from .config import CeremonyConfig, CodecConfig, WalletConfig
from .constants import BlobVersion, Coin, Network
from .crypto import DerivationPath, KeyDerivationEngine, SigningEngine
from .exceptions import (
    BlobVaultError,
    ErrorCode,
    PasskeyError,
    BlobReadError,
    BlobWriteError,
    InvalidSecretError,
    UnsupportedVersionError,
    UnsupportedCoinError,
    InvalidPathError,
    ValidationError,
    LegacyBlobWarning,
)
from .providers import HTTPProvider
from .types import CapabilityProfile, RawAssertion, RawAttestation, ToSign
from .wallet import PasskeyWallet, SignTransactionParams, XpubExport

__version__ = "1.0.0"

__all__ = [
    # Wallet
    "PasskeyWallet",
    "SignTransactionParams",
    "XpubExport",

    # Components
    "BlobCodec",
    "DecodedBlob",
    "CeremonyAdapter",
    "CredentialAPI",
    "CredentialAPIError",
    "normalize_credential_id",
    "sanitize_authentication_response",
    "DerivationPath",
    "KeyDerivationEngine",
    "SigningEngine",
    "HTTPProvider",

    # Configuration
    "BlobVersion",
    "Coin",
    "Network",
    "CodecConfig",
    "CeremonyConfig",
    "WalletConfig",

    # Types
    "CapabilityProfile",
    "RawAssertion",
    "RawAttestation",
    "ToSign",

    # Exceptions
    "BlobVaultError",
    "ErrorCode",
    "PasskeyError",
    "BlobReadError",
    "BlobWriteError",
    "InvalidSecretError",
    "UnsupportedVersionError",
    "UnsupportedCoinError",
    "InvalidPathError",
    "ValidationError",
    "LegacyBlobWarning",
]
