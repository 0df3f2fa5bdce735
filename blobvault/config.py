"""Configuration objects passed into the codec, adapter and wallet."""

from dataclasses import dataclass, field

from .constants import (
    BIP39_LANGUAGE,
    BLOB_VERSION_CURRENT,
    PROMPT_TIMEOUT_MS,
    PUBLIC_KEY_CREDENTIAL_TYPE,
    SEED_VERSION_DELIMITER,
    BlobVersion,
    Network,
)

__all__ = ["CodecConfig", "CeremonyConfig", "WalletConfig"]


@dataclass(frozen=True)
class CodecConfig:
    """Blob codec settings."""
    current_version: BlobVersion = BLOB_VERSION_CURRENT
    delimiter: str = SEED_VERSION_DELIMITER
    language: str = BIP39_LANGUAGE


@dataclass(frozen=True)
class CeremonyConfig:
    """Authenticator ceremony settings."""
    timeout_ms: int = PROMPT_TIMEOUT_MS
    credential_type: str = PUBLIC_KEY_CREDENTIAL_TYPE
    # Only applied to registration; assertion options come from the server.
    user_verification: str = "discouraged"


@dataclass(frozen=True)
class WalletConfig:
    """Top-level settings for PasskeyWallet."""
    codec: CodecConfig = field(default_factory=CodecConfig)
    ceremony: CeremonyConfig = field(default_factory=CeremonyConfig)
    network: Network = Network.MAINNET
    passphrase: str = ""
    mnemonic_strength: int = 128
