"""Constants for the blobvault library."""

from enum import Enum

from .exceptions import UnsupportedCoinError

__all__ = [
    "Network",
    "BlobVersion",
    "Coin",
    "PROMPT_TIMEOUT_MS",
    "PUBLIC_KEY_CREDENTIAL_TYPE",
    "SEED_VERSION_DELIMITER",
    "BLOB_VERSION_CURRENT",
    "BIP39_LANGUAGE",
    "BIP32_SEED_KEY",
    "HARDENED_OFFSET",
    "EXTENDED_KEY_VERSIONS",
    "SAFE_SERVICE_ENDPOINTS",
    "SAFE_CHAIN_IDS",
    "SAFE_DEFAULT_VERSION",
    "DEFAULT_TIMEOUT",
    "MAX_RETRIES",
    "RETRY_DELAY",
    "USER_AGENT",
]


class Network(str, Enum):
    """Bitcoin network used for extended key serialization."""
    MAINNET = "mainnet"
    TESTNET = "testnet"


class BlobVersion(str, Enum):
    """Version tags appended to an encoded large blob."""
    V1 = "V1"


class Coin(str, Enum):
    """Coins the signing engine knows how to handle."""
    BTC = "BTC"
    TBTC = "TBTC"
    ETH = "ETH"
    TETH = "TETH"
    ETH_CONTRACT = "ETHC"
    TETH_CONTRACT = "TETHC"

    @classmethod
    def parse(cls, value: "str | Coin") -> "Coin":
        """
        Parse a coin tag, case-insensitively.

        Raises:
            UnsupportedCoinError: If the tag is not a known coin
        """
        if isinstance(value, Coin):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise UnsupportedCoinError(
                f"Unsupported coin: {value}", data={"coin": str(value)}
            ) from None

    @property
    def is_bitcoin(self) -> bool:
        return self in (Coin.BTC, Coin.TBTC)

    @property
    def is_ethereum(self) -> bool:
        return not self.is_bitcoin

    @property
    def is_testnet(self) -> bool:
        return self in (Coin.TBTC, Coin.TETH, Coin.TETH_CONTRACT)

    @property
    def network(self) -> Network:
        return Network.TESTNET if self.is_testnet else Network.MAINNET


# Ceremony
# Long enough to get through several security key prompts.
PROMPT_TIMEOUT_MS = 60000
PUBLIC_KEY_CREDENTIAL_TYPE = "public-key"

# Blob codec
SEED_VERSION_DELIMITER = "."
BLOB_VERSION_CURRENT = BlobVersion.V1
BIP39_LANGUAGE = "english"

# BIP32
BIP32_SEED_KEY = b"Bitcoin seed"
HARDENED_OFFSET = 0x80000000

EXTENDED_KEY_VERSIONS = {
    Network.MAINNET: {
        "public": bytes.fromhex("0488b21e"),  # xpub
        "private": bytes.fromhex("0488ade4"),  # xprv
    },
    Network.TESTNET: {
        "public": bytes.fromhex("043587cf"),  # tpub
        "private": bytes.fromhex("04358394"),  # tprv
    },
}

# Safe transaction service
SAFE_SERVICE_ENDPOINTS = {
    Network.MAINNET: "https://safe-transaction-mainnet.safe.global",
    Network.TESTNET: "https://safe-transaction-sepolia.safe.global",
}

SAFE_CHAIN_IDS = {
    Network.MAINNET: 1,
    Network.TESTNET: 11155111,
}

SAFE_DEFAULT_VERSION = "1.3.0"

# HTTP
DEFAULT_TIMEOUT = 30
MAX_RETRIES = 3
RETRY_DELAY = 1.0
USER_AGENT = "blobvault/1.0.0"
