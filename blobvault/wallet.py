"""
Passkey-backed wallet.

:class:`PasskeyWallet` sequences one authenticator ceremony with the
codec, key derivation and signing engines for each use case.  It keeps
no state between calls: the seed phrase is read fresh from the
authenticator each time and dropped as soon as the call returns.

Precondition for every method: at most one ceremony may be in flight per
credential.  Callers must not run two of these coroutines concurrently
against the same credential; the platform credential API serializes
prompts and a second call would queue, fail or race with the first.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Union

from .ceremony.adapter import CeremonyAdapter
from .ceremony.base import CredentialAPI
from .ceremony.sanitizer import sanitize_authentication_response
from .codec import BlobCodec
from .config import WalletConfig
from .constants import BlobVersion, Coin
from .crypto.bip39 import generate_mnemonic
from .crypto.derivation import DerivationPath, KeyDerivationEngine
from .crypto.psbt import PSBT
from .crypto.safe import GnosisSafe
from .crypto.signing import SigningEngine
from .exceptions import UnsupportedCoinError, ValidationError
from .providers.base import BaseProvider
from .providers.http import HTTPProvider
from .types.common import JSONDict
from .types.transaction import ToSign

__all__ = ["XpubExport", "SignTransactionParams", "PasskeyWallet"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class XpubExport:
    """Result of creating and storing a new seed."""
    xpub: str
    # Already sanitized; safe to send to the server.
    authentication_response: dict[str, Any]
    blob_version: BlobVersion


@dataclass(frozen=True)
class SignTransactionParams:
    """
    Inputs for :meth:`PasskeyWallet.sign_transaction`.

    ``psbt`` is required for Bitcoin coins.  ``safe_address`` and
    ``to_sign`` are required for Ethereum coins, which also use
    ``key_path_address`` as the optional last path segment.
    """
    coin: Union[Coin, str]
    authentication_options: JSONDict
    key_path_purpose: int
    key_path_coin_type: int
    key_path_account: int
    key_path_purpose_is_hardened: bool = False
    psbt: Optional[str] = None
    safe_address: Optional[str] = None
    key_path_address: Optional[int] = None
    to_sign: Optional[ToSign] = None

    @property
    def path(self) -> DerivationPath:
        return DerivationPath(
            purpose=self.key_path_purpose,
            coin_type=self.key_path_coin_type,
            account=self.key_path_account,
            address_index=self.key_path_address,
            purpose_hardened=self.key_path_purpose_is_hardened,
        )


class PasskeyWallet:
    """
    Wallet whose seed lives in an authenticator's large blob.

    Args:
        api: Platform credential API
        config: Codec, ceremony and derivation settings
        safe_provider: Safe transaction service client; an
            :class:`HTTPProvider` for the coin's network is opened per
            call when omitted
    """

    def __init__(
        self,
        api: CredentialAPI,
        config: Optional[WalletConfig] = None,
        safe_provider: Optional[BaseProvider] = None,
    ) -> None:
        self.config = config or WalletConfig()
        self.codec = BlobCodec(self.config.codec)
        self.ceremony = CeremonyAdapter(api, self.config.ceremony)
        self.derivation = KeyDerivationEngine(
            self.config.network, self.config.passphrase, self.config.codec.language
        )
        self.signing = SigningEngine(self.derivation)
        self._safe_provider = safe_provider
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def _read_seed_phrase(self, authentication_options: JSONDict) -> str:
        blob = await self.ceremony.read_blob(authentication_options)
        return self.codec.decode(blob).seed_phrase

    async def create_passkey(self, creation_options: JSONDict) -> dict[str, Any]:
        """
        Register a new credential.

        Its large blob is written later by :meth:`export_xpub`, in an
        authentication ceremony against the returned credential.
        """
        return await self.ceremony.create_credential(creation_options)

    async def export_xpub(
        self,
        authentication_options: JSONDict,
        credential_id: str,
        hardened_purpose: Optional[int] = None,
    ) -> XpubExport:
        """
        Generate a seed, store it on the credential and return its xpub.

        Calling this again on the same credential overwrites the stored
        seed.

        Args:
            authentication_options: Server options for the write ceremony
            credential_id: Credential whose large blob receives the seed
            hardened_purpose: Export ``m/purpose'`` instead of the master key;
                0 and None both mean the master key

        Raises:
            BlobWriteError: If the authenticator did not store the blob
            PasskeyError: If the ceremony failed
        """
        seed_phrase = generate_mnemonic(self.config.mnemonic_strength, self.config.codec.language)
        version = self.config.codec.current_version
        blob = self.codec.encode(seed_phrase, version)
        xpub = self.derivation.export_xpub(seed_phrase, hardened_purpose)

        authentication_response = await self.ceremony.write_blob(
            authentication_options, credential_id, blob
        )
        sanitized = sanitize_authentication_response(authentication_response)

        scope = f"m/{hardened_purpose}'" if hardened_purpose else "master"
        self._logger.info(f"Stored {version.value} blob and exported {scope} xpub")

        return XpubExport(
            xpub=xpub,
            authentication_response=sanitized.sanitized_authentication_response,
            blob_version=version,
        )

    async def get_signed_message(
        self,
        coin: Union[Coin, str],
        message: str,
        authentication_options: JSONDict,
        key_path_purpose: int,
        key_path_coin_type: int,
        key_path_account: int,
        key_path_purpose_is_hardened: bool = False,
    ) -> str:
        """
        Sign ``message`` with the key at address index 0 of the account.

        Returns:
            Base64 signature for Bitcoin coins, hex without 0x for Ethereum
        """
        coin = Coin.parse(coin)
        path = DerivationPath.for_message(
            key_path_purpose, key_path_coin_type, key_path_account, key_path_purpose_is_hardened
        )

        seed_phrase = await self._read_seed_phrase(authentication_options)
        return self.signing.sign_message(seed_phrase, coin, path, message)

    async def sign_transaction(self, params: SignTransactionParams) -> Union[str, List[str]]:
        """
        Sign a Bitcoin PSBT or an Ethereum Safe transaction.

        Payloads are checked before the user is prompted.

        Returns:
            Hex signatures in input order for Bitcoin, or a 0x-prefixed
            Safe signature for Ethereum

        Raises:
            ValidationError: If the coin's payload is missing or malformed
            UnsupportedCoinError: If the coin tag is unknown
            SigningError: If nothing could be signed
        """
        coin = Coin.parse(params.coin)

        if coin.is_bitcoin:
            if not params.psbt:
                raise ValidationError("psbt not found")
            psbt = PSBT.parse(params.psbt)

            seed_phrase = await self._read_seed_phrase(params.authentication_options)
            return await self.signing.sign_transaction(seed_phrase, coin, psbt=psbt)

        if coin.is_ethereum:
            if params.safe_address is None:
                raise ValidationError("Safe address required for Safe signature")
            if params.to_sign is None:
                raise ValidationError("Safe signature needs a transaction to sign")
            path = params.path

            provider = self._safe_provider or HTTPProvider(network=coin.network)
            try:
                safe = GnosisSafe(params.safe_address, coin.is_testnet, provider)
                seed_phrase = await self._read_seed_phrase(params.authentication_options)
                return await self.signing.sign_transaction(
                    seed_phrase, coin, path=path, safe=safe, to_sign=params.to_sign
                )
            finally:
                if provider is not self._safe_provider:
                    await provider.disconnect()

        raise UnsupportedCoinError(f"Unsupported coin: {coin.value}")

    async def get_stored_seed(self, authentication_options: JSONDict) -> str:
        """
        Read the stored seed phrase, for a user-initiated export.

        Raises:
            BlobReadError: If the credential has no readable blob
            CodecError: If the blob cannot be decoded
        """
        seed_phrase = await self._read_seed_phrase(authentication_options)
        self._logger.info("Seed phrase read for export")
        return seed_phrase

    async def get_seed_words(self, authentication_options: JSONDict) -> List[str]:
        """Stored seed phrase, split into words."""
        return (await self.get_stored_seed(authentication_options)).split()

    def __repr__(self) -> str:
        return f"PasskeyWallet(network={self.config.network.value})"
