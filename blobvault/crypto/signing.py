"""Coin-dispatched signing over a decoded seed phrase."""

import logging
from typing import List, Optional, Union

from ..constants import Coin
from ..crypto.derivation import DerivationPath, KeyDerivationEngine
from ..crypto.ethereum import EthSigner, adjust_signature_for_prefix
from ..crypto.psbt import PSBT
from ..crypto.safe import GnosisSafe
from ..crypto.signature import sign_message as sign_bitcoin_message
from ..crypto.transaction_signing import extract_signatures, sign_all_inputs_hd
from ..exceptions import UnsupportedCoinError, ValidationError
from ..types.transaction import ToSign

__all__ = ["SigningEngine"]

logger = logging.getLogger(__name__)


class SigningEngine:
    """
    Produces signatures for the supported coins.

    Every method takes the seed phrase for one call only; derived nodes
    and keys go out of scope when the method returns.
    """

    def __init__(self, derivation: Optional[KeyDerivationEngine] = None) -> None:
        self.derivation = derivation or KeyDerivationEngine()
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def sign_message(
        self,
        seed_phrase: str,
        coin: Union[Coin, str],
        path: DerivationPath,
        message: str,
    ) -> str:
        """
        Sign a text message with the leaf key at ``path``.

        Bitcoin coins produce a base64 Bitcoin Signed Message signature;
        Ethereum coins produce an EIP-191 signature as hex without 0x.
        """
        coin = Coin.parse(coin)
        node = self.derivation.derive_leaf(seed_phrase, path)

        if coin.is_bitcoin:
            signature = sign_bitcoin_message(node.get_private_key(), message)
        elif coin.is_ethereum:
            signature = EthSigner.from_node(node).sign_message(message)
        else:
            raise UnsupportedCoinError(f"Unsupported coin: {coin.value}")

        self._logger.debug(f"Signed {coin.value} message at {path}")
        return signature

    def sign_psbt(self, seed_phrase: str, psbt: Union[PSBT, str]) -> List[str]:
        """
        Sign every PSBT input derived from this seed's root.

        Returns:
            Hex signatures in input order

        Raises:
            SigningError: If no input could be signed
        """
        if isinstance(psbt, str):
            psbt = PSBT.parse(psbt)

        # Logged so the user can check the PSBT in an external decoder first.
        logger.warning(
            "Preparing to sign PSBT. Decode this base64 PSBT with a third-party "
            f"tool to verify it:\n{psbt.to_base64()}"
        )

        root = self.derivation.master_node(seed_phrase)
        signed = sign_all_inputs_hd(psbt, root)
        return extract_signatures(psbt, signed)

    async def sign_safe_transaction(
        self,
        seed_phrase: str,
        coin: Union[Coin, str],
        path: DerivationPath,
        safe: GnosisSafe,
        to_sign: ToSign,
    ) -> str:
        """
        Sign a Safe transaction hash with the leaf key at ``path``.

        The hash bytes are signed as an EIP-191 message and ``v`` is then
        adjusted to the Safe ``eth_sign`` convention.

        Returns:
            0x-prefixed 65-byte signature
        """
        coin = Coin.parse(coin)
        if not coin.is_ethereum:
            raise UnsupportedCoinError(f"Safe signing needs an Ethereum coin, got {coin.value}")

        tx_hash = await safe.get_transaction_hash(to_sign, coin)

        signer = EthSigner.from_node(self.derivation.derive_leaf(seed_phrase, path))
        unprefixed = tx_hash[2:]
        signature = signer.sign_message(bytes.fromhex(unprefixed))

        return adjust_signature_for_prefix(unprefixed, signature, signer.address)

    async def sign_transaction(
        self,
        seed_phrase: str,
        coin: Union[Coin, str],
        psbt: Optional[Union[PSBT, str]] = None,
        path: Optional[DerivationPath] = None,
        safe: Optional[GnosisSafe] = None,
        to_sign: Optional[ToSign] = None,
    ) -> Union[str, List[str]]:
        """
        Dispatch on coin: PSBT signing for Bitcoin, Safe signing for Ethereum.

        Raises:
            ValidationError: If the payload for the coin is missing
            UnsupportedCoinError: If the coin tag is unknown
        """
        coin = Coin.parse(coin)

        if coin in (Coin.BTC, Coin.TBTC):
            if psbt is None:
                raise ValidationError("psbt not found")
            return self.sign_psbt(seed_phrase, psbt)

        if coin in (Coin.ETH, Coin.TETH, Coin.ETH_CONTRACT, Coin.TETH_CONTRACT):
            if safe is None:
                raise ValidationError("Safe address required for Safe signature")
            if path is None or to_sign is None:
                raise ValidationError("Safe signature needs a derivation path and transaction")
            return await self.sign_safe_transaction(seed_phrase, coin, path, safe, to_sign)

        raise UnsupportedCoinError(f"Unsupported coin: {coin.value}")
