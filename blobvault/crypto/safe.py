"""
Safe (Gnosis Safe) transaction hashing.

The hash signed by Safe owners is the EIP-712 digest of a ``SafeTx``
struct.  Its domain and struct layout depend on the Safe contract
version, so the version and current nonce are looked up from the Safe
transaction service unless the caller already supplied them.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

from eth_abi import encode
from eth_utils import keccak, to_checksum_address

from ..constants import SAFE_CHAIN_IDS, SAFE_DEFAULT_VERSION, Coin, Network
from ..exceptions import UnsupportedCoinError, ValidationError
from ..providers.base import BaseProvider
from ..types.transaction import SafeOperation, ToSign
from ..utils.encoding import hex_to_bytes
from ..utils.validation import validate_eth_address

__all__ = ["SafeTransaction", "GnosisSafe"]

logger = logging.getLogger(__name__)

DOMAIN_SEPARATOR_TYPEHASH = keccak(
    text="EIP712Domain(uint256 chainId,address verifyingContract)"
)
DOMAIN_SEPARATOR_TYPEHASH_OLD = keccak(text="EIP712Domain(address verifyingContract)")

SAFE_TX_TYPEHASH = keccak(
    text="SafeTx(address to,uint256 value,bytes data,uint8 operation,uint256 safeTxGas,"
    "uint256 baseGas,uint256 gasPrice,address gasToken,address refundReceiver,uint256 nonce)"
)
# Before 1.0.0 the field was named dataGas, which changes the type hash.
SAFE_TX_TYPEHASH_OLD = keccak(
    text="SafeTx(address to,uint256 value,bytes data,uint8 operation,uint256 safeTxGas,"
    "uint256 dataGas,uint256 gasPrice,address gasToken,address refundReceiver,uint256 nonce)"
)


def _version_tuple(version: str) -> Tuple[int, ...]:
    """'1.3.0+L2' -> (1, 3, 0)"""
    core = version.split("+", 1)[0].split("-", 1)[0]
    try:
        return tuple(int(part) for part in core.split("."))
    except ValueError:
        raise ValidationError(f"Invalid Safe version: {version}") from None


@dataclass(frozen=True)
class SafeTransaction:
    """A fully specified SafeTx, ready to hash."""
    safe_address: str
    chain_id: int
    to: str
    value: int
    data: bytes
    operation: SafeOperation
    safe_tx_gas: int
    base_gas: int
    gas_price: int
    gas_token: str
    refund_receiver: str
    nonce: int
    safe_version: str = SAFE_DEFAULT_VERSION

    @classmethod
    def from_to_sign(
        cls,
        to_sign: ToSign,
        safe_address: str,
        chain_id: int,
        nonce: int,
        safe_version: str,
    ) -> "SafeTransaction":
        return cls(
            safe_address=safe_address,
            chain_id=chain_id,
            to=to_sign.to,
            value=to_sign.value,
            data=hex_to_bytes(to_sign.data),
            operation=SafeOperation(to_sign.operation),
            safe_tx_gas=to_sign.safe_tx_gas,
            base_gas=to_sign.base_gas,
            gas_price=to_sign.gas_price,
            gas_token=to_sign.gas_token,
            refund_receiver=to_sign.refund_receiver,
            nonce=nonce,
            safe_version=safe_version,
        )

    @property
    def domain_separator(self) -> bytes:
        safe = to_checksum_address(self.safe_address)
        if _version_tuple(self.safe_version) >= (1, 3, 0):
            return keccak(encode(
                ["bytes32", "uint256", "address"],
                [DOMAIN_SEPARATOR_TYPEHASH, self.chain_id, safe],
            ))
        return keccak(encode(["bytes32", "address"], [DOMAIN_SEPARATOR_TYPEHASH_OLD, safe]))

    @property
    def struct_hash(self) -> bytes:
        if _version_tuple(self.safe_version) >= (1, 0, 0):
            type_hash = SAFE_TX_TYPEHASH
        else:
            type_hash = SAFE_TX_TYPEHASH_OLD

        return keccak(encode(
            [
                "bytes32", "address", "uint256", "bytes32", "uint8", "uint256",
                "uint256", "uint256", "address", "address", "uint256",
            ],
            [
                type_hash,
                to_checksum_address(self.to),
                self.value,
                keccak(self.data),
                int(self.operation),
                self.safe_tx_gas,
                self.base_gas,
                self.gas_price,
                to_checksum_address(self.gas_token),
                to_checksum_address(self.refund_receiver),
                self.nonce,
            ],
        ))

    @property
    def safe_tx_hash(self) -> bytes:
        return keccak(b"\x19\x01" + self.domain_separator + self.struct_hash)


class GnosisSafe:
    """A Safe account, bound to a network and a service provider."""

    def __init__(self, address: str, is_testnet: bool, provider: BaseProvider) -> None:
        self.address = to_checksum_address(validate_eth_address(address))
        self.is_testnet = is_testnet
        self.provider = provider

    @property
    def chain_id(self) -> int:
        return SAFE_CHAIN_IDS[Network.TESTNET if self.is_testnet else Network.MAINNET]

    async def get_transaction_hash(self, to_sign: ToSign, coin: Coin) -> str:
        """
        Compute the Safe transaction hash for ``to_sign``.

        Returns:
            32-byte hash as 0x-prefixed hex

        Raises:
            UnsupportedCoinError: If ``coin`` is not an Ethereum coin or
                does not match this Safe's network
        """
        coin = Coin.parse(coin)
        if not coin.is_ethereum or coin.is_testnet != self.is_testnet:
            raise UnsupportedCoinError(
                f"Coin {coin.value} does not match Safe network",
                data={"coin": coin.value, "testnet": self.is_testnet},
            )

        nonce, version = to_sign.nonce, to_sign.safe_version
        if nonce is None or version is None:
            info = await self.provider.get_safe_info(self.address)
            nonce = info.nonce if nonce is None else nonce
            version = info.version if version is None else version

        tx = SafeTransaction.from_to_sign(to_sign, self.address, self.chain_id, nonce, version)
        tx_hash = "0x" + tx.safe_tx_hash.hex()
        logger.info(f"Safe {self.address} nonce {nonce}: transaction hash {tx_hash}")
        return tx_hash

    def __repr__(self) -> str:
        network = "testnet" if self.is_testnet else "mainnet"
        return f"GnosisSafe({self.address}, {network})"
