import asyncio
import base64

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct

from blobvault.constants import Coin
from blobvault.crypto.derivation import DerivationPath
from blobvault.crypto.safe import GnosisSafe
from blobvault.crypto.signing import SigningEngine
from blobvault.exceptions import InvalidSecretError, UnsupportedCoinError, ValidationError
from blobvault.types.transaction import ToSign

ABANDON = "abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon about"
PATH = DerivationPath(44, 60, 0, 0, purpose_hardened=True)
RECIPIENT = "0x000000000000000000000000000000000000dead"
SAFE = "0x5afe3855358e112b5647b952709e6165e1c1eeee"


def test_coin_parse():
    assert Coin.parse("tbtc") is Coin.TBTC
    assert Coin.parse("ETHC") is Coin.ETH_CONTRACT
    assert Coin.TETH_CONTRACT.is_testnet
    assert not Coin.BTC.is_ethereum
    with pytest.raises(UnsupportedCoinError):
        Coin.parse("DOGE")


def test_message_output_formats():
    engine = SigningEngine()
    btc = engine.sign_message(ABANDON, Coin.BTC, PATH, "hello")
    eth = engine.sign_message(ABANDON, Coin.ETH, PATH, "hello")

    assert len(base64.b64decode(btc)) == 65
    assert len(eth) == 130
    assert not eth.startswith("0x")


def test_message_signing_rejects_bad_seed():
    with pytest.raises(InvalidSecretError):
        SigningEngine().sign_message("not a seed", Coin.BTC, PATH, "hello")


def test_bitcoin_transaction_requires_psbt():
    with pytest.raises(ValidationError, match="psbt not found"):
        asyncio.run(SigningEngine().sign_transaction(ABANDON, Coin.TBTC))


def test_ethereum_transaction_requires_safe(safe_provider):
    engine = SigningEngine()
    with pytest.raises(ValidationError):
        asyncio.run(engine.sign_transaction(ABANDON, Coin.ETH, path=PATH, to_sign=ToSign(to=RECIPIENT)))

    safe = GnosisSafe(SAFE, False, safe_provider)
    with pytest.raises(ValidationError):
        asyncio.run(engine.sign_transaction(ABANDON, Coin.ETH, safe=safe, to_sign=ToSign(to=RECIPIENT)))
    assert safe_provider.calls == []


def test_safe_signature_matches_signer(safe_provider):
    engine = SigningEngine()
    safe = GnosisSafe(SAFE, False, safe_provider)
    to_sign = ToSign(to=RECIPIENT, value=5)

    signature = asyncio.run(engine.sign_transaction(ABANDON, "eth", path=PATH, safe=safe, to_sign=to_sign))
    tx_hash = asyncio.run(safe.get_transaction_hash(to_sign, Coin.ETH))

    v = int(signature[-2:], 16)
    assert v in (31, 32)
    # Undo the eth_sign marker and check the prefixed-hash signature.
    prefixed = bytes.fromhex(signature[2:-2]) + bytes([v - 4])
    recovered = Account.recover_message(encode_defunct(primitive=bytes.fromhex(tx_hash[2:])), signature=prefixed)
    leaf = engine.derivation.derive_leaf(ABANDON, PATH)
    assert recovered == Account.from_key(leaf.get_private_key().secret).address

