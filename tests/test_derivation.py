import pytest

from blobvault.codec import BlobCodec
from blobvault.constants import HARDENED_OFFSET, Network
from blobvault.crypto.bip39 import generate_mnemonic, mnemonic_to_seed, validate_mnemonic
from blobvault.crypto.derivation import DerivationPath, KeyDerivationEngine
from blobvault.crypto.hd import HDNode
from blobvault.exceptions import InvalidPathError, InvalidSecretError

ABANDON = "abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon about"
ABANDON_SEED = (
    "5eb00bbddcf069084889a8ab9155568165f5c453ccb85e70811aaed6f6da5fc1"
    "9a5ac40b389cd370d086206dec8aa6c43daea6690f20ad3d8d48b2d2ce9e38e4"
)


def test_mnemonic_to_seed_vector():
    assert mnemonic_to_seed(ABANDON).hex() == ABANDON_SEED


def test_generate_mnemonic():
    words = generate_mnemonic().split()
    assert len(words) == 12
    assert validate_mnemonic(" ".join(words))
    assert len(generate_mnemonic(256).split()) == 24
    with pytest.raises(ValueError):
        generate_mnemonic(100)


def test_validate_mnemonic_rejects_bad_checksum():
    assert validate_mnemonic(ABANDON)
    assert not validate_mnemonic(ABANDON.replace("about", "abandon"))
    assert not validate_mnemonic("correct horse battery staple")
    assert not validate_mnemonic("")


def test_derivation_path_rendering():
    path = DerivationPath(84, 0, 0, 3, purpose_hardened=True)
    assert str(path) == "m/84'/0/0/0/3"
    assert path.indexes == [84 + HARDENED_OFFSET, 0, 0, 0, 3]

    unhardened = DerivationPath(44, 60, 1)
    assert str(unhardened) == "m/44/60/1/0"
    assert unhardened.change == 0

    message_path = DerivationPath.for_message(49, 1, 2)
    assert message_path.address_index == 0
    assert str(message_path) == "m/49/1/2/0/0"


def test_derivation_path_missing_segment():
    with pytest.raises(InvalidPathError):
        DerivationPath(84, None, 0)
    with pytest.raises(InvalidPathError):
        DerivationPath(84, 0, 2**31)


def test_master_node_rejects_invalid_seed_phrase():
    with pytest.raises(InvalidSecretError):
        KeyDerivationEngine().master_node("correct horse battery staple")


def test_bip84_first_address_key():
    # The engine only hardens the purpose segment, so use the node API for
    # the fully hardened BIP84 account path.
    master = KeyDerivationEngine().master_node(ABANDON)
    node = master.derive_path("m/84'/0'/0'/0/0")
    assert node.public_key.hex() == "0330d54fd0dd420a6e5f8d3624f5f3482cae350f79d5f0753bf5beef9c2d91af3c"


def test_derive_leaf_is_deterministic():
    engine = KeyDerivationEngine()
    path = DerivationPath(84, 0, 0, 0, purpose_hardened=True)

    first = engine.derive_leaf(ABANDON, path)
    second = engine.derive_leaf(ABANDON, path)
    assert first.private_key == second.private_key
    assert first.public_key == engine.master_node(ABANDON).derive_path(str(path)).public_key


def test_derive_leaf_requires_path_object():
    with pytest.raises(InvalidPathError):
        KeyDerivationEngine().derive_leaf(ABANDON, "m/84'/0/0/0/0")


def test_purpose_hardening_changes_leaf():
    engine = KeyDerivationEngine()
    hardened = engine.derive_leaf(ABANDON, DerivationPath(44, 60, 0, 0, purpose_hardened=True))
    unhardened = engine.derive_leaf(ABANDON, DerivationPath(44, 60, 0, 0))
    assert hardened.public_key != unhardened.public_key


def test_export_xpub_root_and_purpose():
    engine = KeyDerivationEngine()
    master = HDNode.from_seed(mnemonic_to_seed(ABANDON))

    assert engine.export_xpub(ABANDON) == master.neutered().to_base58()
    assert engine.export_xpub(ABANDON, 84) == master.derive_path("m/84'").neutered().to_base58()
    assert engine.export_xpub(ABANDON, 0) == engine.export_xpub(ABANDON)
    assert engine.export_xpub(ABANDON, 1) == master.derive_path("m/1'").neutered().to_base58()


def test_export_xpub_testnet():
    assert KeyDerivationEngine(Network.TESTNET).export_xpub(ABANDON).startswith("tpub")


def test_generate_encode_decode_derive_scenario():
    codec = BlobCodec()
    engine = KeyDerivationEngine()

    seed_phrase = generate_mnemonic()
    decoded = codec.decode(codec.encode(seed_phrase))
    assert decoded.seed_phrase == seed_phrase

    scoped = engine.export_xpub(decoded.seed_phrase, 84)
    assert scoped != engine.export_xpub(decoded.seed_phrase)
    assert scoped == engine.export_xpub(decoded.seed_phrase, 84)


def test_engine_validates_with_its_wordlist():
    seed_phrase = generate_mnemonic(language="italian")
    with pytest.raises(InvalidSecretError):
        KeyDerivationEngine().master_node(seed_phrase)

    node = KeyDerivationEngine(language="italian").master_node(seed_phrase)
    assert node.public_key == HDNode.from_seed(mnemonic_to_seed(seed_phrase)).public_key
