import pytest

from blobvault.constants import HARDENED_OFFSET
from blobvault.crypto.derivation import KeyDerivationEngine
from blobvault.crypto.keys import PublicKey
from blobvault.crypto.psbt import PSBT, KeyOrigin
from blobvault.crypto.signature import parse_der_signature
from blobvault.crypto.signing import SigningEngine
from blobvault.crypto.transaction_signing import (
    legacy_sighash,
    segwit_v0_sighash,
    sign_all_inputs_hd,
)
from blobvault.exceptions import SigningError, ValidationError
from blobvault.types.transaction import RawTransaction, TransactionOutput
from blobvault.utils.encoding import hash160

ABANDON = "abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon about"
H = HARDENED_OFFSET
BIP84_PATH = (84 + H, 0 + H, 0 + H, 0, 0)
BIP44_PATH = (44 + H, 0 + H, 0 + H, 0, 0)
BIP49_PATH = (49 + H, 0 + H, 0 + H, 0, 0)


def _root():
    return KeyDerivationEngine().master_node(ABANDON)


def _spending_tx(prev_txid, vout=0):
    tx = RawTransaction(version=2, locktime=0)
    tx.add_input(prev_txid, vout, sequence=0xFFFFFFFD)
    tx.add_output(90_000, "0014" + "ab" * 20)
    return tx


def _p2wpkh_psbt(fingerprint=None):
    root = _root()
    pubkey = root.derive_indexes(BIP84_PATH).public_key
    tx = _spending_tx("11" * 32)
    psbt = PSBT.from_transaction(tx)
    psbt.inputs[0].witness_utxo = TransactionOutput(100_000, "0014" + hash160(pubkey).hex())
    psbt.inputs[0].bip32_derivations[pubkey] = KeyOrigin(fingerprint or root.fingerprint, BIP84_PATH)
    return psbt, pubkey


def _der(signature_hex):
    return bytes.fromhex(signature_hex)[:-1]


def test_psbt_serialization_round_trip():
    psbt, pubkey = _p2wpkh_psbt()
    psbt.inputs[0].unknown[b"\xfc\x01"] = b"proprietary"
    psbt.outputs[0].fields[b"\x02" + pubkey] = b"\x00" * 4

    encoded = psbt.to_base64()
    parsed = PSBT.from_base64(encoded)
    assert parsed.serialize() == psbt.serialize()
    assert parsed.inputs[0].bip32_derivations[pubkey].path == BIP84_PATH
    assert PSBT.parse(psbt.to_hex()).serialize() == psbt.serialize()
    assert PSBT.parse(encoded).to_base64() == encoded


def test_psbt_rejects_malformed_input():
    psbt, _ = _p2wpkh_psbt()
    data = psbt.serialize()
    with pytest.raises(ValidationError):
        PSBT.from_bytes(b"xsbt\xff" + data[5:])
    with pytest.raises(ValidationError):
        PSBT.from_bytes(data[:-3])
    with pytest.raises(ValidationError):
        PSBT.from_bytes(data + b"\x00")
    with pytest.raises(ValidationError):
        PSBT.from_base64("not base64!")


def test_psbt_rejects_duplicate_keys():
    psbt, _ = _p2wpkh_psbt()
    data = psbt.serialize()
    global_tx = psbt.tx.serialize()
    # Repeat the unsigned transaction entry in the global map
    entry = bytes([1, 0]) + bytes([len(global_tx)]) + global_tx
    duplicated = data[:5] + entry + data[5:]
    with pytest.raises(ValidationError):
        PSBT.from_bytes(duplicated)


def test_sign_p2wpkh_input():
    psbt, pubkey = _p2wpkh_psbt()
    signatures = SigningEngine().sign_psbt(ABANDON, psbt.to_base64())

    assert len(signatures) == 1
    _, _, sighash_type = parse_der_signature(bytes.fromhex(signatures[0]))
    assert sighash_type == 0x01

    script_code = bytes.fromhex("76a914" + hash160(pubkey).hex() + "88ac")
    digest = segwit_v0_sighash(psbt.tx, 0, script_code, 100_000)
    assert PublicKey(pubkey).verify(_der(signatures[0]), digest)


def test_sign_adds_partial_signature_in_place():
    psbt, pubkey = _p2wpkh_psbt()
    signed = sign_all_inputs_hd(psbt, _root())
    assert signed == [(0, pubkey)]
    assert pubkey in psbt.inputs[0].partial_sigs


def test_sign_p2sh_p2wpkh_input():
    root = _root()
    pubkey = root.derive_indexes(BIP49_PATH).public_key
    redeem_script = bytes.fromhex("0014" + hash160(pubkey).hex())

    psbt = PSBT.from_transaction(_spending_tx("22" * 32))
    psbt.inputs[0].witness_utxo = TransactionOutput(50_000, "a914" + hash160(redeem_script).hex() + "87")
    psbt.inputs[0].redeem_script = redeem_script
    psbt.inputs[0].bip32_derivations[pubkey] = KeyOrigin(root.fingerprint, BIP49_PATH)

    signatures = SigningEngine().sign_psbt(ABANDON, psbt)
    script_code = bytes.fromhex("76a914" + hash160(pubkey).hex() + "88ac")
    digest = segwit_v0_sighash(psbt.tx, 0, script_code, 50_000)
    assert PublicKey(pubkey).verify(_der(signatures[0]), digest)


def test_sign_legacy_p2pkh_input():
    root = _root()
    pubkey = root.derive_indexes(BIP44_PATH).public_key
    script = "76a914" + hash160(pubkey).hex() + "88ac"

    prev = RawTransaction(version=1)
    prev.add_input("33" * 32, 1, sequence=0xFFFFFFFF)
    prev.add_output(20_000, "0014" + "cd" * 20)
    prev.add_output(70_000, script)

    psbt = PSBT.from_transaction(_spending_tx(prev.txid, vout=1))
    psbt.inputs[0].non_witness_utxo = prev.serialize()
    psbt.inputs[0].bip32_derivations[pubkey] = KeyOrigin(root.fingerprint, BIP44_PATH)

    signatures = SigningEngine().sign_psbt(ABANDON, psbt)
    digest = legacy_sighash(psbt.tx, 0, bytes.fromhex(script))
    assert PublicKey(pubkey).verify(_der(signatures[0]), digest)


def test_non_witness_utxo_must_match_outpoint():
    root = _root()
    pubkey = root.derive_indexes(BIP44_PATH).public_key
    prev = RawTransaction(version=1)
    prev.add_input("33" * 32, 0)
    prev.add_output(70_000, "76a914" + hash160(pubkey).hex() + "88ac")

    psbt = PSBT.from_transaction(_spending_tx("44" * 32))
    psbt.inputs[0].non_witness_utxo = prev.serialize()
    psbt.inputs[0].bip32_derivations[pubkey] = KeyOrigin(root.fingerprint, BIP44_PATH)

    with pytest.raises(SigningError):
        SigningEngine().sign_psbt(ABANDON, psbt)


def test_signatures_follow_input_order():
    root = _root()
    first = root.derive_indexes(BIP84_PATH).public_key
    second_path = (84 + H, 0 + H, 0 + H, 0, 1)
    second = root.derive_indexes(second_path).public_key

    tx = RawTransaction()
    tx.add_input("55" * 32, 0)
    tx.add_input("66" * 32, 3)
    tx.add_output(10_000, "0014" + "ef" * 20)
    psbt = PSBT.from_transaction(tx)
    for inp, pubkey, path in ((psbt.inputs[0], first, BIP84_PATH), (psbt.inputs[1], second, second_path)):
        inp.witness_utxo = TransactionOutput(8_000, "0014" + hash160(pubkey).hex())
        inp.bip32_derivations[pubkey] = KeyOrigin(root.fingerprint, path)

    signatures = SigningEngine().sign_psbt(ABANDON, psbt)
    assert len(signatures) == 2
    digest = segwit_v0_sighash(psbt.tx, 1, bytes.fromhex("76a914" + hash160(second).hex() + "88ac"), 8_000)
    assert PublicKey(second).verify(_der(signatures[1]), digest)


def test_no_matching_fingerprint_fails():
    psbt, _ = _p2wpkh_psbt(fingerprint=b"\xde\xad\xbe\xef")
    with pytest.raises(SigningError, match="No inputs were signed"):
        SigningEngine().sign_psbt(ABANDON, psbt)


def test_mismatched_derivation_pubkey_fails():
    psbt, pubkey = _p2wpkh_psbt()
    origin = psbt.inputs[0].bip32_derivations.pop(pubkey)
    other = _root().derive_indexes(BIP44_PATH).public_key
    psbt.inputs[0].bip32_derivations[other] = origin
    with pytest.raises(SigningError):
        SigningEngine().sign_psbt(ABANDON, psbt)


def test_only_sighash_all_is_signed():
    psbt, _ = _p2wpkh_psbt()
    psbt.inputs[0].sighash_type = 0x83
    with pytest.raises(SigningError):
        SigningEngine().sign_psbt(ABANDON, psbt)


def test_psbt_is_logged_before_signing(caplog):
    psbt, _ = _p2wpkh_psbt()
    unsigned = psbt.to_base64()
    with caplog.at_level("WARNING", logger="blobvault.crypto.signing"):
        SigningEngine().sign_psbt(ABANDON, unsigned)
    assert unsigned in caplog.text
    assert ABANDON not in caplog.text


def test_sign_p2wpkh_input_with_full_previous_transaction():
    root = _root()
    pubkey = root.derive_indexes(BIP84_PATH).public_key
    script = "0014" + hash160(pubkey).hex()

    prev = RawTransaction(version=2)
    prev.add_input("77" * 32, 0)
    prev.add_output(5_000, "0014" + "aa" * 20)
    prev.add_output(120_000, script)

    psbt = PSBT.from_transaction(_spending_tx(prev.txid, vout=1))
    psbt.inputs[0].witness_utxo = TransactionOutput(120_000, script)
    psbt.inputs[0].non_witness_utxo = prev.serialize()
    psbt.inputs[0].bip32_derivations[pubkey] = KeyOrigin(root.fingerprint, BIP84_PATH)

    signatures = SigningEngine().sign_psbt(ABANDON, psbt)
    script_code = bytes.fromhex("76a914" + hash160(pubkey).hex() + "88ac")
    digest = segwit_v0_sighash(psbt.tx, 0, script_code, 120_000)
    assert PublicKey(pubkey).verify(_der(signatures[0]), digest)
