"""PSBT input signing with an HD root (BIP143 segwit v0 and legacy sighash)."""

import hashlib
import logging
import struct
from typing import Iterable, List, Optional, Tuple

from ..crypto.hd import HDNode
from ..crypto.psbt import PSBT, PSBTInput
from ..crypto.signature import sign_transaction
from ..exceptions import SigningError
from ..types.transaction import RawTransaction, SigHashType
from ..utils.encoding import double_sha256, encode_varint, hash160

__all__ = [
    "legacy_sighash",
    "segwit_v0_sighash",
    "sign_all_inputs_hd",
    "extract_signatures",
]

logger = logging.getLogger(__name__)


def _is_p2sh(script: bytes) -> bool:
    return len(script) == 23 and script[0] == 0xa9 and script[1] == 0x14 and script[22] == 0x87


def _is_p2wpkh(script: bytes) -> bool:
    return len(script) == 22 and script[0] == 0x00 and script[1] == 0x14


def _is_p2wsh(script: bytes) -> bool:
    return len(script) == 34 and script[0] == 0x00 and script[1] == 0x20


def _p2pkh_script(pubkey_hash: bytes) -> bytes:
    return b'\x76\xa9\x14' + pubkey_hash + b'\x88\xac'


def segwit_v0_sighash(
    tx: RawTransaction,
    input_index: int,
    script_code: bytes,
    amount: int,
    sighash_type: int = SigHashType.ALL
) -> bytes:
    """BIP143 digest for SIGHASH_ALL."""
    if sighash_type != SigHashType.ALL:
        raise SigningError(f"Unsupported sighash type: {sighash_type:#x}")

    txin = tx.inputs[input_index]
    preimage = b"".join((
        struct.pack("<i", tx.version),
        double_sha256(b"".join(inp.outpoint.serialize() for inp in tx.inputs)),
        double_sha256(b"".join(struct.pack("<I", inp.sequence) for inp in tx.inputs)),
        txin.outpoint.serialize(),
        encode_varint(len(script_code)),
        script_code,
        struct.pack("<q", amount),
        struct.pack("<I", txin.sequence),
        double_sha256(b"".join(out.serialize() for out in tx.outputs)),
        struct.pack("<I", tx.locktime),
        struct.pack("<I", sighash_type),
    ))
    return double_sha256(preimage)


def legacy_sighash(
    tx: RawTransaction,
    input_index: int,
    script_code: bytes,
    sighash_type: int = SigHashType.ALL
) -> bytes:
    """Pre-segwit digest for SIGHASH_ALL: every other scriptSig is emptied."""
    if sighash_type != SigHashType.ALL:
        raise SigningError(f"Unsupported sighash type: {sighash_type:#x}")

    script_sigs = [script_code if i == input_index else b"" for i in range(len(tx.inputs))]
    return double_sha256(tx.serialize(script_sigs) + struct.pack("<I", sighash_type))


def _spent_output(psbt: PSBT, index: int) -> Tuple[bytes, Optional[int]]:
    """Return (scriptPubKey, amount) of the output spent by input ``index``."""
    inp = psbt.inputs[index]
    txin = psbt.tx.inputs[index]

    if inp.non_witness_utxo is not None:
        prev = RawTransaction.from_bytes(inp.non_witness_utxo)
        if prev.txid != txin.outpoint.txid:
            raise SigningError(f"Input {index}: non-witness UTXO does not match outpoint")
        if txin.outpoint.vout >= len(prev.outputs):
            raise SigningError(f"Input {index}: outpoint index out of range")
        out = prev.outputs[txin.outpoint.vout]
        return bytes.fromhex(out.script_pubkey), out.value

    if inp.witness_utxo is not None:
        return bytes.fromhex(inp.witness_utxo.script_pubkey), inp.witness_utxo.value

    raise SigningError(f"Input {index}: missing UTXO information")


def _input_sighash(psbt: PSBT, index: int, pubkey: bytes) -> bytes:
    inp = psbt.inputs[index]
    sighash_type = SigHashType.ALL if inp.sighash_type is None else inp.sighash_type

    script, amount = _spent_output(psbt, index)

    if _is_p2sh(script):
        if inp.redeem_script is None:
            raise SigningError(f"Input {index}: P2SH input without redeem script")
        if hash160(inp.redeem_script) != script[2:22]:
            raise SigningError(f"Input {index}: redeem script does not match scriptPubKey")
        script = inp.redeem_script

    if _is_p2wpkh(script):
        if hash160(pubkey) != script[2:22]:
            raise SigningError(f"Input {index}: public key does not match P2WPKH program")
        return segwit_v0_sighash(psbt.tx, index, _p2pkh_script(script[2:22]), amount, sighash_type)

    if _is_p2wsh(script):
        if inp.witness_script is None:
            raise SigningError(f"Input {index}: P2WSH input without witness script")
        if hashlib.sha256(inp.witness_script).digest() != script[2:34]:
            raise SigningError(f"Input {index}: witness script does not match program")
        return segwit_v0_sighash(psbt.tx, index, inp.witness_script, amount, sighash_type)

    if inp.non_witness_utxo is None:
        raise SigningError(f"Input {index}: legacy input without non-witness UTXO")
    return legacy_sighash(psbt.tx, index, script, sighash_type)


def _sign_input_hd(psbt: PSBT, index: int, root: HDNode) -> List[bytes]:
    inp: PSBTInput = psbt.inputs[index]
    signed = []

    for pubkey, origin in inp.bip32_derivations.items():
        if origin.fingerprint != root.fingerprint:
            continue

        node = root.derive_indexes(origin.path)
        if node.public_key != pubkey:
            raise SigningError(
                f"Input {index}: derived key does not match BIP32 derivation",
                data={"pubkey": pubkey.hex()}
            )

        sighash = _input_sighash(psbt, index, pubkey)
        sighash_type = SigHashType.ALL if inp.sighash_type is None else inp.sighash_type
        inp.partial_sigs[pubkey] = sign_transaction(node.get_private_key(), sighash, sighash_type)
        signed.append(pubkey)

    return signed


def sign_all_inputs_hd(psbt: PSBT, root: HDNode) -> List[Tuple[int, bytes]]:
    """
    Sign every input whose BIP32 derivation names ``root``'s fingerprint.

    Partial signatures are added to ``psbt`` in place.  Inputs with no
    matching derivation are left alone.

    Returns:
        (input index, public key) for each signature made

    Raises:
        SigningError: If an input names this root but cannot be signed,
            or if no input was signed at all
    """
    if not root.is_private:
        raise SigningError("HD root has no private key")

    signed = []
    for index in range(len(psbt.inputs)):
        for pubkey in _sign_input_hd(psbt, index, root):
            signed.append((index, pubkey))

    if not signed:
        raise SigningError("No inputs were signed")

    logger.debug(f"Signed {len(signed)} input(s) of {len(psbt.inputs)}")
    return signed


def extract_signatures(psbt: PSBT, signed: Iterable[Tuple[int, bytes]]) -> List[str]:
    """Hex partial signatures for ``signed``, in input order."""
    return [
        psbt.inputs[index].partial_sigs[pubkey].hex()
        for index, pubkey in sorted(signed, key=lambda item: item[0])
    ]
