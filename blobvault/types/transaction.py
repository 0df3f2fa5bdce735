"""Bitcoin transaction and Safe transaction types."""

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional, Sequence, Tuple, Union

from ..exceptions import ValidationError
from ..types.common import HexStr, ScriptPubKey, TxId
from ..utils.encoding import decode_varint, double_sha256, encode_varint

__all__ = [
    "SigHashType",
    "OutPoint",
    "TransactionInput",
    "TransactionOutput",
    "RawTransaction",
    "SafeOperation",
    "ToSign",
]


class SigHashType(IntEnum):
    """Base sighash modes; ``ANYONECANPAY`` is or-ed onto one of the others."""
    ALL = 0x01
    NONE = 0x02
    SINGLE = 0x03
    ANYONECANPAY = 0x80


@dataclass(frozen=True)
class OutPoint:
    """``txid:vout``, with the txid in display (big-endian) hex."""
    txid: TxId
    vout: int

    def serialize(self) -> bytes:
        return bytes.fromhex(self.txid)[::-1] + struct.pack("<I", self.vout)

    def __str__(self) -> str:
        return f"{self.txid}:{self.vout}"


@dataclass(frozen=True)
class TransactionInput:
    outpoint: OutPoint
    sequence: int = 0xFFFFFFFE
    script_sig: HexStr = HexStr("")

    def serialize(self, script_sig: Optional[bytes] = None) -> bytes:
        """Wire form; ``script_sig`` replaces the stored one when given."""
        script = bytes.fromhex(self.script_sig) if script_sig is None else script_sig
        return (
            self.outpoint.serialize()
            + encode_varint(len(script))
            + script
            + struct.pack("<I", self.sequence)
        )


@dataclass(frozen=True)
class TransactionOutput:
    value: int
    script_pubkey: ScriptPubKey

    def serialize(self) -> bytes:
        script = bytes.fromhex(self.script_pubkey)
        return struct.pack("<q", self.value) + encode_varint(len(script)) + script

    @classmethod
    def parse(cls, data: bytes, offset: int = 0) -> Tuple["TransactionOutput", int]:
        """Read one output at ``offset``; returns it and the offset after it."""
        value = struct.unpack_from("<q", data, offset)[0]
        script_len, offset = decode_varint(data, offset + 8)
        script = data[offset:offset + script_len]
        if len(script) != script_len:
            raise ValidationError("Truncated output script")
        return cls(value=value, script_pubkey=ScriptPubKey(script.hex())), offset + script_len


@dataclass
class RawTransaction:
    """
    A transaction without witnesses.

    This is the shape PSBT carries in its global map, and the shape the
    txid commits to.
    """

    version: int = 2
    locktime: int = 0
    inputs: List[TransactionInput] = field(default_factory=list)
    outputs: List[TransactionOutput] = field(default_factory=list)

    def add_input(
        self,
        txid: Union[TxId, str],
        vout: int,
        sequence: int = 0xFFFFFFFE,
        script_sig: Union[HexStr, str] = "",
    ) -> "RawTransaction":
        self.inputs.append(TransactionInput(OutPoint(TxId(txid), vout), sequence, HexStr(script_sig)))
        return self

    def add_output(self, value: int, script_pubkey: Union[ScriptPubKey, str]) -> "RawTransaction":
        self.outputs.append(TransactionOutput(value, ScriptPubKey(script_pubkey)))
        return self

    def serialize(self, script_sigs: Optional[Sequence[Optional[bytes]]] = None) -> bytes:
        """
        Legacy (non-witness) serialization.

        ``script_sigs``, if given, supplies one scriptSig per input in
        place of the stored ones, which is what the legacy sighash needs.
        """
        if script_sigs is None:
            script_sigs = [None] * len(self.inputs)
        parts = [struct.pack("<i", self.version), encode_varint(len(self.inputs))]
        parts.extend(inp.serialize(script) for inp, script in zip(self.inputs, script_sigs))
        parts.append(encode_varint(len(self.outputs)))
        parts.extend(out.serialize() for out in self.outputs)
        parts.append(struct.pack("<I", self.locktime))
        return b"".join(parts)

    @property
    def txid(self) -> TxId:
        return TxId(double_sha256(self.serialize())[::-1].hex())

    @classmethod
    def from_bytes(cls, data: bytes) -> "RawTransaction":
        """
        Parse a serialized transaction.

        Witness data, if present, is skipped; the returned object only
        describes the parts covered by the txid.

        Raises:
            ValidationError: If the transaction is malformed
        """
        try:
            tx, offset = cls._parse(data)
        except (IndexError, struct.error) as e:
            raise ValidationError(f"Malformed transaction: {e}") from e
        if offset != len(data):
            raise ValidationError("Trailing bytes after transaction")
        return tx

    @classmethod
    def _parse(cls, data: bytes) -> Tuple["RawTransaction", int]:
        version = struct.unpack_from("<i", data, 0)[0]
        offset = 4

        has_witness = data[offset] == 0x00 and data[offset + 1] == 0x01
        if has_witness:
            offset += 2

        tx = cls(version=version)
        n_in, offset = decode_varint(data, offset)
        for _ in range(n_in):
            txid = data[offset:offset + 32][::-1].hex()
            vout = struct.unpack_from("<I", data, offset + 32)[0]
            script_len, offset = decode_varint(data, offset + 36)
            script_sig = data[offset:offset + script_len].hex()
            offset += script_len
            sequence = struct.unpack_from("<I", data, offset)[0]
            offset += 4
            tx.add_input(txid, vout, sequence, script_sig)

        n_out, offset = decode_varint(data, offset)
        for _ in range(n_out):
            output, offset = TransactionOutput.parse(data, offset)
            tx.outputs.append(output)

        if has_witness:
            for _ in range(n_in):
                n_items, offset = decode_varint(data, offset)
                for _ in range(n_items):
                    item_len, offset = decode_varint(data, offset)
                    offset += item_len

        tx.locktime = struct.unpack_from("<I", data, offset)[0]
        return tx, offset + 4


class SafeOperation(IntEnum):
    """Safe transaction operation."""
    CALL = 0
    DELEGATE_CALL = 1


@dataclass(frozen=True)
class ToSign:
    """
    Safe multisig transaction parameters.

    ``nonce`` and ``safe_version`` are looked up from the Safe
    transaction service when left as None.
    """
    to: str
    value: int = 0
    data: HexStr = HexStr("0x")
    operation: SafeOperation = SafeOperation.CALL
    safe_tx_gas: int = 0
    base_gas: int = 0
    gas_price: int = 0
    gas_token: str = "0x0000000000000000000000000000000000000000"
    refund_receiver: str = "0x0000000000000000000000000000000000000000"
    nonce: Optional[int] = None
    safe_version: Optional[str] = None
