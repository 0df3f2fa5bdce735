"""BIP-174 (version 0) partially signed Bitcoin transactions."""

import base64
import binascii
import struct
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from ..exceptions import ValidationError
from ..types.transaction import RawTransaction, TransactionOutput
from ..utils.encoding import decode_varint, encode_varint, hex_to_bytes

__all__ = ["KeyOrigin", "PSBTInput", "PSBTOutput", "PSBT"]

PSBT_MAGIC = b"psbt\xff"

# Global types
PSBT_GLOBAL_UNSIGNED_TX = 0x00

# Input types
PSBT_IN_NON_WITNESS_UTXO = 0x00
PSBT_IN_WITNESS_UTXO = 0x01
PSBT_IN_PARTIAL_SIG = 0x02
PSBT_IN_SIGHASH_TYPE = 0x03
PSBT_IN_REDEEM_SCRIPT = 0x04
PSBT_IN_WITNESS_SCRIPT = 0x05
PSBT_IN_BIP32_DERIVATION = 0x06


@dataclass(frozen=True)
class KeyOrigin:
    """Master key fingerprint plus derivation path."""
    fingerprint: bytes
    path: Tuple[int, ...]

    @classmethod
    def parse(cls, value: bytes) -> "KeyOrigin":
        if len(value) < 4 or len(value) % 4:
            raise ValidationError("Invalid BIP32 derivation value length")
        path = tuple(
            struct.unpack_from("<I", value, offset)[0]
            for offset in range(4, len(value), 4)
        )
        return cls(fingerprint=value[:4], path=path)

    def serialize(self) -> bytes:
        return self.fingerprint + b"".join(struct.pack("<I", i) for i in self.path)


@dataclass
class PSBTInput:
    """Per-input map."""
    non_witness_utxo: Optional[bytes] = None
    witness_utxo: Optional[TransactionOutput] = None
    partial_sigs: Dict[bytes, bytes] = field(default_factory=dict)
    sighash_type: Optional[int] = None
    redeem_script: Optional[bytes] = None
    witness_script: Optional[bytes] = None
    bip32_derivations: Dict[bytes, KeyOrigin] = field(default_factory=dict)
    unknown: Dict[bytes, bytes] = field(default_factory=dict)

    @classmethod
    def parse(cls, pairs: List[Tuple[bytes, bytes]]) -> "PSBTInput":
        inp = cls()
        for key, value in pairs:
            key_type, key_data = key[0], key[1:]
            if key_type == PSBT_IN_NON_WITNESS_UTXO and not key_data:
                inp.non_witness_utxo = value
            elif key_type == PSBT_IN_WITNESS_UTXO and not key_data:
                output, end = TransactionOutput.parse(value)
                if end != len(value):
                    raise ValidationError("Trailing bytes in witness UTXO")
                inp.witness_utxo = output
            elif key_type == PSBT_IN_PARTIAL_SIG:
                inp.partial_sigs[key_data] = value
            elif key_type == PSBT_IN_SIGHASH_TYPE and not key_data:
                inp.sighash_type = struct.unpack("<I", value)[0]
            elif key_type == PSBT_IN_REDEEM_SCRIPT and not key_data:
                inp.redeem_script = value
            elif key_type == PSBT_IN_WITNESS_SCRIPT and not key_data:
                inp.witness_script = value
            elif key_type == PSBT_IN_BIP32_DERIVATION:
                inp.bip32_derivations[key_data] = KeyOrigin.parse(value)
            else:
                inp.unknown[key] = value
        return inp

    def serialize(self) -> bytes:
        s = bytearray()
        if self.non_witness_utxo is not None:
            s.extend(_serialize_kv(bytes([PSBT_IN_NON_WITNESS_UTXO]), self.non_witness_utxo))
        if self.witness_utxo is not None:
            s.extend(_serialize_kv(bytes([PSBT_IN_WITNESS_UTXO]), self.witness_utxo.serialize()))
        for pubkey, sig in self.partial_sigs.items():
            s.extend(_serialize_kv(bytes([PSBT_IN_PARTIAL_SIG]) + pubkey, sig))
        if self.sighash_type is not None:
            s.extend(_serialize_kv(bytes([PSBT_IN_SIGHASH_TYPE]), struct.pack("<I", self.sighash_type)))
        if self.redeem_script is not None:
            s.extend(_serialize_kv(bytes([PSBT_IN_REDEEM_SCRIPT]), self.redeem_script))
        if self.witness_script is not None:
            s.extend(_serialize_kv(bytes([PSBT_IN_WITNESS_SCRIPT]), self.witness_script))
        for pubkey, origin in self.bip32_derivations.items():
            s.extend(_serialize_kv(bytes([PSBT_IN_BIP32_DERIVATION]) + pubkey, origin.serialize()))
        for key, value in self.unknown.items():
            s.extend(_serialize_kv(key, value))
        s.append(0x00)
        return bytes(s)


@dataclass
class PSBTOutput:
    """Per-output map; kept verbatim since signing does not read it."""
    fields: Dict[bytes, bytes] = field(default_factory=dict)

    def serialize(self) -> bytes:
        s = bytearray()
        for key, value in self.fields.items():
            s.extend(_serialize_kv(key, value))
        s.append(0x00)
        return bytes(s)


@dataclass
class PSBT:
    """A version 0 PSBT."""
    tx: RawTransaction
    inputs: List[PSBTInput] = field(default_factory=list)
    outputs: List[PSBTOutput] = field(default_factory=list)
    unknown_globals: Dict[bytes, bytes] = field(default_factory=dict)

    @classmethod
    def from_transaction(cls, tx: RawTransaction) -> "PSBT":
        """Wrap an unsigned transaction with empty maps."""
        return cls(
            tx=tx,
            inputs=[PSBTInput() for _ in tx.inputs],
            outputs=[PSBTOutput() for _ in tx.outputs],
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "PSBT":
        """
        Parse a binary PSBT.

        Raises:
            ValidationError: If the PSBT is malformed
        """
        if data[:5] != PSBT_MAGIC:
            raise ValidationError("Not a valid BIP-174 PSBT (bad magic)")

        try:
            reader = _MapReader(data, len(PSBT_MAGIC))

            tx: Optional[RawTransaction] = None
            unknown_globals: Dict[bytes, bytes] = {}
            for key, value in reader.read_map():
                if key == bytes([PSBT_GLOBAL_UNSIGNED_TX]):
                    tx = RawTransaction.from_bytes(value)
                else:
                    unknown_globals[key] = value

            if tx is None:
                raise ValidationError("PSBT is missing the unsigned transaction")
            if any(inp.script_sig for inp in tx.inputs):
                raise ValidationError("Unsigned transaction must have empty scriptSigs")

            inputs = [PSBTInput.parse(list(reader.read_map())) for _ in tx.inputs]
            outputs = [PSBTOutput(dict(reader.read_map())) for _ in tx.outputs]
        except (IndexError, struct.error) as e:
            raise ValidationError(f"Truncated PSBT: {e}") from e

        if reader.offset != len(data):
            raise ValidationError("Trailing bytes after PSBT")

        return cls(tx=tx, inputs=inputs, outputs=outputs, unknown_globals=unknown_globals)

    @classmethod
    def from_hex(cls, value: str) -> "PSBT":
        return cls.from_bytes(hex_to_bytes(value))

    @classmethod
    def from_base64(cls, value: str) -> "PSBT":
        try:
            return cls.from_bytes(base64.b64decode(value, validate=True))
        except binascii.Error as e:
            raise ValidationError(f"Invalid base64 PSBT: {e}") from e

    @classmethod
    def parse(cls, value: str) -> "PSBT":
        """Accept hex or base64 text."""
        value = value.strip()
        if value.lower().startswith(PSBT_MAGIC.hex()):
            return cls.from_hex(value)
        return cls.from_base64(value)

    def serialize(self) -> bytes:
        s = bytearray(PSBT_MAGIC)
        s.extend(_serialize_kv(bytes([PSBT_GLOBAL_UNSIGNED_TX]), self.tx.serialize()))
        for key, value in self.unknown_globals.items():
            s.extend(_serialize_kv(key, value))
        s.append(0x00)
        for inp in self.inputs:
            s.extend(inp.serialize())
        for out in self.outputs:
            s.extend(out.serialize())
        return bytes(s)

    def to_hex(self) -> str:
        return self.serialize().hex()

    def to_base64(self) -> str:
        return base64.b64encode(self.serialize()).decode("ascii")


class _MapReader:
    """Sequential reader over PSBT key-value maps."""

    def __init__(self, data: bytes, offset: int) -> None:
        self.data = data
        self.offset = offset

    def _read_bytes(self) -> bytes:
        length, self.offset = decode_varint(self.data, self.offset)
        chunk = self.data[self.offset:self.offset + length]
        if len(chunk) != length:
            raise ValidationError("Truncated PSBT field")
        self.offset += length
        return chunk

    def read_map(self) -> Iterator[Tuple[bytes, bytes]]:
        seen = set()
        while True:
            key = self._read_bytes()
            if not key:
                return
            if key in seen:
                raise ValidationError(f"Duplicate PSBT key: {key.hex()}")
            seen.add(key)
            yield key, self._read_bytes()


def _serialize_kv(key: bytes, value: bytes) -> bytes:
    return encode_varint(len(key)) + key + encode_varint(len(value)) + value
