"""Common type definitions for blobvault."""

from typing import Any, Mapping, NewType

__all__ = [
    "HexStr",
    "Base64Str",
    "CredentialId",
    "TxId",
    "ScriptPubKey",
    "PrivateKeyBytes",
    "PublicKeyBytes",
    "EthAddress",
    "JSONDict",
]

# Basic types
HexStr = NewType("HexStr", str)
"""Hexadecimal string representation."""

Base64Str = NewType("Base64Str", str)
"""Standard, padded base64 text."""

CredentialId = NewType("CredentialId", str)
"""Credential id in canonical base64 form."""

# Bitcoin
TxId = NewType("TxId", str)
"""Transaction ID (hash)."""

ScriptPubKey = NewType("ScriptPubKey", str)
"""Script public key hex."""

# Crypto types
PrivateKeyBytes = NewType("PrivateKeyBytes", bytes)
"""32-byte private key."""

PublicKeyBytes = NewType("PublicKeyBytes", bytes)
"""33 or 65 byte public key."""

# Ethereum
EthAddress = NewType("EthAddress", str)
"""Checksummed 0x-prefixed address."""

JSONDict = Mapping[str, Any]
"""Server-side options or a response body."""
