"""Type definitions for blobvault."""

# Common types
from ..types.common import (
    HexStr,
    Base64Str,
    CredentialId,
    TxId,
    ScriptPubKey,
    PrivateKeyBytes,
    PublicKeyBytes,
    EthAddress,
    JSONDict,
)

# Ceremony types
from ..types.credential import (
    RawAssertion,
    RawAttestation,
    CapabilityProfile,
    SanitizedAuthenticationResponse,
)

# Transaction types
from ..types.transaction import (
    SigHashType,
    OutPoint,
    TransactionInput,
    TransactionOutput,
    RawTransaction,
    SafeOperation,
    ToSign,
)

__all__ = [
    # Common
    "HexStr",
    "Base64Str",
    "CredentialId",
    "TxId",
    "ScriptPubKey",
    "PrivateKeyBytes",
    "PublicKeyBytes",
    "EthAddress",
    "JSONDict",

    # Ceremony
    "RawAssertion",
    "RawAttestation",
    "CapabilityProfile",
    "SanitizedAuthenticationResponse",

    # Transaction
    "SigHashType",
    "OutPoint",
    "TransactionInput",
    "TransactionOutput",
    "RawTransaction",
    "SafeOperation",
    "ToSign",
]
