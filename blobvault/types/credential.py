"""Credential ceremony type definitions."""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..constants import PUBLIC_KEY_CREDENTIAL_TYPE
from ..types.common import Base64Str

__all__ = [
    "RawAssertion",
    "RawAttestation",
    "CapabilityProfile",
    "SanitizedAuthenticationResponse",
]


@dataclass(frozen=True)
class RawAssertion:
    """Binary result of a get-assertion ceremony."""
    raw_id: bytes
    authenticator_data: bytes
    signature: bytes
    client_data_json: bytes
    client_extension_results: Mapping[str, Any] = field(default_factory=dict)
    user_handle: Optional[bytes] = None
    type: str = PUBLIC_KEY_CREDENTIAL_TYPE


@dataclass(frozen=True)
class RawAttestation:
    """Binary result of a create-credential ceremony."""
    raw_id: bytes
    client_data_json: bytes
    attestation_object: bytes
    client_extension_results: Mapping[str, Any] = field(default_factory=dict)
    type: str = PUBLIC_KEY_CREDENTIAL_TYPE


@dataclass(frozen=True)
class CapabilityProfile:
    """What an authenticator claims to support."""
    large_blob_supported: bool = False
    has_large_blob: bool = False
    prf_supported: bool = False
    prf_salt: Optional[Base64Str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CapabilityProfile":
        """Build from the server's camelCase JSON."""
        return cls(
            large_blob_supported=bool(data.get("largeBlobSupported", False)),
            has_large_blob=bool(data.get("hasLargeBlob", False)),
            prf_supported=bool(data.get("prfSupported", False)),
            prf_salt=data.get("prfSalt"),
        )


@dataclass(frozen=True)
class SanitizedAuthenticationResponse:
    """
    Output of the response sanitizer.

    Only ``sanitized_authentication_response`` may be sent to a server;
    ``large_blob`` and ``prf`` stay on the client.
    """
    sanitized_authentication_response: dict[str, Any]
    large_blob: Optional[str] = None
    prf: Optional[Base64Str] = None

    def __repr__(self) -> str:
        return (
            "SanitizedAuthenticationResponse("
            f"id={self.sanitized_authentication_response.get('id')!r}, "
            f"large_blob={'<redacted>' if self.large_blob else None}, "
            f"prf={'<redacted>' if self.prf else None})"
        )
