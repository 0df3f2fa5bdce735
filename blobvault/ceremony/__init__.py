"""Authenticator ceremonies and response sanitizing."""

from ..ceremony.adapter import (
    CeremonyAdapter,
    encode_assertion_response,
    encode_attestation_response,
    normalize_credential_id,
)
from ..ceremony.base import CredentialAPI, CredentialAPIError
from ..ceremony.errors import classify_ceremony_error
from ..ceremony.sanitizer import sanitize_authentication_response

__all__ = [
    "CeremonyAdapter",
    "CredentialAPI",
    "CredentialAPIError",
    "classify_ceremony_error",
    "encode_assertion_response",
    "encode_attestation_response",
    "normalize_credential_id",
    "sanitize_authentication_response",
]
