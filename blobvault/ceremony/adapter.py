"""
Large blob reads and writes through an authenticator ceremony.

Server options arrive as WebAuthn JSON (binary fields as base64url or
base64 text).  They are re-encoded into a raw ``publicKey`` request with
the largeBlob extension attached, handed to the :class:`CredentialAPI`,
and the raw result is encoded back to JSON for the server.

Each call is exactly one ceremony.  Nothing is retried, since a retry
would prompt the user a second time.
"""

import base64
import logging
from typing import Any, Mapping, Optional

from ..ceremony.base import CredentialAPI
from ..ceremony.errors import classify_ceremony_error
from ..config import CeremonyConfig
from ..exceptions import (
    BlobReadError,
    BlobVaultError,
    BlobWriteError,
    ErrorCode,
    PasskeyError,
    ValidationError,
)
from ..types.common import CredentialId, JSONDict
from ..types.credential import RawAssertion, RawAttestation
from ..utils.encoding import bytes_to_base64url, decode_binary_value, normalize_base64
from ..utils.validation import validate_challenge

__all__ = [
    "CeremonyAdapter",
    "normalize_credential_id",
    "encode_assertion_response",
    "encode_attestation_response",
]

logger = logging.getLogger(__name__)


def normalize_credential_id(credential_id: str) -> CredentialId:
    """
    Canonicalize a credential id to padded standard base64.

    Clients hand ids over as base64 or base64url; ids are stored as
    base64, so both forms must map to the same value before comparing.

    Raises:
        ValidationError: If the id is not base64 in either alphabet
    """
    if not isinstance(credential_id, str):
        raise ValidationError("Credential id must be a string")
    return CredentialId(normalize_base64(credential_id))


def _id_bytes(value: str) -> bytes:
    return base64.b64decode(normalize_base64(value))


def _entry_id(entry: Any, where: str) -> str:
    if not isinstance(entry, Mapping) or entry.get("id") is None:
        raise ValidationError(f"{where} is missing an id")
    return entry["id"]


def _large_blob_output(assertion: RawAssertion, error: type) -> Optional[Mapping[str, Any]]:
    large_blob = assertion.client_extension_results.get("largeBlob")
    if large_blob is not None and not isinstance(large_blob, Mapping):
        raise error(f"Malformed largeBlob output: {type(large_blob).__name__}")
    return large_blob


def _encode_extension_value(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes_to_base64url(bytes(value))
    if isinstance(value, Mapping):
        return {key: _encode_extension_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode_extension_value(item) for item in value]
    return value


def encode_assertion_response(assertion: RawAssertion) -> dict[str, Any]:
    """Authentication response JSON with binary fields as base64url."""
    credential_id = bytes_to_base64url(assertion.raw_id)
    response = {
        "clientDataJSON": bytes_to_base64url(assertion.client_data_json),
        "authenticatorData": bytes_to_base64url(assertion.authenticator_data),
        "signature": bytes_to_base64url(assertion.signature),
    }
    if assertion.user_handle is not None:
        response["userHandle"] = bytes_to_base64url(assertion.user_handle)

    return {
        "id": credential_id,
        "rawId": credential_id,
        "response": response,
        "clientExtensionResults": _encode_extension_value(assertion.client_extension_results),
        "type": assertion.type,
    }


def encode_attestation_response(attestation: Optional[RawAttestation]) -> dict[str, Any]:
    """
    Registration response JSON with binary fields as base64url.

    Raises:
        PasskeyError: USER_EXITED if no credential was created
    """
    if attestation is None:
        raise PasskeyError("Invalid registration response", ErrorCode.USER_EXITED)

    credential_id = bytes_to_base64url(attestation.raw_id)
    return {
        "id": credential_id,
        "rawId": credential_id,
        "response": {
            "clientDataJSON": bytes_to_base64url(attestation.client_data_json),
            "attestationObject": bytes_to_base64url(attestation.attestation_object),
        },
        "clientExtensionResults": _encode_extension_value(attestation.client_extension_results),
        "type": attestation.type,
    }


class CeremonyAdapter:
    """Runs single ceremonies against a credential API."""

    def __init__(self, api: CredentialAPI, config: Optional[CeremonyConfig] = None) -> None:
        self.api = api
        self.config = config or CeremonyConfig()
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def _assertion_request(
        self,
        options: JSONDict,
        allow_credentials: Optional[list[dict[str, Any]]],
        extensions: dict[str, Any],
    ) -> dict[str, Any]:
        public_key: dict[str, Any] = {
            "challenge": _id_bytes(validate_challenge(options.get("challenge"))),
            "timeout": self.config.timeout_ms,
            "extensions": extensions,
        }
        if allow_credentials is not None:
            public_key["allowCredentials"] = allow_credentials
        for key in ("rpId", "userVerification"):
            if options.get(key) is not None:
                public_key[key] = options[key]
        return public_key

    async def _get_assertion(self, public_key: dict[str, Any]) -> RawAssertion:
        try:
            assertion = await self.api.get_assertion(public_key)
        except BlobVaultError:
            raise
        except Exception as e:
            raise classify_ceremony_error(e) from e

        if assertion is None:
            raise PasskeyError("No credential was returned", ErrorCode.USER_EXITED)
        return assertion

    async def write_blob(
        self,
        options: JSONDict,
        credential_id: str,
        blob: str,
    ) -> dict[str, Any]:
        """
        Write ``blob`` to the large blob of one credential.

        Args:
            options: Authentication options from the server
            credential_id: Credential to write to, base64 or base64url
            blob: Encoded blob from :class:`~blobvault.codec.BlobCodec`

        Returns:
            Authentication response JSON for the server (unsanitized)

        Raises:
            BlobWriteError: If the authenticator did not report the write
            PasskeyError: If the ceremony itself failed
        """
        allow = [{
            "type": self.config.credential_type,
            "id": _id_bytes(normalize_credential_id(credential_id)),
        }]
        public_key = self._assertion_request(
            options, allow, {"largeBlob": {"write": blob.encode("utf-8")}}
        )

        self._logger.debug(f"Requesting large blob write for credential {credential_id}")
        assertion = await self._get_assertion(public_key)

        large_blob = _large_blob_output(assertion, BlobWriteError) or {}
        if large_blob.get("written") is not True:
            raise BlobWriteError("Large blob was not written")

        self._logger.info("Large blob written")
        return encode_assertion_response(assertion)

    async def read_blob(self, options: JSONDict) -> str:
        """
        Read the large blob of whichever allowed credential the user picks.

        Returns:
            Blob text

        Raises:
            BlobReadError: If no blob came back, or it was empty
            PasskeyError: If the ceremony itself failed
        """
        allow = None
        if options.get("allowCredentials") is not None:
            allow = [
                {
                    "type": self.config.credential_type,
                    "id": _id_bytes(normalize_credential_id(_entry_id(credential, "allowCredentials"))),
                }
                for credential in options["allowCredentials"]
            ]
        public_key = self._assertion_request(options, allow, {"largeBlob": {"read": True}})

        self._logger.debug(
            f"Requesting large blob read, {len(allow) if allow is not None else 'any'} credential(s)"
        )
        assertion = await self._get_assertion(public_key)

        large_blob = _large_blob_output(assertion, BlobReadError)
        if large_blob is None:
            raise BlobReadError("Unable to read large blob")
        if large_blob.get("blob") is None:
            raise BlobReadError("Large blob empty")

        try:
            blob = decode_binary_value(large_blob["blob"]).decode("utf-8")
        except (ValidationError, UnicodeDecodeError) as e:
            raise BlobReadError("Large blob is not readable text") from e

        if blob == "":
            raise BlobReadError("Large blob decoded to empty string")

        self._logger.info("Large blob read")
        return blob

    async def create_credential(self, options: JSONDict) -> dict[str, Any]:
        """
        Register a new credential from server creation options.

        Returns:
            Registration response JSON for the server

        Raises:
            PasskeyError: USER_EXITED if no credential was created, or
                the classified platform failure
        """
        public_key: dict[str, Any] = dict(options)
        public_key["challenge"] = _id_bytes(validate_challenge(options.get("challenge")))
        user = options.get("user")
        user_id = _id_bytes(_entry_id(user, "user"))
        public_key["user"] = {**user, "id": user_id}
        if options.get("excludeCredentials") is not None:
            public_key["excludeCredentials"] = [
                {**credential, "id": _id_bytes(_entry_id(credential, "excludeCredentials"))}
                for credential in options["excludeCredentials"]
            ]
        public_key["authenticatorSelection"] = {
            **(options.get("authenticatorSelection") or {}),
            "userVerification": self.config.user_verification,
        }
        public_key["timeout"] = self.config.timeout_ms

        self._logger.debug(f"Requesting credential creation for rp {options.get('rp', {}).get('id')}")
        try:
            attestation = await self.api.create_credential(public_key)
        except BlobVaultError:
            raise
        except Exception as e:
            raise classify_ceremony_error(e) from e

        response = encode_attestation_response(attestation)
        self._logger.info(f"Registered credential {response['id']}")
        return response
