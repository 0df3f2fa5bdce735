"""Removal of secret extension outputs before a response leaves the client."""

import copy
import logging
from typing import Any, Mapping, Optional, Union

from ..exceptions import BlobReadError, PrfOutputError, SecretLeakError, ValidationError
from ..types.common import Base64Str
from ..types.credential import CapabilityProfile, SanitizedAuthenticationResponse
from ..utils.encoding import bytes_to_base64, decode_binary_value

__all__ = ["SECRET_EXTENSIONS", "sanitize_authentication_response"]

logger = logging.getLogger(__name__)

# Extension outputs that carry user key material.
SECRET_EXTENSIONS = ("prf", "largeBlob")


def _large_blob_bytes(results: Mapping[str, Any]) -> Optional[Any]:
    large_blob = results.get("largeBlob")
    if isinstance(large_blob, Mapping):
        return large_blob.get("blob")
    return None


def _prf_first(results: Mapping[str, Any]) -> Optional[Any]:
    prf = results.get("prf")
    if isinstance(prf, Mapping) and isinstance(prf.get("results"), Mapping):
        return prf["results"].get("first")
    return None


def sanitize_authentication_response(
    response: Mapping[str, Any],
    support: Optional[Union[CapabilityProfile, Mapping[str, Any]]] = None,
) -> SanitizedAuthenticationResponse:
    """
    Split an authentication response into a server-safe copy and local secrets.

    The copy has ``clientExtensionResults["prf"]`` and
    ``clientExtensionResults["largeBlob"]`` set to None, so the server can
    tell redaction happened.  The large blob is returned locally as text
    and the PRF output as base64.  ``response`` is not modified.

    Args:
        response: Authentication response JSON
        support: Capabilities the credential is known to have

    Raises:
        BlobReadError: If the credential holds a large blob but none came back
        PrfOutputError: If the credential supports PRF but no output came back
        SecretLeakError: If a secret field survived redaction
    """
    if isinstance(support, Mapping):
        support = CapabilityProfile.from_dict(support)

    results = response.get("clientExtensionResults") or {}
    blob = _large_blob_bytes(results)
    prf_first = _prf_first(results)

    if support is not None and support.has_large_blob and blob is None:
        raise BlobReadError("Failed to read large blob from large-blob-holding credential")

    if support is not None and support.prf_supported and prf_first is None:
        raise PrfOutputError("Failed to read PRF from PRF-holding credential")

    # Secret sub-results are never copied, only replaced.
    sanitized_results = {
        key: copy.deepcopy(value)
        for key, value in results.items()
        if key not in SECRET_EXTENSIONS
    }
    for key in SECRET_EXTENSIONS:
        sanitized_results[key] = None

    sanitized = {
        key: copy.deepcopy(value)
        for key, value in response.items()
        if key != "clientExtensionResults"
    }
    sanitized["clientExtensionResults"] = sanitized_results

    for key in SECRET_EXTENSIONS:
        if sanitized["clientExtensionResults"].get(key) is not None:
            raise SecretLeakError(f"clientExtensionResults {key} cannot leak to server")

    large_blob = None
    if blob is not None:
        try:
            large_blob = decode_binary_value(blob).decode("utf-8")
        except (ValidationError, UnicodeDecodeError) as e:
            raise BlobReadError("Large blob is not readable text") from e

    prf = None
    if prf_first is not None:
        prf = Base64Str(bytes_to_base64(decode_binary_value(prf_first)))

    logger.debug(
        f"Sanitized response {sanitized.get('id')}: "
        f"large_blob={'yes' if large_blob is not None else 'no'}, "
        f"prf={'yes' if prf is not None else 'no'}"
    )
    return SanitizedAuthenticationResponse(
        sanitized_authentication_response=sanitized,
        large_blob=large_blob,
        prf=prf,
    )
