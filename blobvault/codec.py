"""
Versioned large blob codec.

A blob is ``<base64(utf8(seed phrase))><delimiter><version>``.  The
base64 step is a transport encoding, not encryption; the authenticator
is what protects the blob.

If the way seed phrases are generated or encoded ever changes, add a new
:class:`~blobvault.constants.BlobVersion` and a branch in both
:meth:`BlobCodec.encode` and :meth:`BlobCodec.unwrap`, so that devices
written under the old scheme stay readable and can be told apart.
"""

import logging
import warnings
from typing import NamedTuple, Optional, Union

from .config import CodecConfig
from .constants import BlobVersion
from .crypto.bip39 import validate_mnemonic
from .exceptions import (
    InvalidSecretError,
    LegacyBlobWarning,
    UnsupportedVersionError,
    ValidationError,
)
from .utils.encoding import base64_to_utf8, utf8_to_base64

__all__ = ["DecodedBlob", "BlobCodec"]

logger = logging.getLogger(__name__)


class DecodedBlob(NamedTuple):
    seed_phrase: str
    # None for blobs written before version encoding
    version: Optional[BlobVersion]


class BlobCodec:
    """Encodes seed phrases for large blob storage and decodes them back."""

    def __init__(self, config: Optional[CodecConfig] = None) -> None:
        self.config = config or CodecConfig()

    def encode(
        self,
        seed_phrase: str,
        version: Optional[Union[BlobVersion, str]] = None
    ) -> str:
        """
        Encode a seed phrase as a versioned blob.

        Args:
            seed_phrase: BIP39 mnemonic
            version: Blob version, defaults to the configured current one

        Raises:
            InvalidSecretError: If the seed phrase fails validation
            UnsupportedVersionError: If ``version`` is not implemented
        """
        if not validate_mnemonic(seed_phrase, self.config.language):
            raise InvalidSecretError("Invalid seed phrase")

        version = self._parse_version(version or self.config.current_version)

        if version is BlobVersion.V1:
            return f"{utf8_to_base64(seed_phrase)}{self.config.delimiter}{version.value}"

        raise UnsupportedVersionError(
            "Unsupported seed phrase version", data={"version": version.value}
        )

    def unwrap(self, blob: str) -> DecodedBlob:
        """
        Undo the transport encoding without validating the phrase.

        A blob that is itself a valid mnemonic predates versioning; it is
        returned as-is with no version, and a :class:`LegacyBlobWarning`
        is issued.

        Raises:
            UnsupportedVersionError: If the version tag is unknown or missing
            InvalidSecretError: If the payload is not valid base64 UTF-8
        """
        if validate_mnemonic(blob, self.config.language):
            logger.warning(
                "Seed phrase is not version encoded. This device may not be "
                "trackable for fixes to its seed generation scheme."
            )
            warnings.warn(
                "Decoded a legacy unversioned blob", LegacyBlobWarning, stacklevel=2
            )
            return DecodedBlob(blob, None)

        payload, delimiter, tag = blob.rpartition(self.config.delimiter)
        if not delimiter:
            raise UnsupportedVersionError("Blob has no version tag")

        version = self._parse_version(tag)

        if version is BlobVersion.V1:
            try:
                seed_phrase = base64_to_utf8(payload)
            except ValidationError as e:
                raise InvalidSecretError("Blob payload is not valid base64") from e
            return DecodedBlob(seed_phrase, version)

        raise UnsupportedVersionError(
            "Unsupported seed phrase version", data={"version": version.value}
        )

    def decode(self, blob: str) -> DecodedBlob:
        """
        Decode a blob read from an authenticator.

        Raises:
            UnsupportedVersionError: If the version tag is unknown or missing
            InvalidSecretError: If the payload is not a valid seed phrase
        """
        decoded = self.unwrap(blob)
        if decoded.version is not None and not validate_mnemonic(
            decoded.seed_phrase, self.config.language
        ):
            raise InvalidSecretError(
                "Blob did not decode to a valid seed phrase",
                data={"version": decoded.version.value},
            )
        return decoded

    @staticmethod
    def _parse_version(value: Union[BlobVersion, str]) -> BlobVersion:
        try:
            return BlobVersion(value)
        except ValueError:
            # Only the tag is echoed back, never the payload.
            raise UnsupportedVersionError(
                "Unsupported seed phrase version", data={"version": str(value)[:32]}
            ) from None
