import warnings

import pytest

from blobvault.codec import BlobCodec, DecodedBlob
from blobvault.config import CodecConfig
from blobvault.constants import BlobVersion
from blobvault.crypto.bip39 import generate_mnemonic
from blobvault.exceptions import (
    ErrorCode,
    InvalidSecretError,
    LegacyBlobWarning,
    UnsupportedVersionError,
)
from blobvault.utils.encoding import utf8_to_base64

ABANDON = "abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon about"


def test_encode_v1_format():
    blob = BlobCodec().encode(ABANDON, BlobVersion.V1)
    assert blob == f"{utf8_to_base64(ABANDON)}.V1"
    assert ABANDON not in blob


def test_round_trip_generated_phrases():
    codec = BlobCodec()
    for strength in (128, 160, 192, 224, 256):
        seed_phrase = generate_mnemonic(strength)
        assert codec.decode(codec.encode(seed_phrase, BlobVersion.V1)) == (seed_phrase, BlobVersion.V1)


def test_decode_returns_named_fields():
    decoded = BlobCodec().decode(BlobCodec().encode(ABANDON))
    assert isinstance(decoded, DecodedBlob)
    assert decoded.seed_phrase == ABANDON
    assert decoded.version is BlobVersion.V1


def test_encode_rejects_invalid_seed_phrase():
    with pytest.raises(InvalidSecretError) as exc_info:
        BlobCodec().encode("correct horse battery staple")
    assert exc_info.value.code is ErrorCode.INVALID_SECRET


def test_encode_rejects_unknown_version():
    with pytest.raises(UnsupportedVersionError):
        BlobCodec().encode(ABANDON, "V2")


@pytest.mark.parametrize("tag", ["V2", "UNKNOWN_VERSION", "v1", "", "V1 "])
def test_decode_unknown_version_fails_closed(tag):
    blob = f"{utf8_to_base64(ABANDON)}.{tag}"
    with pytest.raises(UnsupportedVersionError) as exc_info:
        BlobCodec().decode(blob)
    assert exc_info.value.code is ErrorCode.UNSUPPORTED_VERSION
    assert ABANDON not in str(exc_info.value)


def test_decode_without_delimiter_fails():
    with pytest.raises(UnsupportedVersionError):
        BlobCodec().decode(utf8_to_base64(ABANDON))


def test_decode_splits_on_last_delimiter():
    with pytest.raises(InvalidSecretError):
        BlobCodec().decode("abc.def.V1")


def test_decode_rejects_bad_payload():
    with pytest.raises(InvalidSecretError):
        BlobCodec().decode("!!!!.V1")


def test_decode_rejects_payload_that_is_not_a_mnemonic():
    blob = f"{utf8_to_base64('correct horse battery staple')}.V1"
    with pytest.raises(InvalidSecretError):
        BlobCodec().decode(blob)


def test_unwrap_skips_mnemonic_validation():
    blob = f"{utf8_to_base64('correct horse battery staple')}.V1"
    assert BlobCodec().unwrap(blob) == ("correct horse battery staple", BlobVersion.V1)


def test_legacy_unversioned_blob_warns():
    with pytest.warns(LegacyBlobWarning):
        decoded = BlobCodec().decode(ABANDON)
    assert decoded == (ABANDON, None)


def test_versioned_blob_does_not_warn():
    blob = BlobCodec().encode(ABANDON)
    with warnings.catch_warnings():
        warnings.simplefilter("error", LegacyBlobWarning)
        BlobCodec().decode(blob)


def test_custom_delimiter():
    codec = BlobCodec(CodecConfig(delimiter="|"))
    blob = codec.encode(ABANDON)
    assert blob.endswith("|V1")
    assert codec.decode(blob) == (ABANDON, BlobVersion.V1)
