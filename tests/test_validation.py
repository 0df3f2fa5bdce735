import pytest

from blobvault.exceptions import ErrorCode, InvalidPathError, ValidationError
from blobvault.utils import validation as v


def test_private_key_validation():
    key = "00" * 31 + "01"
    assert v.is_valid_private_key(key)
    assert v.validate_private_key("0x" + key) == bytes.fromhex(key)
    assert not v.is_valid_private_key("00" * 32)
    assert not v.is_valid_private_key(v.CURVE_ORDER.to_bytes(32, "big"))
    assert not v.is_valid_private_key("zz" * 32)
    with pytest.raises(ValidationError):
        v.validate_private_key(b"\x01" * 31)


def test_public_key_validation():
    assert v.is_valid_public_key("02" + "11" * 32)
    assert v.is_valid_public_key("04" + "11" * 64)
    assert not v.is_valid_public_key("05" + "11" * 32)
    assert not v.is_valid_public_key("04" + "11" * 32)


def test_path_index_validation():
    assert v.validate_path_index(0, "account") == 0
    assert v.validate_path_index(2**31 - 1, "account") == 2**31 - 1

    for bad in (None, -1, 2**31, True, "0", 1.0):
        with pytest.raises(InvalidPathError) as exc_info:
            v.validate_path_index(bad, "account")
        assert exc_info.value.code is ErrorCode.INVALID_PATH


def test_eth_address_validation():
    address = "0x9858EfFD232B4033E47d90003D41EC34EcaEda94"
    assert v.is_valid_eth_address(address)
    assert v.validate_eth_address(address.lower()) == address.lower()
    with pytest.raises(ValidationError):
        v.validate_eth_address("0x1234")
    with pytest.raises(ValidationError):
        v.validate_eth_address(None)


def test_challenge_validation():
    assert v.validate_challenge("dGVzdA") == "dGVzdA"
    assert v.validate_challenge("dGVzdA==") == "dGVzdA=="
    with pytest.raises(ValidationError):
        v.validate_challenge("")
    with pytest.raises(ValidationError):
        v.validate_challenge("not a challenge")
