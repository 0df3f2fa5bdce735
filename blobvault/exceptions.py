"""blobvault exceptions hierarchy."""

import json
from enum import Enum
from typing import Any, Optional

__all__ = [
    "ErrorCode",
    "BlobVaultError",
    "PasskeyError",
    "BlobWriteError",
    "BlobReadError",
    "PrfOutputError",
    "SecretLeakError",
    "CodecError",
    "InvalidSecretError",
    "UnsupportedVersionError",
    "CryptoError",
    "InvalidPathError",
    "UnsupportedCoinError",
    "SigningError",
    "ValidationError",
    "ProviderError",
    "NetworkError",
    "APIError",
    "TimeoutError",
    "LegacyBlobWarning",
]


class ErrorCode(str, Enum):
    """Machine-checkable error kinds."""
    INVALID_BROWSER = "INVALID_BROWSER"
    INVALID_DEVICE = "INVALID_DEVICE"
    INVALID_SUBMISSION = "INVALID_SUBMISSION"
    INCORRECT_STATE = "INCORRECT_STATE"
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    DUPLICATE = "DUPLICATE"
    FAILED_READ = "UNABLE_TO_READ"
    FAILED_WRITE = "UNABLE_TO_WRITE"
    USER_EXITED = "USER_EXITED"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_ALLOWED = "NOT_ALLOWED"
    UNABLE_TO_CONNECT = "UNABLE_TO_CONNECT"
    UNSUPPORTED_VERSION = "UNSUPPORTED_VERSION"
    UNSUPPORTED_COIN = "UNSUPPORTED_COIN"
    INVALID_PATH = "INVALID_PATH"
    INVALID_SECRET = "INVALID_SECRET"
    UNKNOWN = "UNKNOWN"


class BlobVaultError(Exception):
    """Base exception for all blobvault errors."""

    default_code = ErrorCode.UNKNOWN

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        data: Optional[Any] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code if code is not None else self.default_code
        self.data = data

    def __str__(self) -> str:
        title = f"{self.code.value}: {self.message}"
        if self.data is not None:
            return f"{title}-{json.dumps(self.data, default=str)}"
        return title


class PasskeyError(BlobVaultError):
    """Raised when an authenticator ceremony fails."""
    pass


class BlobWriteError(PasskeyError):
    """Raised when the authenticator does not commit a large blob write."""
    default_code = ErrorCode.FAILED_WRITE


class BlobReadError(PasskeyError):
    """Raised when a large blob is missing or empty."""
    default_code = ErrorCode.FAILED_READ


class PrfOutputError(PasskeyError):
    """Raised when a PRF-capable credential returns no PRF output."""
    default_code = ErrorCode.FAILED_WRITE


class SecretLeakError(PasskeyError):
    """Raised when a sanitized response still carries secret extension data."""
    pass


class CodecError(BlobVaultError):
    """Raised when a blob cannot be encoded or decoded."""
    pass


class InvalidSecretError(CodecError):
    """Raised when a seed phrase fails checksum validation."""
    default_code = ErrorCode.INVALID_SECRET


class UnsupportedVersionError(CodecError):
    """Raised for blob versions this library does not implement."""
    default_code = ErrorCode.UNSUPPORTED_VERSION


class CryptoError(BlobVaultError):
    """Raised when cryptographic operation fails."""
    pass


class InvalidPathError(CryptoError):
    """Raised when a derivation path is incomplete or out of range."""
    default_code = ErrorCode.INVALID_PATH


class UnsupportedCoinError(CryptoError):
    """Raised for coin identifiers the signing engine does not handle."""
    default_code = ErrorCode.UNSUPPORTED_COIN


class SigningError(CryptoError):
    """Raised when a payload cannot be signed."""
    pass


class ValidationError(BlobVaultError):
    """Raised when validation fails."""
    default_code = ErrorCode.INVALID_SUBMISSION


class ProviderError(BlobVaultError):
    """Raised when provider encounters an error."""
    default_code = ErrorCode.UNABLE_TO_CONNECT


class NetworkError(ProviderError):
    """Raised when network communication fails."""
    pass


class APIError(ProviderError):
    """Raised when API returns an error response."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        data: Optional[Any] = None
    ) -> None:
        super().__init__(message, data=data)
        self.status = status


class TimeoutError(NetworkError):
    """Raised when operation times out."""
    pass


class LegacyBlobWarning(UserWarning):
    """Emitted when a blob predates version encoding."""
    pass
