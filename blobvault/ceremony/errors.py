"""Mapping of credential API failures to PasskeyError codes."""

import asyncio
import logging

from ..exceptions import BlobVaultError, ErrorCode, PasskeyError

__all__ = ["classify_ceremony_error"]

logger = logging.getLogger(__name__)

ERROR_NAME_CODES = {
    "NotAllowedError": ErrorCode.USER_EXITED,
    "AbortError": ErrorCode.USER_EXITED,
    "InvalidStateError": ErrorCode.DUPLICATE,
    "SecurityError": ErrorCode.INVALID_BROWSER,
    "NotSupportedError": ErrorCode.INVALID_DEVICE,
    "ConstraintError": ErrorCode.INVALID_DEVICE,
    "TimeoutError": ErrorCode.UNABLE_TO_CONNECT,
    "NetworkError": ErrorCode.UNABLE_TO_CONNECT,
}


def classify_ceremony_error(error: BaseException) -> BlobVaultError:
    """
    Turn a credential API failure into a typed error.

    Errors that are already typed pass through unchanged.
    """
    if isinstance(error, BlobVaultError):
        return error

    if isinstance(error, asyncio.TimeoutError):
        name = "TimeoutError"
    else:
        name = getattr(error, "name", None) or type(error).__name__

    code = ERROR_NAME_CODES.get(name, ErrorCode.UNKNOWN)
    logger.debug(f"Credential API failed with {name}, classified as {code.value}")
    return PasskeyError(str(error) or name, code, data={"name": name})
