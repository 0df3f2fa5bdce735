"""Platform credential API interface."""

from abc import ABC, abstractmethod
from typing import Any, Optional

from ..types.credential import RawAssertion, RawAttestation

__all__ = ["CredentialAPI", "CredentialAPIError"]


class CredentialAPIError(Exception):
    """
    Failure reported by a credential API.

    ``name`` carries the DOMException-style name the platform used, for
    example ``NotAllowedError`` when the user dismissed the prompt.
    """

    def __init__(self, name: str, message: str = "") -> None:
        super().__init__(message or name)
        self.name = name


class CredentialAPI(ABC):
    """
    One authenticator, reached through the platform.

    Both methods take the ``publicKey`` request with binary fields as
    bytes, suspend until the user finishes or dismisses the prompt, and
    return None if no credential was produced.  Implementations accept
    one ceremony at a time.
    """

    @abstractmethod
    async def get_assertion(self, public_key: dict[str, Any]) -> Optional[RawAssertion]:
        """
        Run a get-assertion ceremony.

        Raises:
            CredentialAPIError: If the platform rejects the request
        """
        raise NotImplementedError

    @abstractmethod
    async def create_credential(self, public_key: dict[str, Any]) -> Optional[RawAttestation]:
        """
        Run a create-credential ceremony.

        Raises:
            CredentialAPIError: If the platform rejects the request
        """
        raise NotImplementedError
