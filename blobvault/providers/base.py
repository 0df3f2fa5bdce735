"""Base provider interface for the Safe transaction service."""

from abc import ABC, abstractmethod
from typing import Any, Optional
import logging

from ..constants import Network
from ..exceptions import APIError
from ..utils.validation import validate_eth_address

__all__ = ["BaseProvider", "SafeInfo"]

logger = logging.getLogger(__name__)


class SafeInfo(dict):
    """Subset of ``GET /api/v1/safes/{address}/`` used for hashing."""

    @property
    def nonce(self) -> int:
        return int(self["nonce"])

    @property
    def version(self) -> str:
        return str(self["version"])


class BaseProvider(ABC):
    """
    Abstract base provider for Safe transaction service connections.

    Subclasses implement :meth:`request`; the Safe lookups on top of it
    are shared.
    """

    def __init__(self, network: Network = Network.MAINNET) -> None:
        """
        Initialize provider with network.

        Args:
            network: Mainnet or the Sepolia testnet service
        """
        self.network = network
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @abstractmethod
    async def request(
        self,
        method: str,
        params: Optional[dict[str, Any]] = None,
        **kwargs: Any
    ) -> Any:
        """
        Make a request to the provider.

        Args:
            method: API path, relative to ``/api``
            params: Optional query parameters

        Returns:
            Decoded JSON response

        Raises:
            ProviderError: If the request fails
        """
        raise NotImplementedError

    @abstractmethod
    async def connect(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def disconnect(self) -> None:
        raise NotImplementedError

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        raise NotImplementedError

    async def get_safe_info(self, address: str) -> SafeInfo:
        """
        Fetch the current nonce and contract version of a Safe.

        Raises:
            ValidationError: If address is malformed
            APIError: If the response lacks nonce or version
        """
        validate_eth_address(address)
        data = await self.request(f"/v1/safes/{address}/")

        if not isinstance(data, dict) or "nonce" not in data or "version" not in data:
            raise APIError("Unexpected Safe info response", data={"address": address})

        info = SafeInfo(data)
        self._logger.debug(f"Safe {address}: nonce={info.nonce} version={info.version}")
        return info

    async def __aenter__(self) -> "BaseProvider":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(network={self.network.value})"
