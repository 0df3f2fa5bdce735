"""aiohttp client for the Safe transaction service."""

import asyncio
import json
import logging
from typing import Any, Optional

import aiohttp
from aiohttp import ClientSession, ClientTimeout

from ..constants import (
    DEFAULT_TIMEOUT,
    MAX_RETRIES,
    RETRY_DELAY,
    SAFE_SERVICE_ENDPOINTS,
    USER_AGENT,
    Network,
)
from ..exceptions import APIError, NetworkError, ProviderError, TimeoutError
from .base import BaseProvider

__all__ = ["HTTPProvider"]

logger = logging.getLogger(__name__)


def _service_root(url: str) -> str:
    """Strip trailing slashes and make sure the URL ends in ``/api``."""
    root = url.rstrip("/")
    return root if root.endswith("/api") else f"{root}/api"


def _is_transient(status: int) -> bool:
    return status == 429 or status >= 500


class HTTPProvider(BaseProvider):
    """
    Reads Safe state from the transaction service.

    Every call is a GET, so a transport failure, a 429 or a 5xx is
    retried up to ``MAX_RETRIES`` times with a doubling delay. Any other
    4xx is final and surfaces as :class:`APIError`.

    The provider opens its own session on first use unless one is passed
    in; a borrowed session is never closed here.
    """

    def __init__(
        self,
        network: Network = Network.MAINNET,
        endpoint: Optional[str] = None,
        timeout: int = DEFAULT_TIMEOUT,
        session: Optional[ClientSession] = None,
        headers: Optional[dict[str, str]] = None,
        api_key: Optional[str] = None,
    ) -> None:
        """
        Args:
            network: Selects the default service URL
            endpoint: Service URL to use instead of the network default
            timeout: Total seconds allowed per attempt
            session: Session to borrow instead of opening one
            headers: Extra request headers
            api_key: Sent as a Bearer token when given
        """
        super().__init__(network)

        self.endpoint = _service_root(endpoint or SAFE_SERVICE_ENDPOINTS[network])
        self.timeout = ClientTimeout(total=timeout)

        self.headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        self.headers.update(headers or {})
        if api_key:
            self.headers["Authorization"] = f"Bearer {api_key}"

        self._session = session
        self._borrowed = session is not None

    async def connect(self) -> None:
        if self._session is None or self._session.closed:
            self._session = ClientSession(timeout=self.timeout, headers=self.headers)
            self._borrowed = False
        self._logger.info(f"Using Safe service at {self.endpoint}")

    async def disconnect(self) -> None:
        if self._session is not None and not self._borrowed:
            await self._session.close()
            self._session = None

    @property
    def is_connected(self) -> bool:
        return self._session is not None and not self._session.closed

    async def request(
        self,
        method: str,
        params: Optional[dict[str, Any]] = None,
        **kwargs: Any
    ) -> Any:
        """
        GET ``method`` below the service root and return the decoded body.

        Raises:
            APIError: Final 4xx response
            NetworkError: Retries exhausted on transport errors, 429 or 5xx
            TimeoutError: The last attempt timed out
            ProviderError: Body was not JSON
        """
        if not self.is_connected:
            await self.connect()

        url = self.endpoint + ("" if method.startswith("/") else "/") + method

        for attempt in range(1, MAX_RETRIES + 1):
            try:
                body = await self._fetch(url, params, **kwargs)
            except TimeoutError:
                if attempt == MAX_RETRIES:
                    raise
            except NetworkError as e:
                if attempt == MAX_RETRIES:
                    raise NetworkError(f"GET {url} failed after {MAX_RETRIES} attempts") from e
            else:
                return self._decode(body)

            delay = RETRY_DELAY * 2 ** (attempt - 1)
            self._logger.debug(f"GET {url} failed; retry {attempt}/{MAX_RETRIES - 1} in {delay}s")
            await asyncio.sleep(delay)

    @staticmethod
    def _decode(body: str) -> Any:
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise ProviderError(f"Invalid JSON response: {e}") from e

    async def _fetch(self, url: str, params: Optional[dict[str, Any]], **kwargs: Any) -> str:
        """One GET attempt, mapping aiohttp failures onto provider errors."""
        self._logger.debug(f"GET {url} params={params}")
        try:
            async with self._session.get(url, params=params, **kwargs) as response:
                text = await response.text()
                status = response.status
        except asyncio.TimeoutError as e:
            raise TimeoutError("Request timed out") from e
        except aiohttp.ClientError as e:
            raise NetworkError(f"Network error: {e}") from e

        self._logger.debug(f"GET {url} -> {status}")
        if _is_transient(status):
            raise NetworkError(f"Server error {status}: {text}")
        if status >= 400:
            raise APIError(f"Client error {status}: {text}", status=status)
        return text
