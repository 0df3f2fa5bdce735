from typing import Any, Optional

import pytest
from eth_utils import to_checksum_address

from blobvault.ceremony.base import CredentialAPI
from blobvault.constants import Network
from blobvault.providers.base import BaseProvider
from blobvault.types.credential import RawAssertion, RawAttestation

ABANDON = "abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon about"
SAFE_ADDRESS = to_checksum_address("0x5afe3855358e112b5647b952709e6165e1c1eeee")


class ScriptedCredentialAPI(CredentialAPI):
    """Returns queued results (or raises queued errors) and records requests."""

    def __init__(self, *results: Any) -> None:
        self.results = list(results)
        self.requests: list[dict[str, Any]] = []

    async def _next(self, public_key: dict[str, Any]) -> Any:
        self.requests.append(public_key)
        result = self.results.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result

    async def get_assertion(self, public_key: dict[str, Any]) -> Optional[RawAssertion]:
        return await self._next(public_key)

    async def create_credential(self, public_key: dict[str, Any]) -> Optional[RawAttestation]:
        return await self._next(public_key)


class MemoryAuthenticator(CredentialAPI):
    """A single credential with a large blob slot."""

    raw_id = b"credential-0001"

    def __init__(self, blob: Optional[bytes] = None) -> None:
        self.blob = blob
        self.requests: list[dict[str, Any]] = []

    async def get_assertion(self, public_key: dict[str, Any]) -> Optional[RawAssertion]:
        self.requests.append(public_key)
        large_blob = public_key["extensions"]["largeBlob"]

        if "write" in large_blob:
            self.blob = large_blob["write"]
            results = {"largeBlob": {"written": True}}
        elif self.blob is None:
            results = {"largeBlob": {}}
        else:
            results = {"largeBlob": {"blob": self.blob}}

        return RawAssertion(
            raw_id=self.raw_id,
            authenticator_data=b"\x49" * 37,
            signature=b"\x30\x45assertion",
            client_data_json=b'{"type":"webauthn.get"}',
            client_extension_results=results,
        )

    async def create_credential(self, public_key: dict[str, Any]) -> Optional[RawAttestation]:
        self.requests.append(public_key)
        return RawAttestation(
            raw_id=self.raw_id,
            client_data_json=b'{"type":"webauthn.create"}',
            attestation_object=b"\xa3attestation",
            client_extension_results={"largeBlob": {"supported": True}},
        )


class FakeSafeProvider(BaseProvider):
    """Serves a fixed Safe info response."""

    def __init__(self, nonce: int = 7, version: str = "1.3.0+L2", network: Network = Network.MAINNET) -> None:
        super().__init__(network)
        self.info = {"address": SAFE_ADDRESS, "nonce": nonce, "version": version, "threshold": 2}
        self.calls: list[str] = []
        self._connected = False

    async def request(self, method: str, params: Optional[dict[str, Any]] = None, **kwargs: Any) -> Any:
        self.calls.append(method)
        return dict(self.info)

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected


@pytest.fixture
def authenticator():
    return MemoryAuthenticator()


@pytest.fixture
def scripted_api():
    return ScriptedCredentialAPI


@pytest.fixture
def safe_provider():
    return FakeSafeProvider()


@pytest.fixture
def auth_options():
    return {
        "challenge": "dGVzdC1jaGFsbGVuZ2UtMDAwMQ",
        "rpId": "example.com",
        "allowCredentials": [{"id": "Y3JlZGVudGlhbC0wMDAx", "type": "public-key"}],
        "userVerification": "discouraged",
    }
