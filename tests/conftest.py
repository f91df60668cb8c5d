"""Shared fixtures: an in-process signing oracle and mocked JSON-RPC providers."""

from __future__ import annotations

import json
from typing import Any, Callable, Optional, Sequence, Union

import httpx
import pytest
from eth_keys.datatypes import PrivateKey

from tessera.config import Provider, ResourceBudget
from tessera.pneuma.rpc import RpcGateway
from tessera.sigil.eth import EcdsaKeyId, PublicKeyRecord

TEST_PRIVATE_KEY = bytes.fromhex(
    "4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
)
TEST_ADDRESS = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"
COUNTER_ADDRESS = "0xaed50f3b6c1d2e8a9b7c4d5e6f7a8b9c0d1eaac3"

PROVIDERS = (
    Provider(name="blockpi", url="https://blockpi.test/rpc"),
    Provider(name="publicnode", url="https://publicnode.test/rpc"),
    Provider(name="ankr", url="https://ankr.test/rpc"),
)

Reply = Union[dict[str, Any], httpx.Response]
Handler = Callable[[str, dict[str, Any]], Reply]


class FakeOracle:
    """Signs with a local key but, like the real oracle, returns only r || s."""

    def __init__(self, private_key: bytes = TEST_PRIVATE_KEY, encoding: str = "compressed") -> None:
        self.key = PrivateKey(private_key)
        self.encoding = encoding
        self.calls: list[str] = []
        self.signature_override: Optional[bytes] = None

    def public_key_bytes(self) -> bytes:
        public_key = self.key.public_key
        if self.encoding == "compressed":
            return public_key.to_compressed_bytes()
        if self.encoding == "uncompressed":
            return b"\x04" + public_key.to_bytes()
        return public_key.to_bytes()

    async def get_public_key(
        self, key_id: EcdsaKeyId, budget: Optional[ResourceBudget] = None
    ) -> PublicKeyRecord:
        self.calls.append("public_key")
        return PublicKeyRecord(key_id=key_id, public_key=self.public_key_bytes())

    async def sign_digest(
        self, digest: bytes, key_id: EcdsaKeyId, budget: Optional[ResourceBudget] = None
    ) -> bytes:
        self.calls.append("sign")
        if self.signature_override is not None:
            return self.signature_override
        return self.key.sign_msg_hash(digest).to_bytes()[:64]


def rpc_result(payload: dict[str, Any], result: Any) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": payload["id"], "result": result}


def rpc_error(payload: dict[str, Any], code: int, message: str) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": payload["id"], "error": {"code": code, "message": message}}


class RpcRecorder:
    """httpx MockTransport handler that records every JSON-RPC request by provider."""

    def __init__(self, handler: Handler) -> None:
        self.handler = handler
        self.requests: list[tuple[str, dict[str, Any]]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        provider = request.url.host.split(".")[0]
        payload = json.loads(request.content)
        self.requests.append((provider, payload))
        reply = self.handler(provider, payload)
        if isinstance(reply, httpx.Response):
            return reply
        return httpx.Response(200, json=reply)

    def methods(self) -> list[str]:
        return [payload["method"] for _, payload in self.requests]

    def providers_for(self, method: str) -> list[str]:
        return [name for name, payload in self.requests if payload["method"] == method]


@pytest.fixture()
def oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture()
def make_gateway() -> Callable[..., tuple[RpcGateway, RpcRecorder]]:
    def factory(
        handler: Handler,
        providers: Sequence[Provider] = PROVIDERS,
        read_provider: Optional[str] = None,
    ) -> tuple[RpcGateway, RpcRecorder]:
        recorder = RpcRecorder(handler)
        client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
        return RpcGateway(providers, read_provider, client=client), recorder

    return factory
