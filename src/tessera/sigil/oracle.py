"""
Signing oracle client.

The oracle holds the private key and signs 32-byte digests on request.  It
never sees the transaction, only the digest, and returns a bare 64-byte
(r, s) pair.  Any oracle failure is fatal to the current call.
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional, Protocol

import httpx

from ..config import DEFAULT_REQUEST_TIMEOUT, ResourceBudget
from ..errors import EncodingError, OracleError, ResourceExhaustedError
from ..pneuma.rpc import post_capped
from ..schema.models import PublicKeyResponse, SignatureResponse
from ..schema.schemas import SchemaRegistry, SchemaValidationError
from ..utils import from_hex, to_hex
from .eth import EcdsaKeyId, PublicKeyRecord

logger = logging.getLogger(__name__)


class SignatureOracle(Protocol):
    async def get_public_key(
        self, key_id: EcdsaKeyId, budget: Optional[ResourceBudget] = None
    ) -> PublicKeyRecord:
        ...

    async def sign_digest(
        self, digest: bytes, key_id: EcdsaKeyId, budget: Optional[ResourceBudget] = None
    ) -> bytes:
        ...


@dataclass(frozen=True)
class OracleCosts:
    """Fixed charge the oracle levies per operation."""

    public_key: int = 0
    sign: int = 0


class HttpSignatureOracle:
    """
    Talk to a signing oracle over HTTP.

    Endpoints:
        POST {base_url}/public_key  {"key_id": {...}}                 -> {"public_key": "0x.."}
        POST {base_url}/sign        {"message_hash": "0x..", "key_id"} -> {"signature": "0x.."}
    """

    def __init__(
        self,
        base_url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        costs: Optional[OracleCosts] = None,
        registry: Optional[SchemaRegistry] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client
        self._timeout = timeout
        self._costs = costs or OracleCosts()
        self._registry = registry or SchemaRegistry.default()

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client

    def _charge(self, cost: int, budget: ResourceBudget, operation: str) -> None:
        if cost > budget.max_cost:
            raise ResourceExhaustedError(
                f"Oracle {operation} needs {cost} but the budget allows {budget.max_cost}",
                expected=cost,
                available=budget.max_cost,
            )

    async def _post(self, path: str, payload: dict[str, Any], budget: ResourceBudget) -> Any:
        url = f"{self.base_url}{path}"
        body = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        try:
            async with self._session() as client:
                status_code, raw = await post_capped(client, url, body, budget.max_response_bytes)
        except httpx.HTTPError as exc:
            raise OracleError(f"Signing oracle unavailable: {exc}", {"url": url}) from exc

        if status_code == 404:
            raise OracleError(
                f"Key not found: {payload['key_id']['name']}",
                {"url": url, "status": status_code},
            )
        if status_code >= 400:
            raise OracleError(
                f"Signing oracle answered HTTP {status_code}",
                {"url": url, "status": status_code, "body": raw.decode("utf-8", errors="replace")},
            )
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise OracleError(f"Signing oracle returned invalid JSON: {exc}", {"url": url}) from exc

    async def get_public_key(
        self, key_id: EcdsaKeyId, budget: Optional[ResourceBudget] = None
    ) -> PublicKeyRecord:
        budget = budget or ResourceBudget()
        self._charge(self._costs.public_key, budget, "public_key")
        payload = await self._post("/public_key", {"key_id": key_id.to_dict()}, budget)
        try:
            response = PublicKeyResponse.from_dict(payload, registry=self._registry)
            record = PublicKeyRecord(key_id=key_id, public_key=from_hex(response.public_key))
        except (SchemaValidationError, EncodingError) as exc:
            raise OracleError(f"Malformed public key response: {exc}") from exc
        logger.debug("Oracle public key for %s: %s", key_id.name, to_hex(record.public_key))
        return record

    async def sign_digest(
        self, digest: bytes, key_id: EcdsaKeyId, budget: Optional[ResourceBudget] = None
    ) -> bytes:
        """
        Ask the oracle to sign a 32-byte digest.

        Returns:
            64-byte r || s (no recovery id)

        Raises:
            OracleError: Key not found, service unavailable, malformed response
            ResourceExhaustedError: Signing cost exceeds the budget
        """
        if len(digest) != 32:
            raise EncodingError(f"Digest must be 32 bytes, got {len(digest)}")
        budget = budget or ResourceBudget()
        self._charge(self._costs.sign, budget, "sign")
        payload = await self._post(
            "/sign",
            {"message_hash": to_hex(digest), "key_id": key_id.to_dict()},
            budget,
        )
        try:
            signature = from_hex(SignatureResponse.from_dict(payload, registry=self._registry).signature)
        except (SchemaValidationError, EncodingError) as exc:
            raise OracleError(f"Malformed signature response: {exc}") from exc
        if len(signature) != 64:
            raise OracleError(
                f"Oracle signature must be 64 bytes, got {len(signature)}",
                {"key": key_id.name},
            )
        return signature
