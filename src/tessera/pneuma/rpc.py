"""
JSON-RPC Gateway for EVM providers.

Reads (``eth_call``) go to exactly one provider.  Writes, nonce queries and
block lookups fan out to every configured provider and are aggregated:
identical answers collapse to ``Consistent``; anything else is returned as
``Inconsistent`` with every provider's answer, in provider order.  There is
no majority vote and no retry.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Callable, Generic, Optional, Sequence, TypeVar, Union

import httpx

from ..config import DEFAULT_REQUEST_TIMEOUT, Provider, ResourceBudget
from ..errors import (
    EncodingError,
    ProtocolViolationError,
    ProviderError,
    ResourceExhaustedError,
)
from ..schema.models import JsonRpcError, JsonRpcResponse
from ..schema.schemas import SchemaRegistry, SchemaValidationError
from ..utils import from_hex, hex_to_int, parse_address, to_hex

logger = logging.getLogger(__name__)

T = TypeVar("T")

NAMED_BLOCK_TAGS = ("latest", "earliest", "pending", "safe", "finalized")

BlockTag = Union[str, int]


def format_block_tag(tag: BlockTag) -> str:
    """Render a block tag as it appears in JSON-RPC params."""
    if isinstance(tag, bool):
        raise EncodingError(f"Invalid block tag: {tag!r}")
    if isinstance(tag, int):
        if tag < 0:
            raise EncodingError(f"Block number must be non-negative: {tag}")
        return hex(tag)
    if tag in NAMED_BLOCK_TAGS:
        return tag
    if isinstance(tag, str) and tag.startswith("0x"):
        return hex(hex_to_int(tag))
    raise EncodingError(f"Invalid block tag: {tag!r}")


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


class RpcErrorKind(str, Enum):
    JSON_RPC = "json_rpc"
    HTTP = "http"
    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    INVALID_RESPONSE = "invalid_response"
    RESPONSE_TOO_LARGE = "response_too_large"


@dataclass(frozen=True)
class RpcError:
    kind: RpcErrorKind
    message: str
    code: Optional[int] = None


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: RpcError


ProviderResult = Union[Ok[T], Err]


@dataclass(frozen=True)
class Consistent(Generic[T]):
    result: "ProviderResult[T]"


@dataclass(frozen=True)
class Inconsistent(Generic[T]):
    results: tuple[tuple[str, "ProviderResult[T]"], ...]


AggregatedResult = Union[Consistent[T], Inconsistent[T]]


def aggregate(results: Sequence[tuple[str, "ProviderResult[T]"]]) -> "AggregatedResult[T]":
    """Collapse per-provider results; any disagreement is Inconsistent."""
    if not results:
        raise ValueError("Cannot aggregate an empty result list")
    first = results[0][1]
    if all(result == first for _, result in results[1:]):
        return Consistent(first)
    return Inconsistent(tuple(results))


class SendStatus(str, Enum):
    ACCEPTED = "accepted"
    NONCE_TOO_LOW = "nonce_too_low"
    NONCE_TOO_HIGH = "nonce_too_high"
    INSUFFICIENT_FUNDS = "insufficient_funds"


@dataclass(frozen=True)
class SendRawTransactionStatus:
    status: SendStatus
    tx_hash: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.status is SendStatus.ACCEPTED


_SEND_ERROR_PATTERNS = (
    ("nonce too low", SendStatus.NONCE_TOO_LOW),
    ("nonce too high", SendStatus.NONCE_TOO_HIGH),
    ("insufficient funds", SendStatus.INSUFFICIENT_FUNDS),
)


@dataclass(frozen=True)
class Block:
    number: int
    hash: str
    parent_hash: str
    timestamp: int
    gas_limit: int
    gas_used: int
    miner: str
    transactions: tuple[str, ...]
    base_fee_per_gas: Optional[int] = None

    @classmethod
    def from_json(cls, payload: dict[str, Any]) -> "Block":
        base_fee = payload.get("baseFeePerGas")
        return cls(
            number=hex_to_int(payload["number"]),
            hash=payload["hash"],
            parent_hash=payload["parentHash"],
            timestamp=hex_to_int(payload["timestamp"]),
            gas_limit=hex_to_int(payload["gasLimit"]),
            gas_used=hex_to_int(payload["gasUsed"]),
            miner=payload["miner"],
            transactions=tuple(
                tx if isinstance(tx, str) else tx["hash"] for tx in payload.get("transactions", [])
            ),
            base_fee_per_gas=hex_to_int(base_fee) if base_fee is not None else None,
        )


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


async def post_capped(
    client: httpx.AsyncClient,
    url: str,
    body: bytes,
    max_response_bytes: int,
    headers: Optional[dict[str, str]] = None,
) -> tuple[int, bytes]:
    """
    POST ``body`` and read at most ``max_response_bytes`` of the response.

    Returns:
        (status_code, body)

    Raises:
        ResourceExhaustedError: The response grew past the limit
        httpx.HTTPError: Transport failures are left to the caller
    """
    request_headers = {"Content-Type": "application/json"}
    if headers:
        request_headers.update(headers)
    async with client.stream("POST", url, content=body, headers=request_headers) as response:
        received = bytearray()
        async for chunk in response.aiter_bytes():
            received.extend(chunk)
            if len(received) > max_response_bytes:
                raise ResourceExhaustedError(
                    f"Response exceeded {max_response_bytes} bytes",
                    expected=len(received),
                    available=max_response_bytes,
                )
        return response.status_code, bytes(received)


class RpcGateway:
    """Execute JSON-RPC requests against one or many providers."""

    def __init__(
        self,
        providers: Sequence[Provider],
        read_provider: Optional[str] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        registry: Optional[SchemaRegistry] = None,
    ) -> None:
        if not providers:
            raise ValueError("RpcGateway needs at least one provider")
        self._providers = tuple(providers)
        self._read_provider = self._provider_named(read_provider or self._providers[0].name)
        self._client = client
        self._timeout = timeout
        self._registry = registry or SchemaRegistry.default()
        self._ids = itertools.count(1)

    @property
    def providers(self) -> tuple[Provider, ...]:
        return self._providers

    @property
    def read_provider(self) -> Provider:
        return self._read_provider

    def _provider_named(self, name: str) -> Provider:
        for provider in self._providers:
            if provider.name == name:
                return provider
        raise ValueError(f"Unknown provider: {name}")

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client

    # ------------------------------------------------------------------
    # Envelope handling
    # ------------------------------------------------------------------
    def _envelope(self, method: str, params: list[Any]) -> bytes:
        payload = {
            "id": next(self._ids),
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
        }
        return json.dumps(payload, separators=(",", ":")).encode("utf-8")

    def request_cost(
        self,
        body: bytes,
        providers: Sequence[Provider],
        budget: ResourceBudget,
    ) -> int:
        """Cost of sending ``body`` to each of ``providers`` under ``budget``."""
        return sum(
            p.cost_per_call + p.cost_per_byte * (len(body) + budget.max_response_bytes)
            for p in providers
        )

    def _charge(self, body: bytes, providers: Sequence[Provider], budget: ResourceBudget) -> None:
        cost = self.request_cost(body, providers, budget)
        if cost > budget.max_cost:
            raise ResourceExhaustedError(
                f"Request needs {cost} but the budget allows {budget.max_cost}",
                expected=cost,
                available=budget.max_cost,
            )

    async def _request(
        self, provider: Provider, body: bytes, budget: ResourceBudget
    ) -> JsonRpcResponse:
        logger.debug("JSON-RPC request to %s: %s", provider.name, body.decode("utf-8"))
        try:
            async with self._session() as client:
                status_code, raw = await post_capped(
                    client, provider.url, body, budget.max_response_bytes
                )
        except httpx.TimeoutException as exc:
            raise ProviderError(
                f"Request to {provider.name} timed out",
                provider=provider.name,
                rpc_error=RpcError(RpcErrorKind.TIMEOUT, str(exc)),
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(
                f"Request to {provider.name} failed: {exc}",
                provider=provider.name,
                rpc_error=RpcError(RpcErrorKind.TRANSPORT, str(exc)),
            ) from exc

        if status_code >= 400:
            raise ProviderError(
                f"{provider.name} answered HTTP {status_code}",
                provider=provider.name,
                rpc_error=RpcError(
                    RpcErrorKind.HTTP, raw.decode("utf-8", errors="replace"), code=status_code
                ),
            )

        try:
            payload = json.loads(raw)
            return JsonRpcResponse.from_dict(payload, registry=self._registry)
        except (ValueError, SchemaValidationError) as exc:
            errors = getattr(exc, "errors", [])
            raise ProtocolViolationError(
                f"JSON was not well-formatted from {provider.name}: {exc}",
                provider=provider.name,
                rpc_error=RpcError(RpcErrorKind.INVALID_RESPONSE, str(exc)),
                details={"errors": errors},
            ) from exc

    async def _query(
        self,
        provider: Provider,
        body: bytes,
        budget: ResourceBudget,
        parse: Callable[[JsonRpcResponse], "ProviderResult[T]"],
    ) -> "ProviderResult[T]":
        try:
            response = await self._request(provider, body, budget)
        except ResourceExhaustedError as exc:
            return Err(RpcError(RpcErrorKind.RESPONSE_TOO_LARGE, exc.message))
        except ProviderError as exc:
            return Err(exc.rpc_error)
        try:
            return parse(response)
        except (EncodingError, AttributeError, KeyError, TypeError) as exc:
            return Err(RpcError(RpcErrorKind.INVALID_RESPONSE, str(exc)))

    async def _fan_out(
        self,
        method: str,
        params: list[Any],
        budget: ResourceBudget,
        parse: Callable[[JsonRpcResponse], "ProviderResult[T]"],
    ) -> "AggregatedResult[T]":
        body = self._envelope(method, params)
        self._charge(body, self._providers, budget)
        results = await asyncio.gather(
            *(self._query(p, body, budget, parse) for p in self._providers)
        )
        aggregated = aggregate([(p.name, r) for p, r in zip(self._providers, results)])
        if isinstance(aggregated, Inconsistent):
            logger.warning("Inconsistent %s results: %s", method, aggregated.results)
        else:
            logger.debug("Consistent %s result: %s", method, aggregated.result)
        return aggregated

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------
    async def call(
        self,
        to: str,
        data: bytes,
        block_tag: BlockTag = "latest",
        budget: Optional[ResourceBudget] = None,
    ) -> bytes:
        """
        Execute ``eth_call`` against the read provider.

        Returns:
            Raw return data

        Raises:
            EncodingError: Malformed address / block tag / result hex
            ProviderError: JSON-RPC error object or transport failure
            ProtocolViolationError: Response carried neither result nor error
            ResourceExhaustedError: Cost or response size exceeded the budget
        """
        budget = budget or ResourceBudget()
        parse_address(to)
        provider = self._read_provider
        body = self._envelope(
            "eth_call", [{"to": to, "data": to_hex(data)}, format_block_tag(block_tag)]
        )
        self._charge(body, [provider], budget)
        response = await self._request(provider, body, budget)

        if response.error is not None:
            raise ProviderError(
                f"Response error from {provider.name}: "
                f"{response.error.code} {response.error.message}",
                provider=provider.name,
                rpc_error=RpcError(
                    RpcErrorKind.JSON_RPC, response.error.message, code=response.error.code
                ),
            )
        if not response.has_result or not isinstance(response.result, str):
            raise ProtocolViolationError(
                f"Unexpected JSON response from {provider.name}: no result",
                provider=provider.name,
                rpc_error=RpcError(RpcErrorKind.INVALID_RESPONSE, "missing result"),
            )
        return from_hex(response.result)

    # ------------------------------------------------------------------
    # Multi-provider paths
    # ------------------------------------------------------------------
    async def send_raw_transaction(
        self,
        signed_hex: str,
        budget: Optional[ResourceBudget] = None,
    ) -> "AggregatedResult[SendRawTransactionStatus]":
        """Broadcast a signed transaction to every provider."""
        budget = budget or ResourceBudget()
        from_hex(signed_hex)
        return await self._fan_out(
            "eth_sendRawTransaction", [signed_hex], budget, _parse_send_status
        )

    async def get_transaction_count(
        self,
        address: str,
        block_tag: BlockTag = "latest",
        budget: Optional[ResourceBudget] = None,
    ) -> "AggregatedResult[int]":
        parse_address(address)
        budget = budget or ResourceBudget()
        return await self._fan_out(
            "eth_getTransactionCount",
            [address, format_block_tag(block_tag)],
            budget,
            _parse_quantity,
        )

    async def get_block_by_number(
        self,
        block_tag: BlockTag = "latest",
        budget: Optional[ResourceBudget] = None,
    ) -> "AggregatedResult[Optional[Block]]":
        budget = budget or ResourceBudget()
        return await self._fan_out(
            "eth_getBlockByNumber",
            [format_block_tag(block_tag), False],
            budget,
            _parse_block,
        )


def _json_rpc_err(error: JsonRpcError) -> Err:
    return Err(RpcError(RpcErrorKind.JSON_RPC, error.message, code=error.code))


def _missing_result() -> Err:
    return Err(RpcError(RpcErrorKind.INVALID_RESPONSE, "missing result"))


def _parse_send_status(response: JsonRpcResponse) -> "ProviderResult[SendRawTransactionStatus]":
    if response.error is not None:
        message = response.error.message.lower()
        for needle, status in _SEND_ERROR_PATTERNS:
            if needle in message:
                return Ok(SendRawTransactionStatus(status))
        return _json_rpc_err(response.error)
    if not response.has_result or not isinstance(response.result, str):
        return _missing_result()
    return Ok(SendRawTransactionStatus(SendStatus.ACCEPTED, tx_hash=response.result.lower()))


def _parse_quantity(response: JsonRpcResponse) -> "ProviderResult[int]":
    if response.error is not None:
        return _json_rpc_err(response.error)
    if not response.has_result:
        return _missing_result()
    return Ok(hex_to_int(response.result))


def _parse_block(response: JsonRpcResponse) -> "ProviderResult[Optional[Block]]":
    if response.error is not None:
        return _json_rpc_err(response.error)
    if not response.has_result:
        return _missing_result()
    if response.result is None:
        return Ok(None)
    return Ok(Block.from_json(response.result))
