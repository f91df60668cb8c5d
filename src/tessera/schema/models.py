from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .schemas import SchemaRegistry, SchemaValidationError


@dataclass(frozen=True)
class JsonRpcError:
    code: int
    message: str


@dataclass(frozen=True)
class JsonRpcResponse:
    """Parsed JSON-RPC 2.0 response envelope.

    ``has_result`` distinguishes an absent ``result`` member from an explicit
    ``null`` result (e.g. an unknown block).
    """

    result: Any
    error: Optional[JsonRpcError]
    has_result: bool

    @classmethod
    def from_dict(cls, payload: Any, registry: SchemaRegistry | None = None) -> "JsonRpcResponse":
        registry = registry or SchemaRegistry.default()
        registry.validate(payload, "jsonrpc.response")
        error = payload.get("error")
        return cls(
            result=payload.get("result"),
            error=JsonRpcError(code=error["code"], message=error["message"]) if error else None,
            has_result="result" in payload,
        )


@dataclass(frozen=True)
class PublicKeyResponse:
    public_key: str

    @classmethod
    def from_dict(cls, payload: Any, registry: SchemaRegistry | None = None) -> "PublicKeyResponse":
        registry = registry or SchemaRegistry.default()
        registry.validate(payload, "oracle.public_key")
        return cls(public_key=payload["public_key"])


@dataclass(frozen=True)
class SignatureResponse:
    signature: str

    @classmethod
    def from_dict(cls, payload: Any, registry: SchemaRegistry | None = None) -> "SignatureResponse":
        registry = registry or SchemaRegistry.default()
        registry.validate(payload, "oracle.signature")
        return cls(signature=payload["signature"])


__all__ = [
    "JsonRpcError",
    "JsonRpcResponse",
    "PublicKeyResponse",
    "SignatureResponse",
    "SchemaValidationError",
]
