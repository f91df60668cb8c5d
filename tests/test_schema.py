"""Tests for the bundled response schemas."""

from __future__ import annotations

import pytest

from tessera.schema.models import JsonRpcError, JsonRpcResponse
from tessera.schema.schemas import SchemaRegistry, SchemaValidationError


class TestSchemaRegistry:
    def test_default_is_shared(self) -> None:
        assert SchemaRegistry.default() is SchemaRegistry.default()

    def test_validator_is_compiled_once(self) -> None:
        registry = SchemaRegistry()
        assert registry.validator("jsonrpc.response") is registry.validator("jsonrpc.response")

    def test_unknown_schema(self) -> None:
        with pytest.raises(KeyError):
            SchemaRegistry().validator("oracle.unknown")

    def test_errors_carry_location(self) -> None:
        with pytest.raises(SchemaValidationError) as exc_info:
            SchemaRegistry().validate({"signature": 7}, "oracle.signature")
        assert any(err.startswith("signature:") for err in exc_info.value.errors)


class TestJsonRpcResponse:
    def test_null_error_is_no_error(self) -> None:
        response = JsonRpcResponse.from_dict({"jsonrpc": "2.0", "id": 1, "result": "0x1", "error": None})
        assert response.error is None
        assert response.result == "0x1"

    def test_error_object(self) -> None:
        response = JsonRpcResponse.from_dict(
            {"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "boom"}}
        )
        assert response.error == JsonRpcError(code=-32000, message="boom")
        assert not response.has_result

    def test_error_without_code_rejected(self) -> None:
        with pytest.raises(SchemaValidationError):
            JsonRpcResponse.from_dict({"jsonrpc": "2.0", "id": 1, "error": {"message": "boom"}})
