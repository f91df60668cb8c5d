"""Bundled JSON schemas for provider and oracle responses."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema import FormatChecker

SCHEMA_ROOT = Path(__file__).resolve().parent / "v1"

SCHEMA_NAMES = {
    "jsonrpc.response": "jsonrpc.response.schema.json",
    "oracle.public_key": "oracle.public_key.schema.json",
    "oracle.signature": "oracle.signature.schema.json",
}


class SchemaValidationError(ValueError):
    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


@dataclass(frozen=True)
class SchemaRegistry:
    """
    Validators for the schemas under ``schema_root``, keyed by short name.

    Each schema is read and checked once per registry; later validations
    reuse the compiled validator.
    """

    schema_root: Path = SCHEMA_ROOT
    _validators: dict[str, jsonschema.Validator] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    @classmethod
    def default(cls) -> "SchemaRegistry":
        return _default_registry()

    def validator(self, name: str) -> jsonschema.Validator:
        cached = self._validators.get(name)
        if cached is not None:
            return cached
        try:
            filename = SCHEMA_NAMES[name]
        except KeyError:
            raise KeyError(f"Unknown schema: {name}") from None
        with (self.schema_root / filename).open("r", encoding="utf-8") as f:
            schema = json.load(f)
        validator_cls = jsonschema.validators.validator_for(schema)
        validator_cls.check_schema(schema)
        compiled = validator_cls(schema, format_checker=FormatChecker())
        self._validators[name] = compiled
        return compiled

    def validate(self, instance: Any, name: str) -> None:
        errors = sorted(self.validator(name).iter_errors(instance), key=lambda e: list(e.path))
        if errors:
            raise SchemaValidationError(
                f"{name} response failed validation",
                errors=[
                    f"{'/'.join(str(part) for part in err.path) or '<root>'}: {err.message}"
                    for err in errors
                ],
            )


@lru_cache(maxsize=1)
def _default_registry() -> SchemaRegistry:
    return SchemaRegistry()
