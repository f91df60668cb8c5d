"""
ABI Loader - Resolve contract functions and encode/decode their data.

Accepts either a raw ABI list or a Hardhat / Foundry artifact with an
``abi`` member.  Function selection follows one rule: a bare name must
map to exactly one function; overloaded names need the full signature.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Sequence, Union

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError as AbiEncodingError
from eth_hash.auto import keccak

from ..errors import AmbiguousFunctionError, EncodingError, FunctionNotFoundError

BUNDLED_ABI_DIR = Path(__file__).resolve().parent / "abis"


def _canonical_type(param: dict[str, Any]) -> str:
    """Render an ABI parameter as its canonical type string (tuples expanded)."""
    type_str = param["type"]
    if type_str.startswith("tuple"):
        inner = ",".join(_canonical_type(c) for c in param.get("components", []))
        return f"({inner}){type_str[len('tuple'):]}"
    return type_str


@dataclass(frozen=True)
class AbiFunction:
    name: str
    input_types: tuple[str, ...]
    output_types: tuple[str, ...]
    state_mutability: str = "nonpayable"

    @classmethod
    def from_entry(cls, entry: dict[str, Any]) -> "AbiFunction":
        return cls(
            name=entry["name"],
            input_types=tuple(_canonical_type(p) for p in entry.get("inputs", [])),
            output_types=tuple(_canonical_type(p) for p in entry.get("outputs", [])),
            state_mutability=entry.get("stateMutability", "nonpayable"),
        )

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.input_types)})"

    @property
    def selector(self) -> bytes:
        # Keccak-256, not NIST SHA3-256.
        return keccak(self.signature.encode("utf-8"))[:4]

    def encode_input(self, args: Sequence[Any]) -> bytes:
        """Selector followed by the ABI-encoded arguments."""
        if len(args) != len(self.input_types):
            raise EncodingError(
                f"{self.signature} expects {len(self.input_types)} arguments, got {len(args)}",
                {"function": self.signature, "args": list(args)},
            )
        try:
            encoded_args = encode(list(self.input_types), list(args)) if args else b""
        except (AbiEncodingError, TypeError, ValueError) as exc:
            raise EncodingError(
                f"Error while encoding input args for {self.signature}: {exc}",
                {"function": self.signature, "args": list(args)},
            ) from exc
        return self.selector + encoded_args

    def decode_output(self, data: bytes) -> tuple[Any, ...]:
        """Decode return data; trailing or non-canonical bytes are rejected."""
        if not self.output_types:
            if data:
                raise EncodingError(
                    f"{self.signature} declares no outputs but returned {len(data)} bytes"
                )
            return ()
        try:
            values = decode(list(self.output_types), data)
        except (DecodingError, ValueError) as exc:
            raise EncodingError(
                f"Error decoding output of {self.signature}: {exc}",
                {"function": self.signature, "data": "0x" + data.hex()},
            ) from exc
        if encode(list(self.output_types), list(values)) != data:
            raise EncodingError(
                f"Output of {self.signature} was not consumed cleanly",
                {"function": self.signature, "data": "0x" + data.hex()},
            )
        return tuple(values)


class ContractAbi:
    """Function lookup over a parsed ABI."""

    def __init__(self, abi: Sequence[dict[str, Any]]) -> None:
        self._functions = [
            AbiFunction.from_entry(entry) for entry in abi if entry.get("type") == "function"
        ]

    @property
    def functions(self) -> list[AbiFunction]:
        return list(self._functions)

    def functions_by_name(self, name: str) -> list[AbiFunction]:
        return [f for f in self._functions if f.name == name]

    def function_by_signature(self, signature: str) -> AbiFunction | None:
        for f in self._functions:
            if f.signature == signature:
                return f
        return None

    def resolve(self, function: str) -> AbiFunction:
        """
        Resolve a function by bare name or full signature.

        Raises:
            FunctionNotFoundError: No function matches.
            AmbiguousFunctionError: A bare name matches several overloads.
        """
        candidates = self.functions_by_name(function)
        if len(candidates) == 1:
            return candidates[0]
        if len(candidates) > 1:
            raise AmbiguousFunctionError(function, [f.signature for f in candidates])
        exact = self.function_by_signature(function.replace(" ", ""))
        if exact is None:
            raise FunctionNotFoundError(function)
        return exact


def load_abi(source: Union[str, Path, Sequence[dict[str, Any]]]) -> ContractAbi:
    """
    Load an ABI from a file path or an already-parsed list.

    Args:
        source: Path to an ABI JSON file / build artifact, or an ABI list

    Returns:
        ContractAbi

    Raises:
        FileNotFoundError: If the ABI file does not exist
        EncodingError: If the JSON does not contain an ABI list
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        with path.open("r", encoding="utf-8") as f:
            payload = json.load(f)
        if isinstance(payload, dict):
            payload = payload.get("abi")
        if not isinstance(payload, list):
            raise EncodingError(f"No ABI list found in {path}")
        return ContractAbi(payload)
    return ContractAbi(source)


@lru_cache(maxsize=8)
def bundled_abi(contract_name: str) -> ContractAbi:
    """Load an ABI shipped with the package (e.g. ``"Counter"``)."""
    path = BUNDLED_ABI_DIR / f"{contract_name}.json"
    if not path.exists():
        raise FileNotFoundError(f"ABI not found: {path}")
    return load_abi(path)


def counter_abi() -> ContractAbi:
    """Load the demo Counter ABI."""
    return bundled_abi("Counter")
