"""Exception hierarchy for tessera.

Every failure in the signing / broadcast pipeline surfaces as a subclass of
:class:`TesseraError`.  The CLI maps ``exit_code`` to the process status.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence


class TesseraError(RuntimeError):
    """Base exception for all tessera errors."""

    exit_code: int = 1

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigError(TesseraError):
    exit_code = 1


class EncodingError(TesseraError):
    """Malformed address, bad hex, or ABI argument/output mismatch."""

    exit_code = 2


class FunctionNotFoundError(EncodingError):
    def __init__(self, function: str) -> None:
        super().__init__(f"Function not found: {function}", {"function": function})
        self.function = function


class AmbiguousFunctionError(EncodingError):
    """A bare name matched several overloads; the caller must pass a full signature."""

    def __init__(self, function: str, candidates: Sequence[str]) -> None:
        self.function = function
        self.candidates = list(candidates)
        super().__init__(
            f"Found {len(self.candidates)} function overloads for {function}. "
            f"Please pass one of the following: {', '.join(self.candidates)}",
            {"function": function, "candidates": self.candidates},
        )


class OracleError(TesseraError):
    """The signing oracle failed (key not found, unavailable, bad response)."""

    exit_code = 3


class ProviderError(TesseraError):
    """A JSON-RPC provider returned an error or could not be reached."""

    exit_code = 4

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        rpc_error: Any = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details)
        self.provider = provider
        self.rpc_error = rpc_error


class ProtocolViolationError(ProviderError):
    """A response envelope carried neither ``result`` nor ``error``."""


class InconsistentResultError(TesseraError):
    """Providers disagreed; ``results`` holds every provider's answer in query order."""

    exit_code = 5

    def __init__(self, method: str, results: Sequence[tuple[str, Any]]) -> None:
        self.method = method
        self.results = list(results)
        providers = ", ".join(name for name, _ in self.results)
        super().__init__(
            f"Inconsistent {method} results from providers: {providers}",
            {"method": method, "results": [(name, repr(r)) for name, r in self.results]},
        )


class RecoveryIdError(TesseraError):
    """Neither recovery bit reproduces the oracle's public key."""

    exit_code = 6


class ResourceExhaustedError(TesseraError):
    """A call would exceed, or did exceed, its resource budget."""

    exit_code = 7

    def __init__(
        self,
        message: str,
        expected: Optional[int] = None,
        available: Optional[int] = None,
    ) -> None:
        super().__init__(message, {"expected": expected, "available": available})
        self.expected = expected
        self.available = available


class TransactionRejectedError(TesseraError):
    """All providers agreed the transaction was not accepted."""

    exit_code = 8

    def __init__(self, status: Any) -> None:
        super().__init__(f"Transaction rejected: {status}", {"status": repr(status)})
        self.status = status
