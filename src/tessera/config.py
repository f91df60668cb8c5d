"""Configuration containers and environment loading for tessera."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigError
from .sigil.eth import DEFAULT_CURVE, DEFAULT_KEY_NAME, EcdsaKeyId

TESSERA_DIR = Path.home() / ".tessera"
TESSERA_ENV = TESSERA_DIR / ".env"

SEPOLIA_CHAIN_ID = 11155111
DEFAULT_ORACLE_URL = "http://127.0.0.1:8645"
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_MAX_RESPONSE_BYTES = 2048
DEFAULT_MAX_COST = 10_000_000_000
DEFAULT_HASH_LOG = TESSERA_DIR / "tx_hashes.log"

# Sepolia endpoints of the public providers the aggregation service fronts.
DEFAULT_PROVIDERS = (
    ("blockpi", "https://ethereum-sepolia.blockpi.network/v1/rpc/public"),
    ("publicnode", "https://ethereum-sepolia-rpc.publicnode.com"),
    ("ankr", "https://rpc.ankr.com/eth_sepolia"),
)


@dataclass(frozen=True)
class ResourceBudget:
    """Upper bound on what a single oracle or RPC call may consume."""

    max_response_bytes: int = DEFAULT_MAX_RESPONSE_BYTES
    max_cost: int = DEFAULT_MAX_COST


@dataclass(frozen=True)
class Provider:
    name: str
    url: str
    cost_per_call: int = 0
    cost_per_byte: int = 0


@dataclass(frozen=True)
class TesseraConfig:
    """Aggregated configuration for the gateway, oracle and dispatcher."""

    providers: tuple[Provider, ...]
    read_provider: str
    chain_id: int = SEPOLIA_CHAIN_ID
    oracle_url: str = DEFAULT_ORACLE_URL
    key_id: EcdsaKeyId = field(default_factory=EcdsaKeyId)
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    budget: ResourceBudget = field(default_factory=ResourceBudget)
    hash_log_path: Path = DEFAULT_HASH_LOG
    contract_address: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.providers:
            raise ConfigError("At least one RPC provider must be configured")
        names = [p.name for p in self.providers]
        if len(set(names)) != len(names):
            raise ConfigError(f"Duplicate provider names: {names}")
        if self.read_provider not in names:
            raise ConfigError(
                f"Read provider {self.read_provider!r} is not among {names}",
                {"read_provider": self.read_provider},
            )


def parse_providers(value: str) -> tuple[Provider, ...]:
    """Parse ``name=url,name=url`` into provider configs."""
    providers = []
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        name, sep, url = item.partition("=")
        if not sep or not name.strip() or not url.strip():
            raise ConfigError(f"Malformed provider entry {item!r}; expected name=url")
        providers.append(Provider(name=name.strip(), url=url.strip()))
    return tuple(providers)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw, 0)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc


def load_config(env_path: Optional[Path] = None) -> TesseraConfig:
    """
    Build configuration from the environment.

    Args:
        env_path: Path to a .env file (default: ~/.tessera/.env). Values in
                  the file override the process environment.

    Returns:
        TesseraConfig

    Raises:
        ConfigError: If any value is malformed
    """
    env_path = env_path or TESSERA_ENV
    if env_path.exists():
        load_dotenv(env_path, override=True)

    raw_providers = os.environ.get("TESSERA_RPC_PROVIDERS")
    if raw_providers:
        providers = parse_providers(raw_providers)
    else:
        providers = tuple(Provider(name=n, url=u) for n, u in DEFAULT_PROVIDERS)
    if not providers:
        raise ConfigError("TESSERA_RPC_PROVIDERS did not name any provider")

    hash_log = os.environ.get("TESSERA_HASH_LOG")

    return TesseraConfig(
        providers=providers,
        read_provider=os.environ.get("TESSERA_READ_PROVIDER") or providers[0].name,
        chain_id=_env_int("TESSERA_CHAIN_ID", SEPOLIA_CHAIN_ID),
        oracle_url=os.environ.get("TESSERA_ORACLE_URL", DEFAULT_ORACLE_URL).rstrip("/"),
        key_id=EcdsaKeyId(
            name=os.environ.get("TESSERA_KEY_NAME", DEFAULT_KEY_NAME),
            curve=os.environ.get("TESSERA_KEY_CURVE", DEFAULT_CURVE),
        ),
        request_timeout=_env_float("TESSERA_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
        budget=ResourceBudget(
            max_response_bytes=_env_int("TESSERA_MAX_RESPONSE_BYTES", DEFAULT_MAX_RESPONSE_BYTES),
            max_cost=_env_int("TESSERA_MAX_COST", DEFAULT_MAX_COST),
        ),
        hash_log_path=Path(hash_log).expanduser() if hash_log else DEFAULT_HASH_LOG,
        contract_address=os.environ.get("TESSERA_CONTRACT_ADDRESS") or None,
    )
