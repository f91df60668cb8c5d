"""
Tessera - Remote-oracle signing and multi-provider broadcast for EVM contracts.

Builds EIP-1559 transactions, has them signed by a threshold ECDSA oracle
that only returns (r, s), recovers the parity bit locally and broadcasts
the result to several JSON-RPC providers, accepting only unanimous answers.
"""

__version__ = "0.3.0"

__all__ = [
    # Configuration
    "Provider",
    "ResourceBudget",
    "TesseraConfig",
    "load_config",
    # Errors
    "TesseraError",
    "ConfigError",
    "EncodingError",
    "FunctionNotFoundError",
    "AmbiguousFunctionError",
    "OracleError",
    "ProviderError",
    "ProtocolViolationError",
    "InconsistentResultError",
    "RecoveryIdError",
    "ResourceExhaustedError",
    "TransactionRejectedError",
    # Transactions
    "UnsignedTransaction",
    "SignedTransaction",
    "build_transaction",
    "assemble_transaction",
    # Signing
    "EcdsaKeyId",
    "PublicKeyRecord",
    "public_key_to_address",
    "RawSignature",
    "RecoveredSignature",
    "resolve_recovery_id",
    "SignatureOracle",
    "HttpSignatureOracle",
    # RPC
    "RpcGateway",
    "Consistent",
    "Inconsistent",
    "Ok",
    "Err",
    "SendRawTransactionStatus",
    # Dispatch
    "ContractAbi",
    "ContractCallDispatcher",
    "ReadCall",
    "WriteCall",
    "WriteReceipt",
    "load_abi",
    # Hash log
    "InMemoryHashLog",
    "LocalFileHashLog",
]

from .config import Provider, ResourceBudget, TesseraConfig, load_config
from .errors import (
    AmbiguousFunctionError,
    ConfigError,
    EncodingError,
    FunctionNotFoundError,
    InconsistentResultError,
    OracleError,
    ProtocolViolationError,
    ProviderError,
    RecoveryIdError,
    ResourceExhaustedError,
    TesseraError,
    TransactionRejectedError,
)
from .pneuma.tx import (
    SignedTransaction,
    UnsignedTransaction,
    assemble_transaction,
    build_transaction,
)
from .sigil.eth import EcdsaKeyId, PublicKeyRecord, public_key_to_address
from .sigil.recovery import RawSignature, RecoveredSignature, resolve_recovery_id
from .sigil.oracle import HttpSignatureOracle, SignatureOracle
from .pneuma.rpc import (
    Consistent,
    Err,
    Inconsistent,
    Ok,
    RpcGateway,
    SendRawTransactionStatus,
)
from .pneuma.abi import ContractAbi, load_abi
from .pneuma.dispatch import ContractCallDispatcher, ReadCall, WriteCall, WriteReceipt
from .anamnesis.storage import InMemoryHashLog, LocalFileHashLog
