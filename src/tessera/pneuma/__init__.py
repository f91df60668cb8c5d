"""
Pneuma - On-chain interaction layer for tessera.

Provides the multi-provider JSON-RPC gateway, ABI resolution, EIP-1559
transaction building and the contract call dispatcher.

Uses httpx + eth-abi + rlp instead of the heavyweight web3.py.
"""
