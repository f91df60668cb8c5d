"""
Theurgy - Command implementations for the tessera CLI.

Each module corresponds to a top-level CLI command:
- call:    Read contract state through eth_call
- send:    Sign through the oracle and broadcast a contract write
- block:   Fetch a block agreed on by every provider
"""
