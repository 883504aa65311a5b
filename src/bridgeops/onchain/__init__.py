"""
Onchain - JSON-RPC interaction layer for bridgeops.

Provides the JSON-RPC client, human-readable ABI fragments, selector and
revert-data tools, and transaction utilities for the hub and gateway
chains.

Uses httpx + eth-account + eth-abi instead of the heavyweight web3.py.
"""
