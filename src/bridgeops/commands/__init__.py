"""
Commands - CLI command groups for bridgeops.

Each module corresponds to a top-level CLI command:
- peers:    Check and repair Hub <-> Gateway OApp peers
- hub:      Hub status and minting authorization
- lz:       LayerZero nonces, message-library config, source transactions
- balances: Gateway collateral, wallet balances, allowances
- probe:    Selector probing of unverified contracts
- vault:    MIM staking vault and leverage AMM
- oracle:   TWAP oracle and pool price
- invoke:   Execute an arbitrary contract call
"""
