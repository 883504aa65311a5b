"""
ECDSA / secp256k1 signer for administrative transactions.

Keys are read from PRIVATE_KEY, after loading ~/.bridgeops/.env and a
project-local .env if present. The tool never writes keys.

Dependencies: eth-account (no full web3.py needed)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from eth_account import Account
from eth_account.signers.local import LocalAccount


# Default config directory
BRIDGEOPS_DIR = Path.home() / ".bridgeops"
BRIDGEOPS_ENV = BRIDGEOPS_DIR / ".env"


def load_env(env_path: Optional[Path] = None) -> None:
    """Load ~/.bridgeops/.env then ./.env without overriding real env vars."""
    env_path = env_path or BRIDGEOPS_ENV
    if env_path.exists():
        load_dotenv(env_path, override=False)
    local = Path.cwd() / ".env"
    if local.exists():
        load_dotenv(local, override=False)


def load_private_key(env_path: Optional[Path] = None) -> str:
    """
    Load the signer private key.

    Args:
        env_path: Path to .env file (default: ~/.bridgeops/.env)

    Returns:
        0x-prefixed hex private key

    Raises:
        ValueError: If PRIVATE_KEY is not set anywhere
    """
    env_path = env_path or BRIDGEOPS_ENV
    load_env(env_path)

    private_key = os.environ.get("PRIVATE_KEY", "").strip()
    if not private_key:
        raise ValueError(
            f"PRIVATE_KEY not found. Export it or add PRIVATE_KEY=... to {env_path}"
        )

    if not private_key.startswith("0x"):
        private_key = "0x" + private_key

    return private_key


def get_account(private_key: Optional[str] = None) -> LocalAccount:
    """eth-account LocalAccount for a key (loads from env when None)."""
    if private_key is None:
        private_key = load_private_key()
    return Account.from_key(private_key)


def get_address(private_key: Optional[str] = None) -> str:
    """Checksummed address of the signer."""
    return get_account(private_key).address
