"""
Address Book - chains, endpoints and deployed bridge contracts.

The built-in book mirrors the live deployment: the Hub on Sonic and
Gateways on Arbitrum, Ethereum and Base, plus the MIM staking / leverage
contracts on the hub chain, and the underlying tokens each gateway
holds. A JSON file passed with --book (or
BRIDGEOPS_BOOK) is overlaid on top, so a redeployment only needs the
changed addresses.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Optional, Union

from .errors import BookError
from .utils import to_checksum_address


def _a(address: Optional[str]) -> Optional[str]:
    return to_checksum_address(address) if address else None


@dataclass(frozen=True)
class Chain:
    name: str
    chain_id: int
    eid: int
    rpc_url: str
    endpoint: Optional[str] = None
    send_lib: Optional[str] = None
    receive_lib: Optional[str] = None
    dvn: Optional[str] = None
    executor: Optional[str] = None
    native_symbol: str = "ETH"

    @property
    def rpc_env(self) -> str:
        return f"{self.name.upper()}_RPC_URL"


LZ_ENDPOINT_V2 = "0x1a44076050125825900e736c501f859c50fE728c"

CHAINS: dict[str, Chain] = {
    "sonic": Chain(
        name="sonic",
        chain_id=146,
        eid=30332,
        rpc_url="https://rpc.soniclabs.com",
        endpoint=_a("0x6F475642a6e85809B1c36Fa62763669b1b48DD5B"),
        send_lib=_a("0xC39161c743D0307EB9BCc9FEF03eeb9Dc4802de7"),
        receive_lib=_a("0xe1844c5D63a9543023008D332Bd3d2e6f1FE1043"),
        dvn=_a("0x282b3386571f7f794450d5789911a9804fa346b4"),
        executor=_a("0x4208D6E27538189bB48E603D6123A94b8Abe0A0b"),
        native_symbol="S",
    ),
    "arbitrum": Chain(
        name="arbitrum",
        chain_id=42161,
        eid=30110,
        rpc_url="https://arb1.arbitrum.io/rpc",
        endpoint=_a(LZ_ENDPOINT_V2),
        send_lib=_a("0x975bcD720be66659e3EB3C0e4F1866a3020E493A"),
        receive_lib=_a("0x7B9E184e07a6EE1aC23eAe0fe8D6Be2f663f05e6"),
        dvn=_a("0x2f55c492897526677c5b68fb199ea31e2c126416"),
        executor=_a("0x31CAe3B7fB82d847621859fb1585353c5720660D"),
    ),
    "ethereum": Chain(
        name="ethereum",
        chain_id=1,
        eid=30101,
        rpc_url="https://ethereum-rpc.publicnode.com",
        endpoint=_a(LZ_ENDPOINT_V2),
        send_lib=_a("0xbB2Ea70C9E858123480642Cf96acbcCE1372dCe1"),
        receive_lib=_a("0xc02Ab410f0734EFa3F14628780e6e695156024C2"),
        dvn=_a("0x589dedbd617e0cbcb916a9223f4d1300c294236b"),
        executor=_a("0x173272739Bd7Aa6e4e214714048a9fE699453059"),
    ),
    "base": Chain(
        name="base",
        chain_id=8453,
        eid=30184,
        rpc_url="https://mainnet.base.org",
        endpoint=_a(LZ_ENDPOINT_V2),
        send_lib=_a("0xB5320B0B3a13cC860893E2Bd79FCd7e13484Dda2"),
        receive_lib=_a("0xc70AB6f32772f59fBfc23889Caf4Ba3376C84bAf"),
        dvn=_a("0x9e059a54699a285714207b43b055483e78faac25"),
        executor=_a("0x2CCA08ae69E0C44b18a57Ab2A87644234dAebaE4"),
    ),
}


@dataclass(frozen=True)
class RemoteToken:
    """An underlying token held by a gateway, bridged to s<symbol> on the hub."""

    symbol: str
    address: str
    decimals: int
    min_bridge: str = "0"

    @property
    def synthetic_symbol(self) -> str:
        return "s" + self.symbol


@dataclass(frozen=True)
class Deployment:
    hub_chain: str
    hub: str
    balancer: Optional[str]
    gateways: dict[str, str]
    synthetic_tokens: dict[str, str]
    contracts: dict[str, str]
    chains: dict[str, Chain] = field(default_factory=lambda: dict(CHAINS))
    remote_tokens: dict[str, dict[str, RemoteToken]] = field(default_factory=dict)

    def chain(self, key: Union[str, int]) -> Chain:
        """
        Look up a chain by name, EVM chain id or LayerZero EID.

        Raises:
            BookError: If no chain matches
        """
        if isinstance(key, str) and not key.isdigit():
            found = self.chains.get(key.lower())
            if found is None:
                known = ", ".join(sorted(self.chains))
                raise BookError(f"Unknown chain {key!r} (known: {known})")
            return found
        number = int(key)
        for candidate in self.chains.values():
            if number in (candidate.chain_id, candidate.eid):
                return candidate
        raise BookError(f"No chain with id or EID {number}")

    @property
    def hub_chain_info(self) -> Chain:
        return self.chain(self.hub_chain)

    def gateway_for(self, chain: Union[str, Chain]) -> str:
        name = chain.name if isinstance(chain, Chain) else chain.lower()
        try:
            return self.gateways[name]
        except KeyError:
            raise BookError(f"No gateway recorded for chain {name!r}") from None

    def remote_chains(self, only: Optional[list[str]] = None) -> list[Chain]:
        """Gateway chains, optionally restricted to the given names."""
        names = [n.lower() for n in only] if only else list(self.gateways)
        return [self.chain(n) for n in names if n != self.hub_chain]

    def token(self, symbol: str) -> str:
        for name, address in self.synthetic_tokens.items():
            if name.lower() == symbol.lower():
                return address
        raise BookError(f"Unknown synthetic token {symbol!r}")

    def remote_tokens_for(self, chain: Union[str, Chain]) -> list[RemoteToken]:
        name = chain.name if isinstance(chain, Chain) else chain.lower()
        return list(self.remote_tokens.get(name, {}).values())

    def contract(self, name: str) -> str:
        try:
            return self.contracts[name]
        except KeyError:
            raise BookError(f"No address recorded for {name!r}") from None


DEFAULT_DEPLOYMENT = Deployment(
    hub_chain="sonic",
    hub=_a("0x7ED2cCD9C9a17eD939112CC282D42c38168756Dd"),
    balancer=_a("0x3a27f366e09fe76A50DD50D415c770f6caf0F3E6"),
    gateways={
        "arbitrum": _a("0x187ddD9a94236Ba6d22376eE2E3C4C834e92f34e"),
        "ethereum": _a("0xba36FC6568B953f691dd20754607590C59b7646a"),
        "base": _a("0xB712543E7fB87C411AAbB10c6823cf39bbEBB4Bb"),
    },
    synthetic_tokens={
        "sWETH": _a("0x5E501C482952c1F2D58a4294F9A97759968c5125"),
        "sUSDT": _a("0x72dFC771E515423E5B0CD2acf703d0F7eb30bdEa"),
        "sUSDC": _a("0xa56a2C5678f8e10F61c6fBafCB0887571B9B432B"),
    },
    contracts={
        "mim": _a("0x84dC0B4EA2f302CCbDe37cFC6a4C434e0Fd08708"),
        "staking_vault": _a("0x4671B3F169Daee1eC027d60B484ce4fb98cF7db7"),
        "leverage_amm": _a("0xa883C4f63b203D59769eE75900fBfE992A358f3D"),
        "v3_lp_vault": _a("0xC4AC36c923658F9281bFEF592f36A2EC5101b19a"),
        "oracle": _a("0x5C6604099cf19021CB77F3ED1F77F5F438666ff3"),
        "sweth_mim_pool": _a("0x4ed3B3e2AD7e19124D921fE2F6956e1C62Cbf190"),
        "hub_getters": _a("0x6860dE88abb940F3f4Ff63F0DEEc3A78b9a8141e"),
    },
    remote_tokens={
        "arbitrum": {
            "WETH": RemoteToken("WETH", _a("0x82aF49447D8a07e3bd95BD0d56f35241523fBab1"), 18, "0.001"),
            "USDT": RemoteToken("USDT", _a("0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9"), 6, "1"),
            "USDC": RemoteToken("USDC", _a("0xaf88d065e77c8cC2239327C5EDb3A432268e5831"), 6, "1"),
        },
        "base": {
            "WETH": RemoteToken("WETH", _a("0x4200000000000000000000000000000000000006"), 18, "0.001"),
            "USDC": RemoteToken("USDC", _a("0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"), 6, "1"),
        },
        "ethereum": {
            "WETH": RemoteToken("WETH", _a("0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"), 18, "0.001"),
            "USDT": RemoteToken("USDT", _a("0xdAC17F958D2ee523a2206206994597C13D831ec7"), 6, "1"),
            "USDC": RemoteToken("USDC", _a("0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"), 6, "1"),
        },
    },
)


def get_chain(name_or_id: Union[str, int], deployment: Optional[Deployment] = None) -> Chain:
    """Chain by name, chain id or EID in the given (default built-in) deployment."""
    return (deployment or DEFAULT_DEPLOYMENT).chain(name_or_id)


def rpc_url_for(chain: Chain) -> str:
    """RPC URL for a chain: <CHAIN>_RPC_URL env var, else the public default."""
    return os.environ.get(chain.rpc_env) or chain.rpc_url


def load_deployment(path: Optional[Union[str, Path]] = None) -> Deployment:
    """
    Built-in deployment, overlaid with a JSON address book if given.

    The file may contain any of: "hub" ({"chain", "address", "balancer"}),
    "gateways", "synthetic_tokens", "contracts" (name -> address maps),
    "chains" (name -> Chain field overrides, new chains allowed) and
    "remote_tokens" (chain -> symbol -> {"address", "decimals", "min_bridge"}).

    Raises:
        BookError: If the file is missing or malformed
    """
    path = path or os.environ.get("BRIDGEOPS_BOOK")
    if not path:
        return DEFAULT_DEPLOYMENT

    book_path = Path(path).expanduser()
    try:
        overlay = json.loads(book_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise BookError(f"Address book not found: {book_path}") from None
    except json.JSONDecodeError as exc:
        raise BookError(f"Address book {book_path} is not valid JSON: {exc}") from exc
    if not isinstance(overlay, dict):
        raise BookError(f"Address book {book_path} must be a JSON object")

    return apply_overlay(DEFAULT_DEPLOYMENT, overlay)


def apply_overlay(base: Deployment, overlay: dict[str, Any]) -> Deployment:
    try:
        chains = dict(base.chains)
        for name, overrides in (overlay.get("chains") or {}).items():
            name = name.lower()
            if name in chains:
                chains[name] = replace(chains[name], **_chain_fields(overrides))
            else:
                chains[name] = Chain(name=name, **_chain_fields(overrides))

        hub = overlay.get("hub") or {}
        return replace(
            base,
            hub_chain=hub.get("chain", base.hub_chain).lower(),
            hub=_a(hub["address"]) if "address" in hub else base.hub,
            balancer=_a(hub["balancer"]) if "balancer" in hub else base.balancer,
            gateways=_merge(base.gateways, overlay.get("gateways"), lower_keys=True),
            synthetic_tokens=_merge(base.synthetic_tokens, overlay.get("synthetic_tokens")),
            contracts=_merge(base.contracts, overlay.get("contracts")),
            chains=chains,
            remote_tokens=_merge_remote_tokens(base.remote_tokens, overlay.get("remote_tokens")),
        )
    except (TypeError, ValueError, KeyError, AttributeError) as exc:
        raise BookError(f"Invalid address book entry: {exc}") from exc


_CHAIN_FIELDS = {f.name for f in fields(Chain)} - {"name"}
_ADDRESS_FIELDS = {"endpoint", "send_lib", "receive_lib", "dvn", "executor"}


def _chain_fields(overrides: dict[str, Any]) -> dict[str, Any]:
    unknown = set(overrides) - _CHAIN_FIELDS
    if unknown:
        raise ValueError(f"unknown chain field(s): {', '.join(sorted(unknown))}")
    return {
        k: _a(v) if k in _ADDRESS_FIELDS else v
        for k, v in overrides.items()
    }


def _merge(
    base: dict[str, str],
    extra: Optional[dict[str, str]],
    lower_keys: bool = False,
) -> dict[str, str]:
    merged = dict(base)
    for key, address in (extra or {}).items():
        merged[key.lower() if lower_keys else key] = _a(address)
    return merged


def _merge_remote_tokens(
    base: dict[str, dict[str, RemoteToken]],
    extra: Optional[dict[str, dict[str, Any]]],
) -> dict[str, dict[str, RemoteToken]]:
    merged = {chain: dict(tokens) for chain, tokens in base.items()}
    for chain, tokens in (extra or {}).items():
        entries = merged.setdefault(chain.lower(), {})
        for symbol, spec in tokens.items():
            entries[symbol] = RemoteToken(
                symbol=symbol,
                address=_a(spec["address"]),
                decimals=int(spec["decimals"]),
                min_bridge=str(spec.get("min_bridge", "0")),
            )
    return merged
