"""
ABI Fragments - Minimal contract interfaces from human-readable signatures.

The bridge contracts were never published with a full ABI, so every command
works from a handful of inline fragments such as

    function peers(uint32) view returns (bytes32)

This module turns those fragments into standard ABI entry dicts that
eth-abi can encode against, and holds the fragment sets for every contract
the CLI talks to.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Any, Iterable, Optional, Union

from ..errors import AbiError

_TOKEN_RE = re.compile(r"\s*(?:([A-Za-z_$][A-Za-z0-9_$]*)|(\d+)|(\S))")

_BASIC_TYPE_RE = re.compile(
    r"^(address|bool|string|bytes|function"
    r"|bytes(?:[1-9]|[12][0-9]|3[0-2])"
    r"|u?int(?:8|16|24|32|40|48|56|64|72|80|88|96|104|112|120|128"
    r"|136|144|152|160|168|176|184|192|200|208|216|224|232|240|248|256)?)$"
)

_KINDS = {"function", "error", "event", "constructor"}
_MUTABILITY = {"view", "pure", "payable", "nonpayable"}
_IGNORED_MODIFIERS = {"external", "public", "internal", "virtual", "override", "anonymous"}
_PARAM_LOCATIONS = {"memory", "calldata", "storage", "payable"}


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens: list[str] = []
        for match in _TOKEN_RE.finditer(text):
            token = match.group(1) or match.group(2) or match.group(3)
            if token:
                self.tokens.append(token)
        self.pos = 0

    def peek(self, offset: int = 0) -> Optional[str]:
        index = self.pos + offset
        return self.tokens[index] if index < len(self.tokens) else None

    def next(self) -> str:
        token = self.peek()
        if token is None:
            raise AbiError(f"Unexpected end of fragment: {self.text!r}")
        self.pos += 1
        return token

    def expect(self, token: str) -> None:
        got = self.next()
        if got != token:
            raise AbiError(f"Expected {token!r} but found {got!r} in {self.text!r}")

    def at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def params(self) -> list[dict[str, Any]]:
        self.expect("(")
        result: list[dict[str, Any]] = []
        if self.peek() == ")":
            self.next()
            return result
        while True:
            result.append(self.param())
            token = self.next()
            if token == ")":
                return result
            if token != ",":
                raise AbiError(f"Expected ',' or ')' but found {token!r} in {self.text!r}")

    def param(self) -> dict[str, Any]:
        param: dict[str, Any] = {"name": ""}
        if self.peek() == "tuple" and self.peek(1) == "(":
            self.next()
        if self.peek() == "(":
            param["components"] = self.params()
            base = "tuple"
        else:
            base = self.next()
            if base in ("uint", "int"):
                base += "256"
            if not _BASIC_TYPE_RE.match(base):
                raise AbiError(f"Unknown type {base!r} in {self.text!r}")

        while self.peek() == "[":
            self.next()
            size = ""
            if self.peek() != "]":
                size = self.next()
                if not size.isdigit():
                    raise AbiError(f"Invalid array size {size!r} in {self.text!r}")
            self.expect("]")
            base += f"[{size}]"
        param["type"] = base

        while self.peek() not in (None, ",", ")"):
            word = self.next()
            if word == "indexed":
                param["indexed"] = True
            elif word in _PARAM_LOCATIONS:
                continue
            elif not param["name"] and re.match(r"^[A-Za-z_$][A-Za-z0-9_$]*$", word):
                param["name"] = word
            else:
                raise AbiError(f"Unexpected {word!r} in parameter of {self.text!r}")
        return param


def parse_signature(text: str) -> dict[str, Any]:
    """
    Parse a human-readable fragment into an ABI entry.

    Args:
        text: e.g. "function balanceOf(address) view returns (uint256)",
              "error NotBorrower()", or just "owner()"

    Returns:
        ABI entry dict with type, name, inputs and (functions) outputs

    Raises:
        AbiError: If the fragment cannot be parsed
    """
    parser = _Parser(text.strip().rstrip(";"))
    if parser.at_end():
        raise AbiError("Empty fragment")

    kind = "function"
    if parser.peek() in _KINDS and parser.peek(1) != "(":
        kind = parser.next()

    if kind == "constructor":
        name = ""
    else:
        name = parser.next()
        if not re.match(r"^[A-Za-z_$][A-Za-z0-9_$]*$", name):
            raise AbiError(f"Invalid name {name!r} in {text!r}")

    entry: dict[str, Any] = {"type": kind, "name": name, "inputs": parser.params()}
    if kind in ("function", "constructor"):
        entry["stateMutability"] = "nonpayable"
    if kind == "function":
        entry["outputs"] = []

    while not parser.at_end():
        word = parser.next()
        if word in _MUTABILITY and kind in ("function", "constructor"):
            entry["stateMutability"] = word
        elif word in _IGNORED_MODIFIERS:
            continue
        elif word == "returns" and kind == "function":
            entry["outputs"] = parser.params()
        else:
            raise AbiError(f"Unexpected {word!r} in {text!r}")

    return entry


def canonical_type(param: dict[str, Any]) -> str:
    """Canonical type string for a parameter, tuples expanded to (a,b)."""
    type_ = param["type"]
    if type_.startswith("tuple"):
        inner = ",".join(canonical_type(c) for c in param.get("components", []))
        return f"({inner}){type_[len('tuple'):]}"
    return type_


def signature_of(entry: Union[str, dict[str, Any]]) -> str:
    """Canonical signature, e.g. "setPeer(uint32,bytes32)"."""
    if isinstance(entry, str):
        entry = parse_signature(entry)
    types = ",".join(canonical_type(p) for p in entry.get("inputs", []))
    return f"{entry['name']}({types})"


def build_abi(fragments: Iterable[Union[str, dict[str, Any]]]) -> list[dict[str, Any]]:
    """Build an ABI list from human-readable fragments (dicts pass through)."""
    return [f if isinstance(f, dict) else parse_signature(f) for f in fragments]


def find_function(abi: list[dict[str, Any]], name: str) -> dict[str, Any]:
    """
    Find a function entry by name, or by full signature for overloads.

    Raises:
        AbiError: If no function matches
    """
    by_signature = "(" in name
    for entry in abi:
        if entry.get("type") != "function":
            continue
        if by_signature and signature_of(entry) == signature_of(name):
            return entry
        if not by_signature and entry.get("name") == name:
            return entry
    raise AbiError(f"Function {name} not found in ABI")


def name_values(params: list[dict[str, Any]], values: Iterable[Any]) -> dict[str, Any]:
    """Pair decoded values with parameter names, recursing into tuples."""
    named: dict[str, Any] = {}
    for index, (param, value) in enumerate(zip(params, values)):
        key = param.get("name") or str(index)
        named[key] = _name_value(param, value)
    return named


def _name_value(param: dict[str, Any], value: Any) -> Any:
    type_ = param["type"]
    if not type_.startswith("tuple"):
        return value
    components = param.get("components", [])
    if type_ == "tuple":
        return name_values(components, value)
    element = {"type": type_[: type_.rindex("[")], "components": components}
    return [_name_value(element, item) for item in value]


# ---------------------------------------------------------------------------
# Fragment sets
# ---------------------------------------------------------------------------

ERC20_FRAGMENTS = [
    "function name() view returns (string)",
    "function symbol() view returns (string)",
    "function decimals() view returns (uint8)",
    "function totalSupply() view returns (uint256)",
    "function balanceOf(address account) view returns (uint256)",
    "function allowance(address owner, address spender) view returns (uint256)",
    "function transfer(address to, uint256 amount) returns (bool)",
    "function approve(address spender, uint256 amount) returns (bool)",
]

OWNABLE_FRAGMENTS = [
    "function owner() view returns (address)",
]

OAPP_FRAGMENTS = OWNABLE_FRAGMENTS + [
    "function endpoint() view returns (address)",
    "function peers(uint32 eid) view returns (bytes32)",
    "function setPeer(uint32 _eid, bytes32 _peer)",
]

HUB_FRAGMENTS = OAPP_FRAGMENTS + [
    "function balancer() view returns (address)",
    "function setBalancer(address _balancer)",
    "function manualLinkRemoteToken(address _syntheticTokenAddress, uint32 _srcEid, "
    "address _remoteTokenAddress, address _gatewayVault, int8 _decimalsDelta, uint256 _minBridgeAmt)",
]

GATEWAY_FRAGMENTS = OAPP_FRAGMENTS + [
    "function DST_EID() view returns (uint32)",
    "function getAllAvailableTokens() view returns (tuple(bool onPause, int8 decimalsDelta, "
    "address syntheticTokenAddress, address tokenAddress, uint8 tokenDecimals, "
    "string tokenSymbol, uint256 tokenBalance)[])",
]

# Read-only companion to the hub that answers link lookups
HUB_GETTERS_FRAGMENTS = [
    "function getSyntheticAddressByRemoteAddress(uint32 _eid, address _remoteAddress) view returns (address)",
    "function getRemoteTokenInfo(address syntheticToken, uint32 eid) view returns "
    "(address remoteAddress, int8 decimalsDelta, uint256 minBridgeAmt)",
    "function getGatewayVaultByEid(uint32 _eid) view returns (address)",
]

SYNTHETIC_TOKEN_FRAGMENTS = ERC20_FRAGMENTS + [
    "function hasRole(bytes32 role, address account) view returns (bool)",
    "function getRoleMemberCount(bytes32 role) view returns (uint256)",
    "function getRoleMember(bytes32 role, uint256 index) view returns (address)",
]

ENDPOINT_FRAGMENTS = [
    "function inboundNonce(address _receiver, uint32 _srcEid, bytes32 _sender) view returns (uint64)",
    "function lazyInboundNonce(address _receiver, uint32 _srcEid, bytes32 _sender) view returns (uint64)",
    "function getConfig(address _oapp, address _lib, uint32 _eid, uint32 _configType) view returns (bytes config)",
    "function getSendLibrary(address _sender, uint32 _dstEid) view returns (address lib)",
    "function getReceiveLibrary(address _receiver, uint32 _srcEid) view returns (address lib, bool isDefault)",
    "function inboundPayloadHash(address _receiver, uint32 _srcEid, bytes32 _sender, uint64 _nonce) "
    "view returns (bytes32)",
    "function skip(address _oapp, uint32 _srcEid, bytes32 _sender, uint64 _nonce)",
]

STAKING_VAULT_FRAGMENTS = ERC20_FRAGMENTS + OWNABLE_FRAGMENTS + [
    "function mim() view returns (address)",
    "function getCash() view returns (uint256)",
    "function totalBorrows() view returns (uint256)",
    "function totalAssets() view returns (uint256)",
    "function utilizationRate() view returns (uint256)",
    "function isBorrower(address) view returns (bool)",
    "function borrowBalanceOf(address) view returns (uint256)",
    "function setBorrower(address borrower, bool allowed)",
]

LEVERAGE_AMM_FRAGMENTS = OWNABLE_FRAGMENTS + [
    "function mim() view returns (address)",
    "function stakingVault() view returns (address)",
    "function oracle() view returns (address)",
    "function underlyingAsset() view returns (address)",
    "function v3LPVault() view returns (address)",
    "function totalDebt() view returns (uint256)",
]

V3_LP_VAULT_FRAGMENTS = OWNABLE_FRAGMENTS + [
    "function getTotalAssets() view returns (uint256 amount0, uint256 amount1)",
    "function rescueTokens(address token, uint256 amount)",
]

ORACLE_FRAGMENTS = [
    "function pool() view returns (address)",
    "function twapPeriod() view returns (uint32)",
    "function getPrice() view returns (uint256)",
    "function getInversePrice() view returns (uint256)",
    "function token0() view returns (address)",
    "function token1() view returns (address)",
]

POOL_FRAGMENTS = [
    "function slot0() view returns (uint160 sqrtPriceX96, int24 tick, uint16 observationIndex, "
    "uint16 observationCardinality, uint16 observationCardinalityNext, uint8 feeProtocol, bool unlocked)",
    "function token0() view returns (address)",
    "function token1() view returns (address)",
    "function liquidity() view returns (uint128)",
]

# LayerZero v2 message-library config payloads returned by getConfig()
CONFIG_TYPE_EXECUTOR = 1
CONFIG_TYPE_ULN = 2
EXECUTOR_CONFIG_TYPE = "(uint32,address)"
ULN_CONFIG_TYPE = "(uint64,uint8,uint8,uint8,address[],address[])"

PACKET_SENT_EVENT = "event PacketSent(bytes encodedPayload, bytes options, address sendLibrary)"


@lru_cache(maxsize=None)
def _cached(name: str) -> tuple[dict[str, Any], ...]:
    fragments = globals()[f"{name.upper()}_FRAGMENTS"]
    return tuple(build_abi(fragments))


def abi_for(name: str) -> list[dict[str, Any]]:
    """
    ABI for one of the known contract kinds.

    Args:
        name: "erc20", "hub", "hub_getters", "gateway", "synthetic_token", "endpoint",
              "staking_vault", "leverage_amm", "v3_lp_vault", "oracle", "pool"

    Raises:
        AbiError: If the kind is unknown
    """
    if f"{name.upper()}_FRAGMENTS" not in globals():
        raise AbiError(f"No ABI fragments for {name!r}")
    return list(_cached(name))


def known_functions() -> list[dict[str, Any]]:
    """Every function fragment the CLI knows about, one entry per signature."""
    seen: dict[str, dict[str, Any]] = {}
    for key in list(globals()):
        if not key.endswith("_FRAGMENTS"):
            continue
        for entry in _cached(key[: -len("_FRAGMENTS")].lower()):
            if entry["type"] == "function":
                seen.setdefault(signature_of(entry), entry)
    return list(seen.values())
