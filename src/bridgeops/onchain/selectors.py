"""
Selector probing - reverse-engineer undocumented deployed contracts.

Most of the auxiliary contracts were redeployed many times from local
sources that drifted, so the only way to know which ABI a deployment really
has is to compute selectors for candidate signatures and look for them in
the runtime bytecode, or to decode whatever revert data comes back.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Union

from eth_abi import decode
from eth_abi.exceptions import DecodingError

from ..errors import AbiError
from ..utils import hex_to_bytes, keccak256, strip_0x
from .abi import canonical_type, name_values, parse_signature, signature_of

PUSH1 = 0x60
PUSH4 = 0x63
PUSH32 = 0x7F

ERROR_STRING_SELECTOR = "0x08c379a0"
PANIC_SELECTOR = "0x4e487b71"

PANIC_CODES = {
    0x00: "generic compiler panic",
    0x01: "assert failed",
    0x11: "arithmetic overflow or underflow",
    0x12: "division or modulo by zero",
    0x21: "invalid enum value",
    0x22: "corrupted storage byte array",
    0x31: "pop on empty array",
    0x32: "array index out of bounds",
    0x41: "out of memory",
    0x51: "call to zero-initialized function",
}

# Custom errors seen from the hub, gateways, vaults and OpenZeppelin/LayerZero bases
KNOWN_ERRORS = [
    "error OwnableUnauthorizedAccount(address account)",
    "error OwnableInvalidOwner(address owner)",
    "error NoPeer(uint32 eid)",
    "error OnlyPeer(uint32 eid, bytes32 sender)",
    "error OnlyEndpoint(address addr)",
    "error NotEnoughNative(uint256 msgValue)",
    "error InvalidDelegate()",
    "error LZ_InvalidNonce(uint64 nonce)",
    "error LZ_Unauthorized()",
    "error ERC20InsufficientBalance(address sender, uint256 balance, uint256 needed)",
    "error ERC20InsufficientAllowance(address spender, uint256 allowance, uint256 needed)",
    "error AccessControlUnauthorizedAccount(address account, bytes32 neededRole)",
    "error ZeroAmount()",
    "error ZeroShares()",
    "error InsufficientShares()",
    "error SlippageExceeded()",
    "error DepositsPaused_()",
    "error WithdrawalsPaused_()",
    "error NotWToken()",
    "error NotOperator()",
    "error NotBorrower()",
    "error InvalidLayers()",
    "error ExceedsMaxUtilization()",
    "error InsufficientLiquidity(uint256 available, uint256 required)",
]


def selector(signature: str) -> str:
    """
    Compute a 4-byte function or error selector.

    Args:
        signature: Canonical ("transfer(address,uint256)") or human-readable
                   ("function transfer(address to, uint256 amount)")

    Returns:
        0x-prefixed 8 hex character selector
    """
    canonical = signature_of(signature)
    return "0x" + keccak256(canonical.encode("utf-8"))[:4].hex()


def bytecode_selectors(code: Union[str, bytes]) -> set[str]:
    """
    Collect every 4-byte constant pushed with PUSH4 in runtime bytecode.

    The Solidity dispatcher compares calldata against PUSH4 immediates, so
    this is a superset of the contract's external selectors. PUSH
    immediates are skipped while walking so data bytes are never read as
    opcodes.
    """
    raw = hex_to_bytes(code)
    found: set[str] = set()
    pc = 0
    while pc < len(raw):
        op = raw[pc]
        if PUSH1 <= op <= PUSH32:
            size = op - PUSH1 + 1
            if op == PUSH4 and pc + 1 + size <= len(raw):
                found.add("0x" + raw[pc + 1 : pc + 1 + size].hex())
            pc += 1 + size
        else:
            pc += 1
    return found


def selector_in_bytecode(code: Union[str, bytes], signature: str) -> bool:
    target = signature if _is_selector(signature) else selector(signature)
    return target.lower() in bytecode_selectors(code)


@dataclass(frozen=True)
class SelectorMatch:
    signature: str
    selector: str
    matched: bool


def match_signatures(target: str, candidates: Iterable[str]) -> list[SelectorMatch]:
    """
    Compute the selector of each candidate and flag those equal to target.

    Candidates that fail to parse are reported with an empty selector.
    """
    wanted = _normalize_selector(target)
    results = []
    for candidate in candidates:
        try:
            canonical = signature_of(candidate)
            sel = selector(canonical)
        except AbiError:
            results.append(SelectorMatch(candidate, "", False))
            continue
        results.append(SelectorMatch(canonical, sel, sel == wanted))
    return results


@dataclass(frozen=True)
class DecodedRevert:
    selector: Optional[str]
    name: Optional[str] = None
    args: tuple = ()

    def __str__(self) -> str:
        if self.selector is None:
            return "reverted without data"
        if self.name is None:
            return f"unknown error {self.selector}"
        if self.name == "Error":
            return str(self.args[0])
        if self.name == "Panic":
            code = self.args[0]
            meaning = PANIC_CODES.get(code, "unknown panic code")
            return f"Panic(0x{code:02x}): {meaning}"
        rendered = ", ".join(_render(a) for a in self.args)
        return f"{self.name}({rendered})"


def decode_revert(
    data: Union[str, bytes, None],
    candidates: Iterable[str] = (),
) -> DecodedRevert:
    """
    Decode revert data from a failed call.

    Args:
        data: Revert bytes as returned by the node
        candidates: Extra error signatures to try before KNOWN_ERRORS

    Returns:
        DecodedRevert; name is None when no candidate matches
    """
    raw = hex_to_bytes(data) if data else b""
    if not raw:
        return DecodedRevert(None)
    if len(raw) < 4:
        return DecodedRevert("0x" + raw.hex())

    sel = "0x" + raw[:4].hex()
    body = raw[4:]

    # Truncated bodies fall through to an undecoded selector
    if sel == ERROR_STRING_SELECTOR:
        try:
            (message,) = decode(["string"], body)
        except (DecodingError, UnicodeDecodeError):
            return DecodedRevert(sel)
        return DecodedRevert(sel, "Error", (message,))
    if sel == PANIC_SELECTOR:
        try:
            (code,) = decode(["uint256"], body)
        except DecodingError:
            return DecodedRevert(sel)
        return DecodedRevert(sel, "Panic", (code,))

    for candidate in [*candidates, *KNOWN_ERRORS]:
        try:
            entry = parse_signature(candidate)
        except AbiError:
            continue
        if selector(signature_of(entry)) != sel:
            continue
        types = [canonical_type(p) for p in entry["inputs"]]
        try:
            args = tuple(decode(types, body)) if types else ()
        except DecodingError:
            continue
        return DecodedRevert(sel, entry["name"], args)

    return DecodedRevert(sel)


@dataclass(frozen=True)
class DecodedCall:
    selector: str
    signature: Optional[str] = None
    args: Optional[dict] = None


def decode_calldata(
    data: Union[str, bytes],
    candidates: Iterable[Union[str, dict]],
) -> DecodedCall:
    """
    Match calldata against candidate function signatures and decode it.

    The first candidate whose selector matches and whose argument types
    decode the body cleanly wins. signature is None when nothing fits.
    """
    raw = hex_to_bytes(data)
    if len(raw) < 4:
        raise AbiError(f"Calldata too short for a selector: 0x{raw.hex()}")
    sel = "0x" + raw[:4].hex()
    body = raw[4:]
    for candidate in candidates:
        try:
            entry = parse_signature(candidate) if isinstance(candidate, str) else candidate
        except AbiError:
            continue
        if selector(signature_of(entry)) != sel:
            continue
        types = [canonical_type(p) for p in entry["inputs"]]
        try:
            values = decode(types, body) if types else ()
        except DecodingError:
            continue
        return DecodedCall(sel, signature_of(entry), name_values(entry["inputs"], values))
    return DecodedCall(sel)


def _is_selector(value: str) -> bool:
    text = strip_0x(value)
    return len(text) == 8 and all(c in "0123456789abcdefABCDEF" for c in text)


def _normalize_selector(value: str) -> str:
    if not _is_selector(value):
        raise AbiError(f"Not a 4-byte selector: {value}")
    return "0x" + strip_0x(value).lower()


def _render(value: object) -> str:
    if isinstance(value, bytes):
        return "0x" + value.hex()
    return str(value)
