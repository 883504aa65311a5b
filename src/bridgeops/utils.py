from __future__ import annotations

from decimal import Decimal, InvalidOperation, localcontext
from typing import Union

from eth_hash.auto import keccak

ZERO_ADDRESS = "0x" + "0" * 40
ZERO_BYTES32 = "0x" + "0" * 64

Q96 = 2**96


def keccak256(data: bytes) -> bytes:
    # Keccak-256, not NIST SHA3-256. Never use hashlib.sha3_256 here.
    return keccak(data)


def strip_0x(value: str) -> str:
    return value[2:] if value[:2] in ("0x", "0X") else value


def hex_to_bytes(value: Union[str, bytes]) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return bytes.fromhex(strip_0x(value))


def to_checksum_address(address: str) -> str:
    """Convert an address to EIP-55 checksummed format."""
    addr = strip_0x(address).lower()
    if len(addr) != 40:
        raise ValueError(f"Invalid address length: {address}")
    addr_hash = keccak256(addr.encode("utf-8")).hex()
    result = "0x"
    for i, c in enumerate(addr):
        if c in "abcdef":
            result += c.upper() if int(addr_hash[i], 16) >= 8 else c
        else:
            result += c
    return result


def address_to_bytes32(address: str) -> str:
    """Left-pad an address to 32 bytes, the encoding OApp peers use."""
    addr = strip_0x(address).lower()
    if len(addr) != 40:
        raise ValueError(f"Invalid address: {address}")
    return "0x" + addr.rjust(64, "0")


def bytes32_to_address(value: Union[str, bytes]) -> str:
    raw = hex_to_bytes(value)
    if len(raw) != 32:
        raise ValueError(f"Expected 32 bytes, got {len(raw)}")
    return to_checksum_address(raw[12:].hex())


def is_zero_address(address: Union[str, bytes, None]) -> bool:
    if address is None:
        return True
    if isinstance(address, (bytes, bytearray)):
        return not any(address)
    return int(strip_0x(address) or "0", 16) == 0


def same_address(a: Union[str, bytes, None], b: Union[str, bytes, None]) -> bool:
    """Compare two addresses, accepting bytes32-padded peers on either side."""
    if a is None or b is None:
        return False

    def _norm(value: Union[str, bytes]) -> str:
        raw = hex_to_bytes(value) if isinstance(value, (bytes, bytearray)) else None
        text = raw.hex() if raw is not None else strip_0x(value).lower()
        return text[-40:].rjust(40, "0")

    return _norm(a) == _norm(b)


def format_units(raw: int, decimals: int = 18) -> str:
    """Render an integer token amount with decimals, trailing zeros trimmed."""
    if decimals == 0:
        return str(raw)
    sign = "-" if raw < 0 else ""
    whole, frac = divmod(abs(raw), 10**decimals)
    frac_text = str(frac).rjust(decimals, "0").rstrip("0")
    if not frac_text:
        return f"{sign}{whole}"
    return f"{sign}{whole}.{frac_text}"


def parse_units(text: str, decimals: int = 18) -> int:
    """Parse a human-readable amount ("1.5") into integer base units."""
    try:
        amount = Decimal(str(text).strip())
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {text!r}")
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {text!r}")
    with localcontext() as ctx:
        ctx.prec = 100
        scaled = amount * (Decimal(10) ** decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount {text} has more than {decimals} decimals")
    return int(scaled)


def truncate(message: object, limit: int = 100) -> str:
    text = str(message)
    return text if len(text) <= limit else text[:limit] + "..."


def code_size(code: str) -> int:
    return len(hex_to_bytes(code or "0x"))


def sqrt_price_x96_to_price(
    sqrt_price_x96: int, decimals0: int = 18, decimals1: int = 18
) -> Decimal:
    """Price of token0 denominated in token1 from a pool's sqrtPriceX96."""
    with localcontext() as ctx:
        ctx.prec = 60
        ratio = (Decimal(sqrt_price_x96) / Decimal(Q96)) ** 2
        return ratio * (Decimal(10) ** (decimals0 - decimals1))
