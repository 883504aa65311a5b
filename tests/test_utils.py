"""Unit tests for utils.py functions."""

from __future__ import annotations

from decimal import Decimal

import pytest

from bridgeops.utils import (
    Q96,
    ZERO_ADDRESS,
    address_to_bytes32,
    bytes32_to_address,
    code_size,
    format_units,
    hex_to_bytes,
    is_zero_address,
    keccak256,
    parse_units,
    same_address,
    sqrt_price_x96_to_price,
    to_checksum_address,
    truncate,
)

HUB = "0x7ED2cCD9C9a17eD939112CC282D42c38168756Dd"


class TestKeccak:
    """Tests for keccak256 (Keccak, not SHA3-256)."""

    def test_empty_input(self) -> None:
        assert keccak256(b"").hex() == (
            "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
        )

    def test_transfer_selector_prefix(self) -> None:
        assert keccak256(b"transfer(address,uint256)")[:4].hex() == "a9059cbb"


class TestChecksumAddress:
    """Tests for EIP-55 checksumming."""

    def test_known_vectors(self) -> None:
        assert (
            to_checksum_address("0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed")
            == "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
        )
        assert (
            to_checksum_address("0xFB6916095CA1DF60BB79CE92CE3EA74C37C5D359")
            == "0xfB6916095ca1df60bB79Ce92cE3Ea74c37c5d359"
        )

    def test_rejects_wrong_length(self) -> None:
        with pytest.raises(ValueError):
            to_checksum_address("0x1234")


class TestPeerEncoding:
    """Tests for bytes32 peer encoding."""

    def test_left_pads_to_32_bytes(self) -> None:
        encoded = address_to_bytes32(HUB)
        assert len(encoded) == 66
        assert encoded == "0x" + "0" * 24 + HUB[2:].lower()

    def test_back_to_address(self) -> None:
        assert bytes32_to_address(address_to_bytes32(HUB)) == HUB

    def test_bytes_input(self) -> None:
        raw = hex_to_bytes(address_to_bytes32(HUB))
        assert bytes32_to_address(raw) == HUB

    def test_rejects_short_input(self) -> None:
        with pytest.raises(ValueError):
            bytes32_to_address("0x1234")

    def test_rejects_bad_address(self) -> None:
        with pytest.raises(ValueError):
            address_to_bytes32("0xabc")


class TestAddressComparison:
    """Tests for same_address and is_zero_address."""

    def test_case_insensitive(self) -> None:
        assert same_address(HUB, HUB.lower())

    def test_bytes32_peer_matches_address(self) -> None:
        peer = hex_to_bytes(address_to_bytes32(HUB))
        assert same_address(peer, HUB)
        assert same_address(HUB, address_to_bytes32(HUB))

    def test_different_addresses(self) -> None:
        assert not same_address(HUB, ZERO_ADDRESS)

    def test_none_never_matches(self) -> None:
        assert not same_address(None, HUB)
        assert not same_address(None, None)

    def test_zero_detection(self) -> None:
        assert is_zero_address(ZERO_ADDRESS)
        assert is_zero_address(bytes(32))
        assert is_zero_address(None)
        assert not is_zero_address(HUB)


class TestUnits:
    """Tests for format_units / parse_units."""

    def test_format_trims_trailing_zeros(self) -> None:
        assert format_units(1_500_000, 6) == "1.5"

    def test_format_whole_amount(self) -> None:
        assert format_units(2 * 10**18) == "2"

    def test_format_small_amount(self) -> None:
        assert format_units(1, 18) == "0.000000000000000001"

    def test_format_zero_decimals(self) -> None:
        assert format_units(42, 0) == "42"

    def test_format_negative(self) -> None:
        assert format_units(-1_500_000, 6) == "-1.5"

    def test_parse(self) -> None:
        assert parse_units("1.5", 6) == 1_500_000
        assert parse_units("100", 18) == 100 * 10**18

    def test_parse_too_many_decimals(self) -> None:
        with pytest.raises(ValueError, match="more than 6 decimals"):
            parse_units("1.0000001", 6)

    def test_parse_invalid(self) -> None:
        with pytest.raises(ValueError, match="Invalid amount"):
            parse_units("lots", 18)

    @pytest.mark.parametrize("text", ["inf", "-Infinity", "NaN", "sNaN"])
    def test_parse_non_finite(self, text: str) -> None:
        with pytest.raises(ValueError, match="Invalid amount"):
            parse_units(text, 18)


class TestMisc:
    """Tests for the small helpers."""

    def test_truncate_long_message(self) -> None:
        result = truncate("x" * 150)
        assert result == "x" * 100 + "..."

    def test_truncate_short_message(self) -> None:
        assert truncate("short") == "short"

    def test_code_size(self) -> None:
        assert code_size("0x") == 0
        assert code_size("0x6080604052") == 5

    def test_sqrt_price_parity(self) -> None:
        assert sqrt_price_x96_to_price(Q96) == Decimal(1)

    def test_sqrt_price_decimal_adjustment(self) -> None:
        # token0 with 18 decimals priced in a 6-decimal token1
        assert sqrt_price_x96_to_price(Q96, 18, 6) == Decimal(10) ** 12

    def test_sqrt_price_doubling(self) -> None:
        assert sqrt_price_x96_to_price(2 * Q96) == Decimal(4)
