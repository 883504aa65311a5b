"""Unit tests for the human-readable ABI fragment parser."""

from __future__ import annotations

import pytest

from bridgeops.errors import AbiError
from bridgeops.onchain.abi import (
    abi_for,
    build_abi,
    canonical_type,
    find_function,
    known_functions,
    name_values,
    parse_signature,
    signature_of,
)
from bridgeops.onchain.rpc import decode_result, encode_call


class TestParseSignature:
    """Tests for parse_signature."""

    def test_view_function_with_returns(self) -> None:
        entry = parse_signature("function balanceOf(address account) view returns (uint256)")
        assert entry["type"] == "function"
        assert entry["name"] == "balanceOf"
        assert entry["inputs"] == [{"name": "account", "type": "address"}]
        assert entry["outputs"] == [{"name": "", "type": "uint256"}]
        assert entry["stateMutability"] == "view"

    def test_bare_signature(self) -> None:
        entry = parse_signature("setPeer(uint32,bytes32)")
        assert entry["type"] == "function"
        assert [p["type"] for p in entry["inputs"]] == ["uint32", "bytes32"]
        assert entry["stateMutability"] == "nonpayable"

    def test_uint_alias(self) -> None:
        entry = parse_signature("function f(uint a, int b)")
        assert [p["type"] for p in entry["inputs"]] == ["uint256", "int256"]

    def test_error_fragment(self) -> None:
        entry = parse_signature("error InsufficientLiquidity(uint256 available, uint256 required)")
        assert entry["type"] == "error"
        assert "outputs" not in entry

    def test_event_indexed(self) -> None:
        entry = parse_signature("event Transfer(address indexed from, address indexed to, uint256 value)")
        assert entry["type"] == "event"
        assert entry["inputs"][0]["indexed"] is True
        assert "indexed" not in entry["inputs"][2]

    def test_data_locations_ignored(self) -> None:
        entry = parse_signature("function f(string calldata s, bytes memory b) external")
        assert [p["name"] for p in entry["inputs"]] == ["s", "b"]

    def test_tuple_array(self) -> None:
        entry = parse_signature(
            "function get() view returns (tuple(bool paused, address token)[] items)"
        )
        output = entry["outputs"][0]
        assert output["type"] == "tuple[]"
        assert output["name"] == "items"
        assert [c["name"] for c in output["components"]] == ["paused", "token"]
        assert canonical_type(output) == "(bool,address)[]"

    def test_anonymous_tuple(self) -> None:
        entry = parse_signature("function f((uint64,address[])[2] cfg)")
        assert canonical_type(entry["inputs"][0]) == "(uint64,address[])[2]"

    @pytest.mark.parametrize(
        "fragment",
        [
            "",
            "function f(",
            "function f(uint7)",
            "function f(address a b)",
            "function f() sideways",
            "function 1f()",
        ],
    )
    def test_malformed(self, fragment: str) -> None:
        with pytest.raises(AbiError):
            parse_signature(fragment)


class TestSignatures:
    """Tests for canonical signatures and ABI lookup."""

    def test_signature_of_fragment(self) -> None:
        assert signature_of("function peers(uint32 eid) view returns (bytes32)") == "peers(uint32)"

    def test_find_by_name(self) -> None:
        abi = abi_for("hub")
        assert find_function(abi, "setPeer")["name"] == "setPeer"

    def test_find_by_signature(self) -> None:
        abi = build_abi(["function f(uint256)", "function f(address)"])
        assert find_function(abi, "f(address)")["inputs"][0]["type"] == "address"

    def test_missing_function(self) -> None:
        with pytest.raises(AbiError, match="not found"):
            find_function(abi_for("erc20"), "mint")

    def test_unknown_contract_kind(self) -> None:
        with pytest.raises(AbiError):
            abi_for("nope")

    def test_every_fragment_set_parses(self) -> None:
        for kind in [
            "erc20", "hub", "hub_getters", "gateway", "synthetic_token", "endpoint",
            "staking_vault", "leverage_amm", "v3_lp_vault", "oracle", "pool",
        ]:
            assert abi_for(kind)

    def test_known_functions_unique(self) -> None:
        signatures = [signature_of(entry) for entry in known_functions()]
        assert len(signatures) == len(set(signatures))
        assert "setPeer(uint32,bytes32)" in signatures
        assert "skip(address,uint32,bytes32,uint64)" in signatures
        assert "manualLinkRemoteToken(address,uint32,address,address,int8,uint256)" in signatures


class TestEncoding:
    """Tests for calldata encoding against fragments."""

    def test_encode_owner(self) -> None:
        assert encode_call(abi_for("hub"), "owner", []) == "0x8da5cb5b"

    def test_encode_balance_of(self) -> None:
        data = encode_call(abi_for("erc20"), "balanceOf", ["0x" + "11" * 20])
        assert data == "0x70a08231" + "0" * 24 + "11" * 20

    def test_wrong_argument_count(self) -> None:
        with pytest.raises(ValueError, match="takes 1 argument"):
            encode_call(abi_for("erc20"), "balanceOf", [])

    def test_unencodable_argument(self) -> None:
        with pytest.raises(ValueError, match="Cannot encode"):
            encode_call(abi_for("erc20"), "balanceOf", ["not an address"])

    def test_decode_multiple_outputs(self) -> None:
        data = "0x" + "0" * 63 + "5" + "0" * 63 + "1"
        lib, is_default = decode_result(abi_for("endpoint"), "getReceiveLibrary", data)
        assert is_default is True
        assert lib.lower() == "0x" + "0" * 39 + "5"


class TestNameValues:
    """Tests for pairing decoded values with names."""

    def test_nested_tuples(self) -> None:
        entry = parse_signature(
            "function get() view returns (tuple(bool paused, string symbol)[] items)"
        )
        named = name_values(entry["outputs"], [[(True, "WETH"), (False, "USDC")]])
        assert named == {
            "items": [{"paused": True, "symbol": "WETH"}, {"paused": False, "symbol": "USDC"}]
        }

    def test_unnamed_outputs_use_index(self) -> None:
        entry = parse_signature("function f() view returns (uint256, address)")
        assert name_values(entry["outputs"], [1, "0x"]) == {"0": 1, "1": "0x"}
