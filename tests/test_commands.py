"""Unit tests for the pure helpers behind the CLI commands."""

from __future__ import annotations

from decimal import Decimal

import pytest
from eth_abi import encode

from bridgeops.book import DEFAULT_DEPLOYMENT
from bridgeops.commands._common import DECLINED, DRY_RUN, FAILED, SENT, TxOutcome
from bridgeops.commands.balances import parse_gateway_tokens, usd_value
from bridgeops.commands.invoke import coerce_args, resolve_contract
from bridgeops.commands.links import LINKED, UNLINKED, build_token_links, link_status
from bridgeops.commands.links import MISMATCH as LINK_MISMATCH
from bridgeops.commands.lz import (
    PACKET_SENT_TOPIC,
    decode_executor_config,
    decode_uln_config,
    nonces_to_scan,
    pending_messages,
)
from bridgeops.commands.peers import MATCH, MISMATCH, UNSET, build_links, peer_status
from bridgeops.commands.probe import interpret_word
from bridgeops.commands.vault import utilization_percent
from bridgeops.errors import BookError
from bridgeops.onchain.abi import EXECUTOR_CONFIG_TYPE, ULN_CONFIG_TYPE, parse_signature
from bridgeops.utils import address_to_bytes32, hex_to_bytes, keccak256, same_address

DVN = "0x282b3386571f7f794450d5789911a9804fa346b4"


class TestPeerHelpers:
    """Tests for peer status and link building."""

    def test_status(self) -> None:
        hub = DEFAULT_DEPLOYMENT.hub
        assert peer_status(hex_to_bytes(address_to_bytes32(hub)), hub) == MATCH
        assert peer_status(b"\x01" * 32, hub) == MISMATCH
        assert peer_status(bytes(32), hub) == UNSET
        assert peer_status(None, hub) == UNSET

    def test_links_both_sides(self) -> None:
        links = build_links(DEFAULT_DEPLOYMENT)
        assert [link.kind for link in links] == ["hub"] * 3 + ["gateway"] * 3
        hub_to_base = links[2]
        assert hub_to_base.contract == DEFAULT_DEPLOYMENT.hub
        assert hub_to_base.remote_eid == 30184
        assert hub_to_base.expected == DEFAULT_DEPLOYMENT.gateways["base"]
        base_to_hub = links[5]
        assert base_to_hub.chain.name == "base"
        assert base_to_hub.remote_eid == 30332
        assert base_to_hub.expected == DEFAULT_DEPLOYMENT.hub

    def test_links_one_chain_one_side(self) -> None:
        links = build_links(DEFAULT_DEPLOYMENT, ["arbitrum"], side="gateway")
        assert len(links) == 1
        assert links[0].contract == DEFAULT_DEPLOYMENT.gateways["arbitrum"]


class TestLayerZeroHelpers:
    """Tests for ULN / executor config decoding."""

    def test_uln_config(self) -> None:
        data = encode([ULN_CONFIG_TYPE], [(20, 1, 0, 0, [DVN], [])])
        config = decode_uln_config(data)
        assert config.confirmations == 20
        assert config.required_dvn_count == 1
        assert same_address(config.required_dvns[0], DVN)
        assert config.optional_dvns == ()

    def test_uln_config_from_hex(self) -> None:
        data = "0x" + encode([ULN_CONFIG_TYPE], [(1, 2, 1, 1, [DVN, DVN], [DVN])]).hex()
        config = decode_uln_config(data)
        assert config.optional_dvn_threshold == 1
        assert len(config.required_dvns) == 2

    def test_executor_config(self) -> None:
        data = encode([EXECUTOR_CONFIG_TYPE], [(10000, DVN)])
        size, executor = decode_executor_config(data)
        assert size == 10000
        assert same_address(executor, DVN)

    def test_pending(self) -> None:
        assert pending_messages(5, 7) == 2
        assert pending_messages(7, 7) == 0
        assert pending_messages(8, 7) == 0

    def test_nonces_to_scan(self) -> None:
        assert list(nonces_to_scan(5, 7, extra=2)) == [6, 7, 8, 9]
        assert list(nonces_to_scan(7, 5, extra=0)) == [6, 7]
        assert list(nonces_to_scan(3, 3)) == [4, 5, 6, 7, 8]

    def test_packet_sent_topic(self) -> None:
        assert PACKET_SENT_TOPIC == "0x" + keccak256(b"PacketSent(bytes,bytes,address)").hex()


class TestBalanceHelpers:
    """Tests for gateway token parsing and USD valuation."""

    def test_parse_gateway_tokens(self) -> None:
        raw = [(True, 0, "0x" + "11" * 20, "0x" + "22" * 20, 6, "USDC", 5_000_000)]
        (token,) = parse_gateway_tokens(raw)
        assert token["onPause"] is True
        assert token["tokenSymbol"] == "USDC"
        assert token["tokenBalance"] == 5_000_000

    def test_usd_value(self) -> None:
        assert usd_value("weth", Decimal("2")) == Decimal("7000")
        assert usd_value("PEPE", Decimal("2")) is None


class TestProbeHelpers:
    """Tests for return-word interpretation."""

    def test_zero(self) -> None:
        assert interpret_word(bytes(32)).startswith("0")

    def test_address(self) -> None:
        word = hex_to_bytes(address_to_bytes32(DEFAULT_DEPLOYMENT.hub))
        assert interpret_word(word) == f"address {DEFAULT_DEPLOYMENT.hub}"

    def test_small_uint(self) -> None:
        assert interpret_word((18).to_bytes(32, "big")) == "uint 18"

    def test_true(self) -> None:
        assert interpret_word((1).to_bytes(32, "big")) == "1 / true"


class TestVaultHelpers:
    def test_utilization(self) -> None:
        assert utilization_percent(5 * 10**17) == Decimal(50)


class TestInvokeHelpers:
    """Tests for argument coercion and contract resolution."""

    def test_coerce_bytes_and_ints(self) -> None:
        entry = parse_signature("setPeer(uint32,bytes32)")
        peer = address_to_bytes32(DEFAULT_DEPLOYMENT.hub)
        assert coerce_args(entry, ["30110", peer]) == [30110, hex_to_bytes(peer)]

    def test_coerce_arrays(self) -> None:
        entry = parse_signature("f(uint256[],address)")
        assert coerce_args(entry, [["0x10", 2], "0x" + "11" * 20]) == [[16, 2], "0x" + "11" * 20]

    def test_wrong_count(self) -> None:
        with pytest.raises(ValueError, match="takes 2 argument"):
            coerce_args(parse_signature("setPeer(uint32,bytes32)"), [1])

    def test_resolve_names(self) -> None:
        assert resolve_contract(DEFAULT_DEPLOYMENT, "hub") == DEFAULT_DEPLOYMENT.hub
        assert resolve_contract(DEFAULT_DEPLOYMENT, "staking_vault") == DEFAULT_DEPLOYMENT.contracts["staking_vault"]
        assert resolve_contract(DEFAULT_DEPLOYMENT, "sUSDC") == DEFAULT_DEPLOYMENT.synthetic_tokens["sUSDC"]
        assert resolve_contract(DEFAULT_DEPLOYMENT, "0xabc") == "0xabc"

    def test_resolve_unknown(self) -> None:
        with pytest.raises(BookError):
            resolve_contract(DEFAULT_DEPLOYMENT, "treasury")


class TestLinkHelpers:
    """Tests for token link status and selection."""

    def test_status(self) -> None:
        token = DEFAULT_DEPLOYMENT.synthetic_tokens["sUSDC"]
        assert link_status(token.lower(), token) == LINKED
        assert link_status("0x" + "00" * 20, token) == UNLINKED
        assert link_status(None, token) == UNLINKED
        assert link_status("0x" + "12" * 20, token) == LINK_MISMATCH

    def test_all_links(self) -> None:
        links = build_token_links(DEFAULT_DEPLOYMENT)
        assert len(links) == 8
        assert links[0].label == "WETH on arbitrum -> sWETH"
        assert links[0].synthetic == DEFAULT_DEPLOYMENT.synthetic_tokens["sWETH"]

    def test_filtered_links(self) -> None:
        links = build_token_links(DEFAULT_DEPLOYMENT, ["ethereum", "base"], ["usdt"])
        assert [(link.chain.name, link.token.symbol) for link in links] == [("ethereum", "USDT")]

    def test_unknown_chain(self) -> None:
        with pytest.raises(BookError):
            build_token_links(DEFAULT_DEPLOYMENT, ["polygon"])


class TestTxOutcome:
    def test_only_failed_is_failure(self) -> None:
        assert TxOutcome(FAILED, exit_code=5).failed
        for status in (SENT, DRY_RUN, DECLINED):
            assert not TxOutcome(status).failed
