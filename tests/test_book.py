"""Unit tests for the address book and JSON overlays."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from bridgeops.book import (
    DEFAULT_DEPLOYMENT,
    apply_overlay,
    get_chain,
    load_deployment,
    rpc_url_for,
)
from bridgeops.errors import BookError
from bridgeops.utils import to_checksum_address

NEW_GATEWAY = "0x" + "ab" * 20


@pytest.fixture(autouse=True)
def _no_book_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("BRIDGEOPS_BOOK", raising=False)


class TestChainLookup:
    """Tests for Deployment.chain."""

    def test_by_name(self) -> None:
        assert DEFAULT_DEPLOYMENT.chain("Arbitrum").eid == 30110

    def test_by_chain_id(self) -> None:
        assert DEFAULT_DEPLOYMENT.chain(8453).name == "base"

    def test_by_eid_string(self) -> None:
        assert DEFAULT_DEPLOYMENT.chain("30332").name == "sonic"

    def test_unknown_name(self) -> None:
        with pytest.raises(BookError, match="Unknown chain 'polygon'"):
            DEFAULT_DEPLOYMENT.chain("polygon")

    def test_unknown_number(self) -> None:
        with pytest.raises(BookError):
            DEFAULT_DEPLOYMENT.chain(999)

    def test_hub_chain(self) -> None:
        hub_chain = DEFAULT_DEPLOYMENT.hub_chain_info
        assert hub_chain.name == "sonic"
        assert hub_chain.chain_id == 146

    def test_module_level_lookup(self) -> None:
        assert get_chain("base").eid == 30184
        assert get_chain(146).name == "sonic"
        assert get_chain(30101).name == "ethereum"

    def test_module_level_lookup_in_overlay(self) -> None:
        deployment = apply_overlay(
            DEFAULT_DEPLOYMENT,
            {"chains": {"optimism": {"chain_id": 10, "eid": 30111, "rpc_url": "https://mainnet.optimism.io"}}},
        )
        assert get_chain("optimism", deployment).eid == 30111
        with pytest.raises(BookError):
            get_chain("optimism")


class TestDeploymentLookups:
    """Tests for gateway, token and contract lookups."""

    def test_remote_chains_exclude_hub(self) -> None:
        names = [c.name for c in DEFAULT_DEPLOYMENT.remote_chains()]
        assert names == ["arbitrum", "ethereum", "base"]

    def test_remote_chains_restricted(self) -> None:
        assert [c.name for c in DEFAULT_DEPLOYMENT.remote_chains(["BASE"])] == ["base"]

    def test_gateway_for_missing_chain(self) -> None:
        with pytest.raises(BookError):
            DEFAULT_DEPLOYMENT.gateway_for("sonic")

    def test_token_case_insensitive(self) -> None:
        assert DEFAULT_DEPLOYMENT.token("sweth") == DEFAULT_DEPLOYMENT.synthetic_tokens["sWETH"]

    def test_unknown_token(self) -> None:
        with pytest.raises(BookError):
            DEFAULT_DEPLOYMENT.token("sDOGE")

    def test_unknown_contract(self) -> None:
        with pytest.raises(BookError):
            DEFAULT_DEPLOYMENT.contract("treasury")

    def test_addresses_are_checksummed(self) -> None:
        for address in [DEFAULT_DEPLOYMENT.hub, *DEFAULT_DEPLOYMENT.gateways.values()]:
            assert address == to_checksum_address(address.lower())

    def test_remote_tokens(self) -> None:
        symbols = [t.symbol for t in DEFAULT_DEPLOYMENT.remote_tokens_for("base")]
        assert symbols == ["WETH", "USDC"]
        usdt = DEFAULT_DEPLOYMENT.remote_tokens["ethereum"]["USDT"]
        assert usdt.decimals == 6
        assert usdt.synthetic_symbol == "sUSDT"
        assert DEFAULT_DEPLOYMENT.token(usdt.synthetic_symbol)

    def test_remote_tokens_unknown_chain(self) -> None:
        assert DEFAULT_DEPLOYMENT.remote_tokens_for("sonic") == []


class TestRpcUrl:
    """Tests for per-chain RPC URL resolution."""

    def test_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SONIC_RPC_URL", raising=False)
        assert rpc_url_for(DEFAULT_DEPLOYMENT.chain("sonic")) == "https://rpc.soniclabs.com"

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BASE_RPC_URL", "http://localhost:8545")
        assert rpc_url_for(DEFAULT_DEPLOYMENT.chain("base")) == "http://localhost:8545"


class TestOverlay:
    """Tests for JSON address-book overlays."""

    def test_no_path_returns_builtin(self) -> None:
        assert load_deployment() is DEFAULT_DEPLOYMENT

    def test_overlay_gateway_and_hub(self, tmp_path: Path) -> None:
        book = tmp_path / "book.json"
        book.write_text(
            json.dumps({"gateways": {"Base": NEW_GATEWAY}, "hub": {"balancer": NEW_GATEWAY}}),
            encoding="utf-8",
        )
        deployment = load_deployment(book)
        assert deployment.gateways["base"].lower() == NEW_GATEWAY
        assert deployment.balancer.lower() == NEW_GATEWAY
        assert deployment.gateways["arbitrum"] == DEFAULT_DEPLOYMENT.gateways["arbitrum"]
        assert deployment.hub == DEFAULT_DEPLOYMENT.hub

    def test_env_var_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        book = tmp_path / "book.json"
        book.write_text(json.dumps({"contracts": {"treasury": NEW_GATEWAY}}), encoding="utf-8")
        monkeypatch.setenv("BRIDGEOPS_BOOK", str(book))
        assert load_deployment().contract("treasury").lower() == NEW_GATEWAY

    def test_new_chain(self) -> None:
        deployment = apply_overlay(
            DEFAULT_DEPLOYMENT,
            {
                "chains": {"Optimism": {"chain_id": 10, "eid": 30111, "rpc_url": "https://mainnet.optimism.io"}},
                "gateways": {"optimism": NEW_GATEWAY},
            },
        )
        assert deployment.chain(10).name == "optimism"
        assert "optimism" in [c.name for c in deployment.remote_chains()]

    def test_chain_field_override(self) -> None:
        deployment = apply_overlay(
            DEFAULT_DEPLOYMENT, {"chains": {"sonic": {"rpc_url": "http://127.0.0.1:8545"}}}
        )
        assert deployment.chain("sonic").rpc_url == "http://127.0.0.1:8545"
        assert deployment.chain("sonic").eid == 30332

    def test_unknown_chain_field(self) -> None:
        with pytest.raises(BookError, match="unknown chain field"):
            apply_overlay(DEFAULT_DEPLOYMENT, {"chains": {"sonic": {"colour": "blue"}}})

    def test_remote_token_overlay(self) -> None:
        deployment = apply_overlay(
            DEFAULT_DEPLOYMENT,
            {"remote_tokens": {"Base": {"USDT": {"address": NEW_GATEWAY, "decimals": 6, "min_bridge": "2"}}}},
        )
        usdt = deployment.remote_tokens["base"]["USDT"]
        assert usdt.address == to_checksum_address(NEW_GATEWAY)
        assert usdt.min_bridge == "2"
        assert len(deployment.remote_tokens_for("base")) == 3
        assert "USDT" not in DEFAULT_DEPLOYMENT.remote_tokens["base"]

    def test_remote_token_missing_address(self) -> None:
        with pytest.raises(BookError):
            apply_overlay(DEFAULT_DEPLOYMENT, {"remote_tokens": {"base": {"DAI": {"decimals": 18}}}})

    def test_bad_address(self) -> None:
        with pytest.raises(BookError):
            apply_overlay(DEFAULT_DEPLOYMENT, {"gateways": {"base": "0x1234"}})

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(BookError, match="not found"):
            load_deployment(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        book = tmp_path / "book.json"
        book.write_text("{not json", encoding="utf-8")
        with pytest.raises(BookError, match="not valid JSON"):
            load_deployment(book)

    def test_non_object(self, tmp_path: Path) -> None:
        book = tmp_path / "book.json"
        book.write_text("[]", encoding="utf-8")
        with pytest.raises(BookError, match="JSON object"):
            load_deployment(book)
