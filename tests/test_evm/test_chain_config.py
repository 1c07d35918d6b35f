"""
Test suite for chain/token configuration and environment settings.
Tests: 1) CAIP-2 parsing 2) Token domains 3) Environment values
"""
import os
from unittest.mock import patch

import pytest

from permit712.config import DEFAULT_DOMAIN_CACHE_SIZE, get_domain_cache_size, get_private_key_from_env
from permit712.eip712 import build_domain_separator
from permit712.engine.exceptions import ConfigurationError
from permit712.evm.constants import (
    get_asset_config,
    get_chain_config,
    get_token_domain,
    parse_caip2_chain_id,
)


class TestCaip2:

    @pytest.mark.parametrize("caip2,expected", [
        ("eip155:1", 1),
        ("eip155-8453", 8453),
        (" eip155:11155111 ", 11155111),
    ])
    def test_parse(self, caip2, expected):
        assert parse_caip2_chain_id(caip2) == expected

    @pytest.mark.parametrize("caip2", ["", "solana:1", "eip155:abc", "eip155:0", "eip155:1:2", "eip155:-1", None])
    def test_parse_invalid(self, caip2):
        with pytest.raises(ValueError):
            parse_caip2_chain_id(caip2)


class TestChainTable:

    def test_chain_config(self):
        chain = get_chain_config("eip155-8453")
        assert chain.caip2 == "eip155:8453"
        assert chain.chain_id == 8453
        assert "USDC" in chain.assets

    def test_unknown_chain(self):
        with pytest.raises(ConfigurationError):
            get_chain_config("eip155:999999")

    def test_asset_lookup_is_case_insensitive(self):
        asset = get_asset_config("eip155:1", "usdc")
        assert asset.address == "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"

    def test_unknown_asset(self):
        with pytest.raises(ConfigurationError):
            get_asset_config("eip155:1", "DOGE")

    def test_token_domain(self):
        domain = get_token_domain("eip155:1", "USDC")
        assert domain.to_dict() == {
            "name": "USD Coin",
            "version": "2",
            "chainId": 1,
            "verifyingContract": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
        }

    def test_token_domains_differ_per_chain(self):
        mainnet = build_domain_separator(get_token_domain("eip155:1", "USDC"))
        base = build_domain_separator(get_token_domain("eip155:8453", "USDC"))
        assert mainnet != base


class TestEnvironment:

    def test_private_key_from_env(self):
        with patch.dict(os.environ, {"PERMIT712_PRIVATE_KEY": "0xabc"}):
            assert get_private_key_from_env() == "0xabc"

    def test_empty_private_key_is_none(self):
        with patch.dict(os.environ, {"PERMIT712_PRIVATE_KEY": ""}):
            assert get_private_key_from_env() is None

    def test_cache_size_default(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("PERMIT712_DOMAIN_CACHE_SIZE", None)
            assert get_domain_cache_size() == DEFAULT_DOMAIN_CACHE_SIZE

    def test_cache_size_from_env(self):
        with patch.dict(os.environ, {"PERMIT712_DOMAIN_CACHE_SIZE": "16"}):
            assert get_domain_cache_size() == 16

    @pytest.mark.parametrize("raw", ["lots", "-1"])
    def test_cache_size_invalid(self, raw):
        with patch.dict(os.environ, {"PERMIT712_DOMAIN_CACHE_SIZE": raw}):
            with pytest.raises(ConfigurationError):
                get_domain_cache_size()
