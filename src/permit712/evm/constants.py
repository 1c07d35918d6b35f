"""
EVM Chain and Token Domain Configuration

Static metadata for well-known EIP-2612 tokens: the chain they live on and
the EIP-712 domain (``name`` / ``version`` / ``verifyingContract``) their
``permit()`` checks.
"""

import re
from typing import Dict

from pydantic import BaseModel, Field

from ..engine.exceptions import ConfigurationError
from ..eip712.domain import DomainDescriptor


class EvmAssetConfig(BaseModel):
    """Token asset configuration."""
    symbol: str
    address: str = Field(..., description="Token contract address")
    name: str = Field(..., description="EIP-712 domain name of the token")
    version: str = Field(..., description="EIP-712 domain version of the token")


class EvmChainConfig(BaseModel):
    """EVM blockchain network configuration."""
    caip2: str
    chain_id: int
    name: str = Field(..., description="Human-readable network name")
    assets: Dict[str, EvmAssetConfig] = Field(default_factory=dict, description="Supported assets")


_CAIP2_EIP155 = re.compile(r"^eip155[:-](\d+)$")

# Raw chain configuration data, keyed by CAIP-2 identifier.
_EVM_CHAINS_DATA: Dict = {
    "eip155:1": {
        "name": "Ethereum Mainnet",
        "assets": {
            "USDC": {
                "address": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
                "name": "USD Coin",
                "version": "2",
            },
        },
    },
    "eip155:8453": {
        "name": "Base Mainnet",
        "assets": {
            "USDC": {
                "address": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
                "name": "USD Coin",
                "version": "2",
            },
        },
    },
    "eip155:137": {
        "name": "Polygon Mainnet",
        "assets": {
            "USDC": {
                "address": "0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359",
                "name": "USD Coin",
                "version": "2",
            },
        },
    },
    "eip155:11155111": {
        "name": "Sepolia Testnet",
        "assets": {
            "USDC": {
                "address": "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238",
                "name": "USDC",
                "version": "2",
            },
        },
    },
}


def parse_caip2_chain_id(caip2: str) -> int:
    """
    Chain id of an ``eip155`` CAIP-2 identifier.

    Both ``eip155:<id>`` and the dash form ``eip155-<id>`` are accepted.

    Raises:
        ValueError: Not an ``eip155`` identifier, or the id is not positive.
    """
    match = _CAIP2_EIP155.match(caip2.strip()) if isinstance(caip2, str) else None
    if match is None or int(match.group(1)) == 0:
        raise ValueError(f"Expected 'eip155:<chain_id>' with a positive chain id, got {caip2!r}")
    return int(match.group(1))


def get_chain_config(caip2: str) -> EvmChainConfig:
    """
    Look up a known chain by CAIP-2 identifier.

    Raises:
        ConfigurationError: The chain is not in the table.
    """
    chain_id = parse_caip2_chain_id(caip2)
    key = f"eip155:{chain_id}"
    raw = _EVM_CHAINS_DATA.get(key)
    if raw is None:
        raise ConfigurationError(f"Unknown chain {caip2!r}; known chains: {sorted(_EVM_CHAINS_DATA)}")
    return EvmChainConfig(
        caip2=key,
        chain_id=chain_id,
        name=raw["name"],
        assets={
            symbol: EvmAssetConfig(symbol=symbol, **asset)
            for symbol, asset in raw["assets"].items()
        },
    )


def get_asset_config(caip2: str, symbol: str) -> EvmAssetConfig:
    chain = get_chain_config(caip2)
    asset = chain.assets.get(symbol.upper())
    if asset is None:
        raise ConfigurationError(f"Token {symbol!r} is not configured on {chain.caip2}")
    return asset


def get_token_domain(caip2: str, symbol: str) -> DomainDescriptor:
    """
    EIP-712 domain that a known token's ``permit()`` verifies against.

    Example::

        domain = get_token_domain("eip155:1", "USDC")
        # DomainDescriptor(name="USD Coin", version="2", chain_id=1, ...)
    """
    asset = get_asset_config(caip2, symbol)
    return DomainDescriptor(
        name=asset.name,
        version=asset.version,
        chain_id=parse_caip2_chain_id(caip2),
        verifying_contract=asset.address,
    )

