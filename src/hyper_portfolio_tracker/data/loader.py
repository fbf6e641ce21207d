"""Contract address and configuration loader."""

import os
from pathlib import Path
from typing import Any

import yaml

from hyper_portfolio_tracker.data.addresses import HYPEREVM_CHAIN
from hyper_portfolio_tracker.data.config import (
    HyperLendAddresses,
    PortfolioConfig,
    TokenContract,
    category_for,
)


def load_contracts() -> dict[str, Any]:
    """
    Load chain, API and contract configuration from contracts.yaml.

    Returns
    -------
    dict[str, Any]
        Raw configuration including chains, protocols, tokens and APIs

    """
    path = Path(__file__).parent / "contracts.yaml"
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f)


def get_chain_config(chain: str = HYPEREVM_CHAIN) -> dict[str, Any]:
    """
    Get configuration for a chain.

    Parameters
    ----------
    chain : str
        Chain name (default: 'hyperevm')

    Returns
    -------
    dict[str, Any]
        Chain configuration including RPC endpoints, protocols and tokens

    Raises
    ------
    KeyError
        If chain is not found in configuration

    """
    contracts = load_contracts()
    return contracts["chains"][chain]


def get_chain_id(chain: str = HYPEREVM_CHAIN) -> int:
    """Get numeric chain ID."""
    return get_chain_config(chain)["chain_id"]


def get_rpc_endpoints(chain: str = HYPEREVM_CHAIN) -> list[str]:
    """Get list of RPC endpoint URLs for a chain."""
    return get_chain_config(chain)["rpc_endpoints"]


def get_protocol_addresses(protocol: str, chain: str = HYPEREVM_CHAIN) -> dict[str, str]:
    """
    Get all contract addresses for a protocol on a chain.

    Parameters
    ----------
    protocol : str
        Protocol name (e.g., 'hyperlend')
    chain : str
        Chain name

    Returns
    -------
    dict[str, str]
        Mapping of contract names to addresses, empty if the protocol is unknown

    """
    try:
        return dict(get_chain_config(chain)["protocols"].get(protocol, {}))
    except KeyError:
        return {}


def get_token_contracts(chain: str = HYPEREVM_CHAIN) -> list[TokenContract]:
    """
    Get tracked ERC20 contracts in configured order.

    Returns
    -------
    list[TokenContract]
        Token contracts with their static category

    """
    tokens = get_chain_config(chain).get("tokens", {})
    return [
        TokenContract(symbol=symbol, address=address, category=category_for(symbol))
        for symbol, address in tokens.items()
    ]


def get_api_url(api: str) -> str:
    """
    Get the base URL of an external API.

    Raises
    ------
    KeyError
        If the API is not configured

    """
    return load_contracts()["apis"][api]


def load_config(chain: str = HYPEREVM_CHAIN, timeout: float = 30.0) -> PortfolioConfig:
    """
    Build the portfolio configuration, applying environment overrides.

    ``HYPEREVM_RPC_URL``, ``HYPERLIQUID_API_URL`` and ``PENDLE_API_URL``
    replace the configured endpoints when set.

    Parameters
    ----------
    chain : str
        Chain name
    timeout : float
        HTTP request timeout in seconds

    Returns
    -------
    PortfolioConfig
        Configuration ready to compose a repository

    """
    chain_config = get_chain_config(chain)
    hyperlend = get_protocol_addresses("hyperlend", chain)

    return PortfolioConfig(
        chain_id=chain_config["chain_id"],
        rpc_url=os.getenv("HYPEREVM_RPC_URL") or chain_config["rpc_endpoints"][0],
        hyperliquid_api_url=os.getenv("HYPERLIQUID_API_URL") or get_api_url("hyperliquid"),
        pendle_api_url=os.getenv("PENDLE_API_URL") or get_api_url("pendle"),
        hyperlend=HyperLendAddresses(**hyperlend),
        native_decimals=chain_config["native_decimals"],
        tokens=get_token_contracts(chain),
        timeout=timeout,
    )
