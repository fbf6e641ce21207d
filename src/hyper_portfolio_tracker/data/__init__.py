"""Data loading and configuration management."""

from hyper_portfolio_tracker.data.addresses import (
    ADDRESS_PATTERN,
    HYPEREVM_CHAIN,
    HYPEREVM_CHAIN_ID,
    STABLE_TOKEN_SYMBOLS,
    TOKEN_CATEGORIES,
    TokenCategory,
)
from hyper_portfolio_tracker.data.config import (
    HyperLendAddresses,
    PortfolioConfig,
    TokenContract,
    category_for,
)
from hyper_portfolio_tracker.data.loader import (
    get_api_url,
    get_chain_config,
    get_chain_id,
    get_protocol_addresses,
    get_rpc_endpoints,
    get_token_contracts,
    load_config,
    load_contracts,
)

__all__ = [
    # Centralized constants
    "ADDRESS_PATTERN",
    "HYPEREVM_CHAIN",
    "HYPEREVM_CHAIN_ID",
    "STABLE_TOKEN_SYMBOLS",
    "TOKEN_CATEGORIES",
    "HyperLendAddresses",
    "PortfolioConfig",
    "TokenCategory",
    "TokenContract",
    "category_for",
    # Loader functions
    "get_api_url",
    "get_chain_config",
    "get_chain_id",
    "get_protocol_addresses",
    "get_rpc_endpoints",
    "get_token_contracts",
    "load_config",
    "load_contracts",
]
