"""RPC layer with the shared HyperEVM provider and retry policy."""

from hyper_portfolio_tracker.rpc.provider import ERC20_BALANCE_OF_ABI, HyperEVMProvider, format_units
from hyper_portfolio_tracker.rpc.retry import RetryConfig, retry_async

__all__ = [
    "ERC20_BALANCE_OF_ABI",
    "HyperEVMProvider",
    "RetryConfig",
    "format_units",
    "retry_async",
]
