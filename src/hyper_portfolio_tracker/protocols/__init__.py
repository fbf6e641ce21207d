"""On-chain readers for HyperEVM balances and lending protocols."""

from hyper_portfolio_tracker.protocols.base import BaseProtocolHandler, ContractCallError
from hyper_portfolio_tracker.protocols.erc20 import ERC20BalanceReader, NativeBalanceReader
from hyper_portfolio_tracker.protocols.hyperlend import HyperLendHandler

__all__ = [
    "BaseProtocolHandler",
    "ContractCallError",
    "ERC20BalanceReader",
    "HyperLendHandler",
    "NativeBalanceReader",
]
