"""Core functionality including models, aggregation reducers, and query fan-out."""

from hyper_portfolio_tracker.core.aggregator import (
    aggregate_hyperlend,
    build_overview,
    build_snapshot,
    min_health_factor,
    pendle_valuation,
    percentage,
    sum_balances,
)
from hyper_portfolio_tracker.core.fanout import NeedQuery, PortfolioQueries, QueryState, QueryStatus
from hyper_portfolio_tracker.core.helpers import (
    add_address,
    ensure_list,
    is_valid_address,
    normalize_candidate,
    remove_address,
)
from hyper_portfolio_tracker.core.models import (
    TOKEN_NEEDS,
    CoreHealthData,
    CoreLendingPosition,
    DataNeed,
    HyperLendAggregate,
    HyperLendData,
    IsolatedHealthData,
    IsolatedLendingPosition,
    OpaquePayload,
    PendleMarketPosition,
    PortfolioOverview,
    PortfolioResults,
    PortfolioSnapshot,
    TokenBalance,
    TokenItem,
    YieldSubPosition,
    to_decimal,
)

__all__ = [
    "TOKEN_NEEDS",
    "CoreHealthData",
    "CoreLendingPosition",
    "DataNeed",
    "HyperLendAggregate",
    "HyperLendData",
    "IsolatedHealthData",
    "IsolatedLendingPosition",
    "NeedQuery",
    "OpaquePayload",
    "PendleMarketPosition",
    "PortfolioOverview",
    "PortfolioQueries",
    "PortfolioResults",
    "PortfolioSnapshot",
    "QueryState",
    "QueryStatus",
    "TokenBalance",
    "TokenItem",
    "YieldSubPosition",
    "add_address",
    "aggregate_hyperlend",
    "build_overview",
    "build_snapshot",
    "ensure_list",
    "is_valid_address",
    "min_health_factor",
    "normalize_candidate",
    "pendle_valuation",
    "percentage",
    "remove_address",
    "sum_balances",
    "to_decimal",
]
