"""Pure reducers merging per-address results into one portfolio snapshot."""

from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from hyper_portfolio_tracker.core.models import (
    DataNeed,
    HyperLendAggregate,
    HyperLendData,
    PendleMarketPosition,
    PortfolioOverview,
    PortfolioResults,
    PortfolioSnapshot,
    TokenBalance,
    TokenItem,
    to_decimal,
)
from hyper_portfolio_tracker.data.addresses import STABLE_TOKEN_SYMBOLS, TOKEN_CATEGORIES

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def sum_balances(balances: Iterable[Any]) -> Decimal:
    """Sum per-address balances, treating bad entries as zero."""
    return sum((to_decimal(balance) for balance in balances), ZERO)


def min_health_factor(values: Iterable[Decimal | None]) -> Decimal | None:
    """
    Worst-case health factor across addresses.

    ``None`` means the address has no borrows and is skipped. It is neither
    0 nor infinity.

    Parameters
    ----------
    values : Iterable[Decimal | None]
        Per-address health factors

    Returns
    -------
    Decimal | None
        Minimum of the present values, or None if none is present

    """
    lowest: Decimal | None = None
    for value in values:
        if value is None:
            continue
        if lowest is None or value < lowest:
            lowest = value
    return lowest


def aggregate_hyperlend(data: Iterable[HyperLendData]) -> HyperLendAggregate:
    """
    Merge HyperLend data of several addresses.

    Totals add the Core and Isolated modules; positions are concatenated in
    address order; health factors are the per-module worst case.

    Parameters
    ----------
    data : Iterable[HyperLendData]
        Successful per-address results

    Returns
    -------
    HyperLendAggregate
        Merged totals, positions and health factors

    """
    items = list(data)

    return HyperLendAggregate(
        total_supplied_usd=sum(
            (item.core.total_supplied_usd + item.isolated.total_supplied_usd for item in items),
            ZERO,
        ),
        total_borrowed_usd=sum(
            (item.core.total_borrowed_usd + item.isolated.total_borrowed_usd for item in items),
            ZERO,
        ),
        core_health_factor=min_health_factor(item.core.health_factor for item in items),
        isolated_health_factor=min_health_factor(item.isolated.health_factor for item in items),
        core_positions=[position for item in items for position in item.core.positions],
        isolated_positions=[position for item in items for position in item.isolated.positions],
    )


def pendle_valuation(positions: Iterable[PendleMarketPosition]) -> Decimal:
    """Sum pt, yt and lp valuations; each leg counts independently."""
    return sum(
        (
            to_decimal(position.pt.valuation) + to_decimal(position.yt.valuation) + to_decimal(position.lp.valuation)
            for position in positions
        ),
        ZERO,
    )


def percentage(part: Decimal, total: Decimal) -> Decimal:
    """Share of ``part`` in ``total`` in percent, 0 when the total is not positive."""
    if total <= 0:
        return ZERO
    return part / total * HUNDRED


def _flatten(nested: Iterable[Iterable[PendleMarketPosition]]) -> list[PendleMarketPosition]:
    return [position for positions in nested for position in positions]


def build_snapshot(results: PortfolioResults) -> PortfolioSnapshot:
    """
    Compute the portfolio valuation from the currently available results.

    Stable tokens are valued 1:1 in USD. DeFi is HyperLend supplied USD plus
    Pendle valuations. HyperCore exchange state is passed through and not
    valued, so its category is always 0.

    Parameters
    ----------
    results : PortfolioResults
        Successful results per need

    Returns
    -------
    PortfolioSnapshot
        Totals, category percentages and the token display list

    """
    stable_balances = [
        (symbol, sum_balances(results.token_balances.get(symbol, []))) for symbol in STABLE_TOKEN_SYMBOLS
    ]

    tokens_usd = sum((balance for _, balance in stable_balances), ZERO)
    hyperlend_usd = aggregate_hyperlend(results.hyperlend).total_supplied_usd
    defi_usd = hyperlend_usd + pendle_valuation(_flatten(results.pendle))
    hypercore_usd = ZERO
    total_usd = tokens_usd + defi_usd + hypercore_usd

    token_items = [
        TokenItem(
            symbol=symbol,
            balance=balance,
            value=balance,
            percentage=percentage(balance, total_usd),
        )
        for symbol, balance in stable_balances
        if balance > 0
    ]

    return PortfolioSnapshot(
        total_usd=total_usd,
        tokens_usd=tokens_usd,
        defi_usd=defi_usd,
        hypercore_usd=hypercore_usd,
        token_items=token_items,
        pct_tokens=percentage(tokens_usd, total_usd),
        pct_defi=percentage(defi_usd, total_usd),
        pct_hypercore=percentage(hypercore_usd, total_usd),
    )


def build_overview(results: PortfolioResults, loading: Mapping[DataNeed, bool]) -> PortfolioOverview:
    """
    Assemble everything the presentation layer renders.

    Parameters
    ----------
    results : PortfolioResults
        Successful results per need
    loading : Mapping[DataNeed, bool]
        Whether each need still has a pending request

    Returns
    -------
    PortfolioOverview
        Loading flags, summed balances, merged positions and the snapshot

    """
    return PortfolioOverview(
        loading={need: bool(loading.get(need, False)) for need in DataNeed},
        spot_states=list(results.spot_states),
        perp_states=list(results.perp_states),
        open_orders=list(results.open_orders),
        hype_balance=sum_balances(results.native_balances),
        token_balances=[
            TokenBalance(symbol=symbol, amount=sum_balances(results.token_balances.get(symbol, [])))
            for symbol in TOKEN_CATEGORIES
        ],
        hyperlend=aggregate_hyperlend(results.hyperlend),
        pendle_positions=_flatten(results.pendle),
        snapshot=build_snapshot(results),
    )
