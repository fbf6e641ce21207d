"""CLI for the HyperEVM portfolio tracker."""

import asyncio
import json
import logging
from decimal import Decimal
from enum import StrEnum

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table
from rich.traceback import install

from hyper_portfolio_tracker.core import DataNeed, PortfolioOverview, PortfolioQueries, ensure_list, is_valid_address
from hyper_portfolio_tracker.core.fanout import NEED_OPERATIONS
from hyper_portfolio_tracker.core.repository import HyperEVMPortfolioRepository
from hyper_portfolio_tracker.data import load_config
from hyper_portfolio_tracker.rpc import HyperEVMProvider

# Install rich traceback handler
install(show_locals=True)

app = typer.Typer(
    name="hyper-portfolio",
    help="Aggregate HyperEVM wallet balances, HyperLend and Pendle positions into one USD view",
    add_completion=False,
)

console = Console()
logger = logging.getLogger("hyper_portfolio_tracker")


class OutputFormat(StrEnum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=debug)],
        force=True,
    )
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)


async def _fetch_overview(
    addresses: list[str],
) -> tuple[PortfolioOverview, dict[DataNeed, dict[str, str]]]:
    """
    Run every query for the addresses, rendering progress as requests settle.

    Parameters
    ----------
    addresses : list[str]
        Addresses to query (malformed entries are skipped)

    Returns
    -------
    tuple[PortfolioOverview, dict[DataNeed, dict[str, str]]]
        Final overview and the failed requests per need

    """
    config = load_config()
    provider = HyperEVMProvider(config.rpc_url)

    async with HyperEVMPortfolioRepository(config, provider) as repository:
        queries = PortfolioQueries(repository)
        valid = queries.set_addresses(addresses)
        total = len(valid) * len(queries.queries)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
        ) as progress:
            task = progress.add_task(f"Querying {len(valid)} address(es)...", total=total)

            overview = queries.overview()
            async for overview in queries.updates():
                settled = sum(
                    1 for query in queries.queries.values() for state in query.states if not state.is_loading
                )
                progress.update(task, completed=settled)

            progress.update(task, description="✓ All requests settled", completed=total)

        failures = {need: query.errors for need, query in queries.queries.items() if query.errors}
        return overview, failures


@app.command()
def portfolio(
    addresses: list[str] = typer.Argument(..., help="Wallet addresses to aggregate"),
    format: OutputFormat = typer.Option(
        OutputFormat.TABLE,
        "--format",
        "-f",
        help="Output format",
    ),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """
    Aggregate the portfolio of one or more wallet addresses.

    Examples:

        # Single wallet
        hyper-portfolio portfolio 0xABC...

        # Several wallets merged into one view
        hyper-portfolio portfolio 0xABC... 0xDEF...

        # Output as JSON
        hyper-portfolio portfolio 0xABC... --format json
    """
    _configure_logging(debug)

    valid = [address for address in addresses if is_valid_address(address)]
    if not valid:
        console.print("[bold red]No valid address given[/bold red] (expected 0x followed by 40 hex characters)")
        raise typer.Exit(code=1)

    console.print(f"\n[bold cyan]Fetching portfolio for:[/bold cyan] {', '.join(valid)}")
    if debug:
        console.print("[dim]Debug mode enabled[/dim]")

    try:
        overview, failures = asyncio.run(_fetch_overview(addresses))
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        if debug:
            # Rich traceback will automatically handle this
            raise
        raise typer.Exit(1)

    if format == OutputFormat.JSON:
        _output_json(overview, failures)
    else:
        _output_table(overview, failures)


@app.command()
def list_tokens() -> None:
    """List the tracked token contracts."""
    config = load_config()

    table = Table(title="Tracked Tokens", show_header=True, header_style="bold magenta")
    table.add_column("Symbol", style="cyan")
    table.add_column("Address", style="green")
    table.add_column("Category", style="yellow")

    for token in config.tokens:
        table.add_row(token.symbol, token.address, token.category.value)

    console.print(table)


@app.command()
def list_needs() -> None:
    """List the data needs queried for every address."""
    table = Table(title="Data Needs", show_header=True, header_style="bold magenta")
    table.add_column("Need", style="cyan")
    table.add_column("Repository Operation", style="green")

    for need, operation in NEED_OPERATIONS.items():
        table.add_row(need.value, operation)

    console.print(table)


def _format_usd(value: Decimal) -> str:
    return f"${value:,.2f}"


def _format_hf(value: Decimal | None) -> str:
    return "-" if value is None else f"{value:.2f}"


def _field(data: object, key: str) -> object:
    return data.get(key) if isinstance(data, dict) else None


def _output_table(overview: PortfolioOverview, failures: dict[DataNeed, dict[str, str]]) -> None:
    """Output the overview as rich tables."""
    snapshot = overview.snapshot

    summary_table = Table(title="Portfolio", show_header=True, header_style="bold magenta")
    summary_table.add_column("Category", style="cyan")
    summary_table.add_column("USD Value", style="bold green", justify="right")
    summary_table.add_column("Share", style="white", justify="right")
    summary_table.add_row("Tokens", _format_usd(snapshot.tokens_usd), f"{snapshot.pct_tokens:.1f}%")
    summary_table.add_row("DeFi", _format_usd(snapshot.defi_usd), f"{snapshot.pct_defi:.1f}%")
    summary_table.add_row("HyperCore", _format_usd(snapshot.hypercore_usd), f"{snapshot.pct_hypercore:.1f}%")
    summary_table.add_row("[bold]Total[/bold]", _format_usd(snapshot.total_usd), "")

    console.print("\n")
    console.print(summary_table)

    if snapshot.token_items:
        tokens_table = Table(title="Tokens", show_header=True, header_style="bold magenta")
        tokens_table.add_column("Token", style="cyan")
        tokens_table.add_column("Balance", style="white", justify="right")
        tokens_table.add_column("USD Value", style="bold green", justify="right")
        tokens_table.add_column("Share", style="white", justify="right")
        for item in snapshot.token_items:
            tokens_table.add_row(
                item.symbol,
                f"{item.balance:,.4f}",
                _format_usd(item.value),
                f"{item.percentage:.1f}%",
            )
        console.print(tokens_table)
    else:
        console.print("\n[yellow]No tokens found[/yellow]")

    balances_table = Table(title="HyperEVM Balances", show_header=True, header_style="bold magenta")
    balances_table.add_column("Asset", style="cyan")
    balances_table.add_column("Balance", style="white", justify="right")
    balances_table.add_row("HYPE", f"{overview.hype_balance:,.4f}")
    for balance in overview.token_balances:
        balances_table.add_row(balance.symbol, f"{balance.amount:,.4f}")
    console.print(balances_table)

    hyperlend = overview.hyperlend
    if hyperlend.core_positions or hyperlend.isolated_positions:
        lending_table = Table(title="HyperLend", show_header=True, header_style="bold magenta")
        lending_table.add_column("Module", style="blue")
        lending_table.add_column("Asset", style="cyan")
        lending_table.add_column("Supplied", style="green", justify="right")
        lending_table.add_column("Borrowed", style="red", justify="right")
        lending_table.add_column("Supply APY", justify="right")
        lending_table.add_column("Borrow APY", justify="right")
        lending_table.add_column("Liq. Price", justify="right")
        for position in hyperlend.core_positions:
            lending_table.add_row(
                "Core",
                position.asset_symbol,
                _format_usd(position.supply_balance_usd),
                _format_usd(position.borrow_balance_usd),
                f"{position.supply_apy:.2f}%",
                f"{position.borrow_apy:.2f}%",
                "-" if position.liquidation_price is None else f"{position.liquidation_price:,.4f}",
            )
        for position in hyperlend.isolated_positions:
            lending_table.add_row(
                "Isolated",
                f"{position.asset_symbol}/{position.collateral_symbol}",
                _format_usd(position.supply_balance_usd),
                _format_usd(position.borrow_balance_usd),
                f"{position.supply_apy:.2f}%",
                f"{position.borrow_apy:.2f}%",
                "-" if position.liquidation_price is None else f"{position.liquidation_price:,.4f}",
            )
        console.print(lending_table)
        console.print(
            f"Health factor  Core: [bold]{_format_hf(hyperlend.core_health_factor)}[/bold]"
            f"  Isolated: [bold]{_format_hf(hyperlend.isolated_health_factor)}[/bold]"
        )

    if overview.pendle_positions:
        pendle_table = Table(title="Pendle", show_header=True, header_style="bold magenta")
        pendle_table.add_column("Market", style="cyan")
        pendle_table.add_column("PT", justify="right")
        pendle_table.add_column("YT", justify="right")
        pendle_table.add_column("LP", justify="right")
        for position in overview.pendle_positions:
            pendle_table.add_row(
                position.market_id,
                _format_usd(position.pt.valuation),
                _format_usd(position.yt.valuation),
                _format_usd(position.lp.valuation),
            )
        console.print(pendle_table)

    spot_balances = sum(len(ensure_list(_field(state.data, "balances"))) for state in overview.spot_states)
    perp_positions = sum(len(ensure_list(_field(state.data, "assetPositions"))) for state in overview.perp_states)
    open_orders = sum(len(ensure_list(orders.data)) for orders in overview.open_orders)

    hypercore_table = Table(title="HyperCore (not valued)", show_header=True, header_style="bold magenta")
    hypercore_table.add_column("Data", style="cyan")
    hypercore_table.add_column("Entries", justify="right")
    hypercore_table.add_row("Spot balances", str(spot_balances))
    hypercore_table.add_row("Perp positions", str(perp_positions))
    hypercore_table.add_row("Open orders", str(open_orders))
    console.print(hypercore_table)

    if failures:
        console.print("\n[bold yellow]Some requests failed; totals use the successful subset:[/bold yellow]")
        for need, errors in failures.items():
            for address, error in errors.items():
                console.print(f"[dim]  {need.value} {address}: {error}[/dim]")

    console.print("\n")


def _output_json(overview: PortfolioOverview, failures: dict[DataNeed, dict[str, str]]) -> None:
    """Output the overview as JSON."""
    data = overview.model_dump(mode="json")
    data["failures"] = {need.value: errors for need, errors in failures.items()}

    # Pretty print JSON
    json_str = json.dumps(data, indent=2)
    console.print_json(json_str)


if __name__ == "__main__":
    app()
