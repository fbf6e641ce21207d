"""Data models for balances, lending and yield positions, and portfolio snapshots."""

from decimal import Decimal, InvalidOperation
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def to_decimal(value: Any) -> Decimal:
    """
    Coerce a provider value to a finite Decimal.

    Missing, unparsable and non-finite values become zero.

    Parameters
    ----------
    value : Any
        Decimal string, number or None

    Returns
    -------
    Decimal
        Parsed value, or 0

    Examples
    --------
    >>> to_decimal("1.50")
    Decimal('1.50')
    >>> to_decimal("n/a")
    Decimal('0')

    """
    if value is None or isinstance(value, bool):
        return Decimal("0")

    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("0")

    return result if result.is_finite() else Decimal("0")


class DataNeed(StrEnum):
    """Distinct per-address data need, one repository operation each."""

    SPOT_STATE = "spotClearinghouseState"
    PERP_STATE = "perpClearinghouseState"
    OPEN_ORDERS = "openOrders"
    NATIVE_BALANCE = "hyperEvmBalance"
    HYPERLEND = "hyperLend"
    PENDLE = "pendle"
    BEHYPE = "beHYPE"
    FEUSD = "feUSD"
    USDT0 = "USDT0"
    USDT0_FRONTIER = "USDT0Frontier"
    BEHYPE_USDT0 = "beHYPE_USDT0"


# ERC20 balance needs and the configured token symbol each one reads
TOKEN_NEEDS: dict[DataNeed, str] = {
    DataNeed.BEHYPE: "beHYPE",
    DataNeed.FEUSD: "feUSD",
    DataNeed.USDT0: "USDT0",
    DataNeed.USDT0_FRONTIER: "USDT0 Frontier",
    DataNeed.BEHYPE_USDT0: "beHYPE/USDT0",
}


class OpaquePayload(BaseModel):
    """
    Provider response passed through without interpretation.

    Attributes
    ----------
    source : str
        Integration that produced the payload (e.g., 'hyperliquid')
    kind : str
        Request type the payload answers (e.g., 'clearinghouseState')
    data : Any
        Decoded JSON body, verbatim

    """

    source: str
    kind: str
    data: Any = None


class TokenBalance(BaseModel):
    """
    Token balance for a single symbol.

    Attributes
    ----------
    symbol : str
        Token symbol (e.g., 'feUSD')
    amount : Decimal
        Balance in token units

    """

    symbol: str
    amount: Decimal = Decimal("0")


class CoreLendingPosition(BaseModel):
    """
    Position in one HyperLend Core reserve.

    Attributes
    ----------
    asset_symbol : str
        Reserve asset symbol
    supply_balance : Decimal
        Supplied amount in token units
    supply_balance_usd : Decimal
        Supplied amount in USD
    borrow_balance : Decimal
        Borrowed amount in token units
    borrow_balance_usd : Decimal
        Borrowed amount in USD
    supply_apy : Decimal
        Supply rate as a simple annual percentage
    borrow_apy : Decimal
        Variable borrow rate as a simple annual percentage
    is_collateral : bool
        Whether the user enabled the asset as collateral
    liquidation_price : Decimal | None
        Price at which the position gets liquidated (None if not applicable)

    """

    asset_symbol: str
    supply_balance: Decimal = Decimal("0")
    supply_balance_usd: Decimal = Decimal("0")
    borrow_balance: Decimal = Decimal("0")
    borrow_balance_usd: Decimal = Decimal("0")
    supply_apy: Decimal = Decimal("0")
    borrow_apy: Decimal = Decimal("0")
    is_collateral: bool = False
    liquidation_price: Decimal | None = None


class IsolatedLendingPosition(BaseModel):
    """
    Position in one HyperLend Isolated pair.

    Attributes
    ----------
    pair_address : str
        Pair contract address
    asset_symbol : str
        Asset being supplied or borrowed
    collateral_symbol : str
        Collateral asset of the pair
    liquidation_price : Decimal | None
        Price at which the pair position gets liquidated (None if not applicable)

    """

    pair_address: str
    asset_symbol: str
    collateral_symbol: str
    supply_balance: Decimal = Decimal("0")
    supply_balance_usd: Decimal = Decimal("0")
    borrow_balance: Decimal = Decimal("0")
    borrow_balance_usd: Decimal = Decimal("0")
    supply_apy: Decimal = Decimal("0")
    borrow_apy: Decimal = Decimal("0")
    liquidation_price: Decimal | None = None


class CoreHealthData(BaseModel):
    """
    Positions and health of the Core module for one address.

    ``health_factor`` is None when the address has no debt, meaning there is
    no liquidation risk. It is never reported as zero or infinity.

    """

    positions: list[CoreLendingPosition] = Field(default_factory=list)
    health_factor: Decimal | None = None
    total_supplied_usd: Decimal = Decimal("0")
    total_borrowed_usd: Decimal = Decimal("0")


class IsolatedHealthData(BaseModel):
    """Positions and health of the Isolated module for one address."""

    positions: list[IsolatedLendingPosition] = Field(default_factory=list)
    health_factor: Decimal | None = None
    total_supplied_usd: Decimal = Decimal("0")
    total_borrowed_usd: Decimal = Decimal("0")


class HyperLendData(BaseModel):
    """HyperLend data for one address across the Core and Isolated modules."""

    core: CoreHealthData = Field(default_factory=CoreHealthData)
    isolated: IsolatedHealthData = Field(default_factory=IsolatedHealthData)


class YieldSubPosition(BaseModel):
    """Balance and USD valuation of one pt/yt/lp leg."""

    balance: str = "0"
    valuation: Decimal = Decimal("0")

    @field_validator("balance", mode="before")
    @classmethod
    def _balance_as_string(cls, value: Any) -> str:
        # The API returns balances either as strings or as bare numbers
        return "0" if value is None else str(value)

    @field_validator("valuation", mode="before")
    @classmethod
    def _finite_valuation(cls, value: Any) -> Decimal:
        # Missing, NaN and infinite valuations count as zero
        return to_decimal(value)


class PendleMarketPosition(BaseModel):
    """
    Open Pendle position in one market.

    The pt, yt and lp valuations are independent and add up to the
    position's value.

    """

    model_config = ConfigDict(populate_by_name=True)

    market_id: str = Field(alias="marketId")
    pt: YieldSubPosition = Field(default_factory=YieldSubPosition)
    yt: YieldSubPosition = Field(default_factory=YieldSubPosition)
    lp: YieldSubPosition = Field(default_factory=YieldSubPosition)

    @field_validator("pt", "yt", "lp", mode="before")
    @classmethod
    def _missing_leg(cls, value: Any) -> Any:
        return {} if value is None else value


class HyperLendAggregate(BaseModel):
    """
    HyperLend data merged across addresses.

    Attributes
    ----------
    total_supplied_usd : Decimal
        Core plus Isolated supplied USD across all addresses
    total_borrowed_usd : Decimal
        Core plus Isolated borrowed USD across all addresses
    core_health_factor : Decimal | None
        Lowest Core health factor among addresses with debt
    isolated_health_factor : Decimal | None
        Lowest Isolated health factor among addresses with debt

    """

    total_supplied_usd: Decimal = Decimal("0")
    total_borrowed_usd: Decimal = Decimal("0")
    core_health_factor: Decimal | None = None
    isolated_health_factor: Decimal | None = None
    core_positions: list[CoreLendingPosition] = Field(default_factory=list)
    isolated_positions: list[IsolatedLendingPosition] = Field(default_factory=list)


class TokenItem(BaseModel):
    """Displayable token line of a snapshot."""

    symbol: str
    balance: Decimal
    value: Decimal
    percentage: Decimal


class PortfolioSnapshot(BaseModel):
    """
    Aggregated portfolio valuation recomputed from current results.

    Attributes
    ----------
    total_usd : Decimal
        Sum of all categories
    tokens_usd : Decimal
        Stable token balances, valued 1:1 in USD
    defi_usd : Decimal
        HyperLend supplied USD plus Pendle valuations
    hypercore_usd : Decimal
        HyperCore exchange value (exchange state is not valued)
    token_items : list[TokenItem]
        Tokens with a positive balance, in configured order
    pct_tokens : Decimal
        Share of ``tokens_usd`` in percent
    pct_defi : Decimal
        Share of ``defi_usd`` in percent
    pct_hypercore : Decimal
        Share of ``hypercore_usd`` in percent

    """

    total_usd: Decimal = Decimal("0")
    tokens_usd: Decimal = Decimal("0")
    defi_usd: Decimal = Decimal("0")
    hypercore_usd: Decimal = Decimal("0")
    token_items: list[TokenItem] = Field(default_factory=list)
    pct_tokens: Decimal = Decimal("0")
    pct_defi: Decimal = Decimal("0")
    pct_hypercore: Decimal = Decimal("0")


class PortfolioResults(BaseModel):
    """
    Successful per-address results currently available for each need.

    Lists hold one entry per address whose request succeeded, in address
    order. Failed and pending requests are absent.

    """

    spot_states: list[OpaquePayload] = Field(default_factory=list)
    perp_states: list[OpaquePayload] = Field(default_factory=list)
    open_orders: list[OpaquePayload] = Field(default_factory=list)
    native_balances: list[str] = Field(default_factory=list)
    hyperlend: list[HyperLendData] = Field(default_factory=list)
    pendle: list[list[PendleMarketPosition]] = Field(default_factory=list)
    token_balances: dict[str, list[str]] = Field(default_factory=dict)


class PortfolioOverview(BaseModel):
    """
    Everything the presentation layer consumes.

    Every need has an independent loading flag; values are computed from
    whatever has resolved so far.

    """

    loading: dict[DataNeed, bool] = Field(default_factory=dict)
    spot_states: list[OpaquePayload] = Field(default_factory=list)
    perp_states: list[OpaquePayload] = Field(default_factory=list)
    open_orders: list[OpaquePayload] = Field(default_factory=list)
    hype_balance: Decimal = Decimal("0")
    token_balances: list[TokenBalance] = Field(default_factory=list)
    hyperlend: HyperLendAggregate = Field(default_factory=HyperLendAggregate)
    pendle_positions: list[PendleMarketPosition] = Field(default_factory=list)
    snapshot: PortfolioSnapshot = Field(default_factory=PortfolioSnapshot)

    @property
    def is_loading(self) -> bool:
        """Whether any need still has a pending request."""
        return any(self.loading.values())
