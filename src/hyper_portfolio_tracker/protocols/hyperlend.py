"""HyperLend lending protocol handler (Aave v3.2 fork on HyperEVM)."""

import asyncio
import logging
from decimal import Decimal

from hyper_portfolio_tracker.core.models import (
    CoreHealthData,
    CoreLendingPosition,
    HyperLendData,
    IsolatedHealthData,
)
from hyper_portfolio_tracker.data.config import HyperLendAddresses
from hyper_portfolio_tracker.protocols.base import BaseProtocolHandler
from hyper_portfolio_tracker.rpc.provider import HyperEVMProvider

logger = logging.getLogger(__name__)

RAY = Decimal(10) ** 27
WAD = Decimal(10) ** 18
ORACLE_PRICE_DECIMALS = 8
SECONDS_PER_YEAR = 31_536_000
BASIS_POINTS = Decimal(10_000)

POOL_ABI = [
    {
        "type": "function",
        "name": "getUserAccountData",
        "stateMutability": "view",
        "inputs": [{"name": "user", "type": "address"}],
        "outputs": [
            {"name": "totalCollateralBase", "type": "uint256"},
            {"name": "totalDebtBase", "type": "uint256"},
            {"name": "availableBorrowsBase", "type": "uint256"},
            {"name": "currentLiquidationThreshold", "type": "uint256"},
            {"name": "ltv", "type": "uint256"},
            {"name": "healthFactor", "type": "uint256"},
        ],
    }
]

POOL_DATA_PROVIDER_ABI = [
    {
        "type": "function",
        "name": "getAllReservesTokens",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [
            {
                "name": "",
                "type": "tuple[]",
                "components": [
                    {"name": "symbol", "type": "string"},
                    {"name": "tokenAddress", "type": "address"},
                ],
            }
        ],
    },
    {
        "type": "function",
        "name": "getUserReserveData",
        "stateMutability": "view",
        "inputs": [
            {"name": "asset", "type": "address"},
            {"name": "user", "type": "address"},
        ],
        "outputs": [
            {"name": "currentATokenBalance", "type": "uint256"},
            {"name": "currentStableDebt", "type": "uint256"},
            {"name": "currentVariableDebt", "type": "uint256"},
            {"name": "principalStableDebt", "type": "uint256"},
            {"name": "scaledVariableDebt", "type": "uint256"},
            {"name": "stableBorrowRate", "type": "uint256"},
            {"name": "liquidityRate", "type": "uint256"},
            {"name": "stableRateLastUpdated", "type": "uint40"},
            {"name": "usageAsCollateralEnabled", "type": "bool"},
        ],
    },
    {
        "type": "function",
        "name": "getReserveConfigurationData",
        "stateMutability": "view",
        "inputs": [{"name": "asset", "type": "address"}],
        "outputs": [
            {"name": "decimals", "type": "uint256"},
            {"name": "ltv", "type": "uint256"},
            {"name": "liquidationThreshold", "type": "uint256"},
            {"name": "liquidationBonus", "type": "uint256"},
            {"name": "reserveFactor", "type": "uint256"},
            {"name": "usageAsCollateralEnabled", "type": "bool"},
            {"name": "borrowingEnabled", "type": "bool"},
            {"name": "stableBorrowRateEnabled", "type": "bool"},
            {"name": "isActive", "type": "bool"},
            {"name": "isFrozen", "type": "bool"},
        ],
    },
    {
        "type": "function",
        "name": "getReserveData",
        "stateMutability": "view",
        "inputs": [{"name": "asset", "type": "address"}],
        "outputs": [
            {"name": "unbacked", "type": "uint256"},
            {"name": "accruedToTreasuryScaled", "type": "uint256"},
            {"name": "totalAToken", "type": "uint256"},
            {"name": "totalStableDebt", "type": "uint256"},
            {"name": "totalVariableDebt", "type": "uint256"},
            {"name": "liquidityRate", "type": "uint256"},
            {"name": "variableBorrowRate", "type": "uint256"},
            {"name": "stableBorrowRate", "type": "uint256"},
            {"name": "averageStableBorrowRate", "type": "uint256"},
            {"name": "liquidityIndex", "type": "uint256"},
            {"name": "variableBorrowIndex", "type": "uint256"},
            {"name": "lastUpdateTimestamp", "type": "uint40"},
        ],
    },
]

ORACLE_ABI = [
    {
        "type": "function",
        "name": "getAssetPrice",
        "stateMutability": "view",
        "inputs": [{"name": "asset", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    }
]


def to_units(raw: int, decimals: int) -> Decimal:
    """Scale an integer amount of smallest units to token units."""
    return Decimal(int(raw)).scaleb(-int(decimals))


def ray_rate_to_apy(rate: int) -> Decimal:
    """
    Convert a per-second ray rate to a simple annual percentage.

    ``rate * SECONDS_PER_YEAR / RAY * 100``; not compounded.

    Parameters
    ----------
    rate : int
        Interest rate in ray (27-decimal fixed point)

    Returns
    -------
    Decimal
        Annualized rate in percent

    """
    return Decimal(int(rate)) * SECONDS_PER_YEAR / RAY * 100


def calculate_liquidation_price(
    borrow_amount: Decimal,
    current_price: Decimal,
    supply_amount: Decimal,
    liquidation_threshold: Decimal,
) -> Decimal | None:
    """
    Estimate the price at which a single-asset position gets liquidated.

    ``(borrow * price) / (supply * threshold)``. This treats the borrowed and
    supplied amounts as the same asset and ignores other collateral.

    Parameters
    ----------
    borrow_amount : Decimal
        Borrowed token units
    current_price : Decimal
        Current USD price of the asset
    supply_amount : Decimal
        Supplied token units
    liquidation_threshold : Decimal
        Liquidation threshold as a fraction (e.g., 0.8)

    Returns
    -------
    Decimal | None
        Liquidation price, or None when supply or threshold is zero

    """
    if supply_amount == 0 or liquidation_threshold == 0:
        return None
    return (borrow_amount * current_price) / (supply_amount * liquidation_threshold)


class HyperLendHandler(BaseProtocolHandler):
    """
    Handler for HyperLend Core and Isolated lending positions.

    Tracks per-reserve supply and borrow balances, USD values, rates,
    liquidation prices and the account health factor. Fetch failures
    never propagate: an empty result is returned instead.

    Parameters
    ----------
    rpc_provider : HyperEVMProvider | None
        Shared provider for contract calls
    addresses : HyperLendAddresses
        Pool, data provider and oracle contracts

    """

    name = "hyperlend"

    def __init__(self, rpc_provider: HyperEVMProvider | None, addresses: HyperLendAddresses) -> None:
        super().__init__(rpc_provider)
        self.addresses = addresses

    async def get_data(self, user_address: str) -> HyperLendData:
        """
        Fetch HyperLend data for a user.

        Parameters
        ----------
        user_address : str
            User wallet address

        Returns
        -------
        HyperLendData
            Core and Isolated data; empty on any fetch failure

        """
        try:
            core = await self._get_core_data(user_address)
        except Exception as e:
            logger.warning("HyperLend data unavailable for %s: %s", user_address, e)
            return HyperLendData()

        isolated = await self._get_isolated_data(user_address)
        return HyperLendData(core=core, isolated=isolated)

    async def _get_core_data(self, user_address: str) -> CoreHealthData:
        """
        Fetch Core positions and health factor.

        Parameters
        ----------
        user_address : str
            User address

        Returns
        -------
        CoreHealthData
            Positions with non-zero supply or borrow, totals and health factor

        """
        user = HyperEVMProvider.to_checksum_address(user_address)

        health_factor, reserves = await asyncio.gather(
            self._get_health_factor(user),
            self._get_all_reserves_tokens(),
        )

        results = await asyncio.gather(
            *(self._get_reserve_position(user, symbol, asset) for symbol, asset in reserves)
        )
        positions = [position for position in results if position is not None]

        return CoreHealthData(
            positions=positions,
            health_factor=health_factor,
            total_supplied_usd=sum((p.supply_balance_usd for p in positions), Decimal("0")),
            total_borrowed_usd=sum((p.borrow_balance_usd for p in positions), Decimal("0")),
        )

    async def _get_isolated_data(self, user_address: str) -> IsolatedHealthData:
        """Isolated pairs are not readable yet; report the defined empty state."""
        logger.debug("HyperLend Isolated module not available yet, skipping %s", user_address)
        return IsolatedHealthData()

    async def _get_health_factor(self, user: str) -> Decimal | None:
        """
        Read the account health factor from the pool.

        Returns
        -------
        Decimal | None
            Health factor, or None when the account has no debt

        """
        result = await self._make_contract_call(self.addresses.pool, POOL_ABI, "getUserAccountData", [user])
        # (totalCollateralBase, totalDebtBase, availableBorrowsBase,
        #  currentLiquidationThreshold, ltv, healthFactor)
        total_debt = to_units(result[1], ORACLE_PRICE_DECIMALS)

        # Health factor is in WAD; without debt it is meaningless
        return None if total_debt == 0 else Decimal(int(result[5])) / WAD

    async def _get_all_reserves_tokens(self) -> list[tuple[str, str]]:
        result = await self._make_contract_call(
            self.addresses.pool_data_provider,
            POOL_DATA_PROVIDER_ABI,
            "getAllReservesTokens",
        )
        return [(str(symbol), str(address)) for symbol, address in result]

    async def _get_reserve_position(self, user: str, symbol: str, asset: str) -> CoreLendingPosition | None:
        """
        Build the user's position in one reserve.

        Parameters
        ----------
        user : str
            Checksummed user address
        symbol : str
            Reserve symbol
        asset : str
            Reserve underlying asset address

        Returns
        -------
        CoreLendingPosition | None
            Position, or None when the user has neither supply nor borrow

        """
        user_reserve = await self._make_contract_call(
            self.addresses.pool_data_provider,
            POOL_DATA_PROVIDER_ABI,
            "getUserReserveData",
            [asset, user],
        )
        a_token_balance, stable_debt, variable_debt = user_reserve[0], user_reserve[1], user_reserve[2]
        if a_token_balance == 0 and stable_debt == 0 and variable_debt == 0:
            return None

        configuration, reserve_data, price_raw = await asyncio.gather(
            self._make_contract_call(
                self.addresses.pool_data_provider,
                POOL_DATA_PROVIDER_ABI,
                "getReserveConfigurationData",
                [asset],
            ),
            self._make_contract_call(
                self.addresses.pool_data_provider,
                POOL_DATA_PROVIDER_ABI,
                "getReserveData",
                [asset],
            ),
            self._make_contract_call(self.addresses.oracle, ORACLE_ABI, "getAssetPrice", [asset]),
        )

        decimals = int(configuration[0])
        liquidation_threshold = Decimal(int(configuration[2])) / BASIS_POINTS
        price = to_units(price_raw, ORACLE_PRICE_DECIMALS)

        supply = to_units(a_token_balance, decimals)
        borrow = to_units(stable_debt + variable_debt, decimals)

        liquidation_price = None
        if borrow > 0:
            liquidation_price = calculate_liquidation_price(borrow, price, supply, liquidation_threshold)

        return CoreLendingPosition(
            asset_symbol=symbol,
            supply_balance=supply,
            supply_balance_usd=supply * price,
            borrow_balance=borrow,
            borrow_balance_usd=borrow * price,
            supply_apy=ray_rate_to_apy(reserve_data[5]),
            borrow_apy=ray_rate_to_apy(reserve_data[6]),
            is_collateral=bool(user_reserve[8]),
            liquidation_price=liquidation_price,
        )
