"""Tests for the HyperLend protocol handler."""

import logging
from decimal import Decimal

import pytest
from conftest import ADDRESS_A, FakeProvider

from hyper_portfolio_tracker.core.models import HyperLendData
from hyper_portfolio_tracker.protocols.hyperlend import (
    HyperLendHandler,
    calculate_liquidation_price,
    ray_rate_to_apy,
    to_units,
)

ASSET_USDT0 = "0x" + "01" * 20
ASSET_WHYPE = "0x" + "02" * 20
ASSET_FEUSD = "0x" + "03" * 20

WAD = 10**18
RAY = 10**27


def _user_reserve(a_token: int, stable_debt: int = 0, variable_debt: int = 0, collateral: bool = True) -> tuple:
    return (a_token, stable_debt, variable_debt, 0, 0, 0, 0, 0, collateral)


def _reserve_config(decimals: int, liquidation_threshold: int) -> tuple:
    return (decimals, 7500, liquidation_threshold, 10500, 1000, True, True, False, True, False)


def _reserve_data(liquidity_rate: int, variable_borrow_rate: int) -> tuple:
    return (0, 0, 0, 0, 0, liquidity_rate, variable_borrow_rate, 0, 0, RAY, RAY, 0)


def _responses(total_debt_base: int = 10_000_000_000, health_factor: int = 1_850_000_000_000_000_000) -> dict:
    user_reserves = {
        ASSET_USDT0: _user_reserve(1_000_000_000),
        ASSET_WHYPE: _user_reserve(10 * WAD, stable_debt=1 * WAD, variable_debt=3 * WAD),
        ASSET_FEUSD: _user_reserve(0, collateral=False),
    }
    configs = {
        ASSET_USDT0: _reserve_config(6, 8000),
        ASSET_WHYPE: _reserve_config(18, 8000),
    }
    rates = {
        ASSET_USDT0: _reserve_data(RAY // 100, RAY // 20),
        ASSET_WHYPE: _reserve_data(RAY // 1000, RAY // 50),
    }
    prices = {
        ASSET_USDT0: 100_000_000,
        ASSET_WHYPE: 2_500_000_000,
    }
    return {
        "getUserAccountData": (125_000_000_000, total_debt_base, 0, 8000, 7500, health_factor),
        "getAllReservesTokens": [("USDT0", ASSET_USDT0), ("WHYPE", ASSET_WHYPE), ("feUSD", ASSET_FEUSD)],
        "getUserReserveData": lambda _, params: user_reserves[params[0]],
        "getReserveConfigurationData": lambda _, params: configs[params[0]],
        "getReserveData": lambda _, params: rates[params[0]],
        "getAssetPrice": lambda _, params: prices[params[0]],
    }


@pytest.fixture()
def handler_factory(sample_config):
    def _make(provider: FakeProvider) -> HyperLendHandler:
        return HyperLendHandler(provider, sample_config.hyperlend)

    return _make


class TestRateMath:
    def test_ray_rate_to_apy(self):
        """Simple annualization: rate * seconds per year / ray * 100."""
        assert ray_rate_to_apy(0) == Decimal("0")
        assert ray_rate_to_apy(10**25) == Decimal("31536000")

    def test_to_units(self):
        assert to_units(1_500_000, 6) == Decimal("1.5")
        assert to_units(0, 18) == Decimal("0")

    def test_liquidation_price(self):
        price = calculate_liquidation_price(Decimal("4"), Decimal("25"), Decimal("10"), Decimal("0.8"))
        assert price == Decimal("12.5")

    @pytest.mark.parametrize(
        ("supply", "threshold"),
        [(Decimal("0"), Decimal("0.8")), (Decimal("10"), Decimal("0"))],
    )
    def test_liquidation_price_not_applicable(self, supply, threshold):
        assert calculate_liquidation_price(Decimal("4"), Decimal("25"), supply, threshold) is None


@pytest.mark.asyncio
async def test_core_positions(handler_factory):
    provider = FakeProvider(_responses())
    handler = handler_factory(provider)

    data = await handler.get_data(ADDRESS_A)

    core = data.core
    assert [p.asset_symbol for p in core.positions] == ["USDT0", "WHYPE"]
    assert core.health_factor == Decimal("1.85")
    assert core.total_supplied_usd == Decimal("1250")
    assert core.total_borrowed_usd == Decimal("100")

    usdt0, whype = core.positions
    assert usdt0.supply_balance == Decimal("1000")
    assert usdt0.supply_balance_usd == Decimal("1000")
    assert usdt0.borrow_balance == Decimal("0")
    assert usdt0.liquidation_price is None
    assert usdt0.supply_apy == ray_rate_to_apy(RAY // 100)
    assert usdt0.borrow_apy == ray_rate_to_apy(RAY // 20)
    assert usdt0.is_collateral is True

    assert whype.supply_balance == Decimal("10")
    assert whype.borrow_balance == Decimal("4")
    assert whype.supply_balance_usd == Decimal("250")
    assert whype.borrow_balance_usd == Decimal("100")
    assert whype.liquidation_price == Decimal("12.5")


@pytest.mark.asyncio
async def test_zero_reserves_skip_detail_reads(handler_factory):
    """Reserves without supply or borrow are dropped before any detail read."""
    provider = FakeProvider(_responses())
    handler = handler_factory(provider)

    await handler.get_data(ADDRESS_A)

    detail_assets = {
        params[0]
        for _, method, params in provider.calls
        if method in ("getReserveConfigurationData", "getReserveData", "getAssetPrice")
    }
    assert detail_assets == {ASSET_USDT0, ASSET_WHYPE}


@pytest.mark.asyncio
async def test_no_debt_means_no_health_factor(handler_factory):
    provider = FakeProvider(_responses(total_debt_base=0, health_factor=2**256 - 1))
    handler = handler_factory(provider)

    data = await handler.get_data(ADDRESS_A)

    assert data.core.health_factor is None


@pytest.mark.asyncio
async def test_isolated_module_is_empty(handler_factory):
    handler = handler_factory(FakeProvider(_responses()))

    data = await handler.get_data(ADDRESS_A)

    assert data.isolated.positions == []
    assert data.isolated.health_factor is None
    assert data.isolated.total_supplied_usd == Decimal("0")


@pytest.mark.asyncio
async def test_failure_degrades_to_empty(handler_factory, caplog):
    responses = _responses()
    responses["getUserAccountData"] = RuntimeError("execution reverted")
    handler = handler_factory(FakeProvider(responses))

    with caplog.at_level(logging.WARNING, logger="hyper_portfolio_tracker.protocols.hyperlend"):
        data = await handler.get_data(ADDRESS_A)

    assert data == HyperLendData()
    assert "HyperLend data unavailable" in caplog.text


@pytest.mark.asyncio
async def test_reserve_failure_degrades_to_empty(handler_factory):
    responses = _responses()
    responses["getAssetPrice"] = ConnectionError("rpc down")
    handler = handler_factory(FakeProvider(responses))

    data = await handler.get_data(ADDRESS_A)

    assert data.core.positions == []
    assert data.core.health_factor is None
    assert data.core.total_supplied_usd == Decimal("0")


@pytest.mark.asyncio
async def test_missing_provider_degrades_to_empty(sample_config):
    handler = HyperLendHandler(None, sample_config.hyperlend)

    assert await handler.get_data(ADDRESS_A) == HyperLendData()
