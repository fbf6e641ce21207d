"""Pytest configuration and shared fakes for hyper-portfolio-tracker tests."""

import asyncio
from collections.abc import Callable
from decimal import Decimal
from typing import Any

import pytest

from hyper_portfolio_tracker.core.models import (
    CoreHealthData,
    HyperLendData,
    OpaquePayload,
    PendleMarketPosition,
)
from hyper_portfolio_tracker.data import HyperLendAddresses, PortfolioConfig, TokenCategory, TokenContract

ADDRESS_A = "0x" + "a1" * 20
ADDRESS_B = "0x" + "b2" * 20
ADDRESS_C = "0x" + "c3" * 20


class FakeProvider:
    """
    Stand-in for HyperEVMProvider answering contract reads from a table.

    ``responses`` maps a method name to either a value, an exception, or a
    callable ``(contract_address, params) -> value``.
    """

    def __init__(self, responses: dict[str, Any] | None = None, balances: dict[str, Any] | None = None) -> None:
        self.responses = responses or {}
        self.balances = balances or {}
        self.calls: list[tuple[str, str, tuple[Any, ...]]] = []
        self.disconnected = False

    async def call(
        self,
        contract_address: str,
        abi: list[dict[str, Any]],
        method: str,
        params: list[Any] | None = None,
    ) -> Any:
        self.calls.append((contract_address, method, tuple(params or [])))
        response = self.responses[method]
        if callable(response):
            response = response(contract_address, params or [])
        if isinstance(response, Exception):
            raise response
        return response

    async def get_balance(self, address: str) -> int:
        balance = self.balances.get(address.lower(), 0)
        if isinstance(balance, Exception):
            raise balance
        return balance

    async def disconnect(self) -> None:
        self.disconnected = True

    def methods_called(self) -> list[str]:
        return [method for _, method, _ in self.calls]


class FakeRepository:
    """
    In-memory repository with per-(operation, address) results.

    ``gates`` holds an optional event per address; requests for that address
    block until the event is set.
    """

    def __init__(self) -> None:
        self.results: dict[tuple[str, str], Any] = {}
        self.errors: dict[tuple[str, str], Exception] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[tuple[str, str]] = []

    async def _respond(self, operation: str, address: str, default: Any) -> Any:
        self.calls.append((operation, address))
        gate = self.gates.get(address)
        if gate is not None:
            await gate.wait()
        key = (operation, address)
        if key in self.errors:
            raise self.errors[key]
        return self.results.get(key, default)

    def called_addresses(self) -> set[str]:
        return {address for _, address in self.calls}

    def call_count(self, operation: str, address: str) -> int:
        return self.calls.count((operation, address))

    async def get_spot_clearinghouse_state(self, address: str) -> OpaquePayload:
        default = OpaquePayload(source="hyperliquid", kind="spotClearinghouseState", data={"balances": []})
        return await self._respond("get_spot_clearinghouse_state", address, default)

    async def get_perp_clearinghouse_state(self, address: str) -> OpaquePayload:
        default = OpaquePayload(source="hyperliquid", kind="clearinghouseState", data={"assetPositions": []})
        return await self._respond("get_perp_clearinghouse_state", address, default)

    async def get_open_orders(self, address: str) -> OpaquePayload:
        default = OpaquePayload(source="hyperliquid", kind="frontendOpenOrders", data=[])
        return await self._respond("get_open_orders", address, default)

    async def get_hyper_evm_balance(self, address: str) -> str:
        return await self._respond("get_hyper_evm_balance", address, "0")

    async def get_hyperlend_data(self, address: str) -> HyperLendData:
        return await self._respond("get_hyperlend_data", address, HyperLendData())

    async def get_pendle_positions(self, address: str) -> list[PendleMarketPosition]:
        return await self._respond("get_pendle_positions", address, [])

    async def get_behype_balance(self, address: str) -> str:
        return await self._respond("get_behype_balance", address, "0")

    async def get_feusd_balance(self, address: str) -> str:
        return await self._respond("get_feusd_balance", address, "0")

    async def get_usdt0_balance(self, address: str) -> str:
        return await self._respond("get_usdt0_balance", address, "0")

    async def get_usdt0_frontier_balance(self, address: str) -> str:
        return await self._respond("get_usdt0_frontier_balance", address, "0")

    async def get_behype_usdt0_balance(self, address: str) -> str:
        return await self._respond("get_behype_usdt0_balance", address, "0")


def hyperlend_with_supply(total_supplied_usd: str, health_factor: str | None = None) -> HyperLendData:
    """HyperLend result with only Core totals set."""
    return HyperLendData(
        core=CoreHealthData(
            total_supplied_usd=Decimal(total_supplied_usd),
            health_factor=None if health_factor is None else Decimal(health_factor),
        )
    )


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Yield to the event loop until ``predicate`` holds."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0)


@pytest.fixture()
def sample_config() -> PortfolioConfig:
    return PortfolioConfig(
        chain_id=999,
        rpc_url="https://rpc.example.com/evm",
        hyperliquid_api_url="https://api.example.com/info",
        pendle_api_url="https://pendle.example.com/core",
        hyperlend=HyperLendAddresses(
            pool="0x00A89d7a5A02160f20150EbEA7a2b5E4879A1A8b",
            pool_data_provider="0x5481bf8d3946E6A3168640c1D7523eB59F055a29",
            oracle="0xC9Fb4fbE842d57EAc1dF3e641a281827493A630e",
        ),
        tokens=[
            TokenContract(
                symbol="feUSD",
                address="0x02c6a2fa58cc01a18b8d9e00ea48d65e4df26c70",
                category=TokenCategory.STABLE,
            ),
            TokenContract(
                symbol="USDT0",
                address="0xfc5126377f0efc0041c0969ef9ba903ce67d151e",
                category=TokenCategory.STABLE,
            ),
            TokenContract(
                symbol="USDT0 Frontier",
                address="0x9896a8605763106e57A51aa0a97Fe8099E806bb3",
                category=TokenCategory.STABLE,
            ),
            TokenContract(
                symbol="beHYPE",
                address="0xd8FC8F0b03eBA61F64D08B0bef69d80916E5DdA9",
                category=TokenCategory.LIQUID_STAKING,
            ),
            TokenContract(
                symbol="beHYPE/USDT0",
                address="0x68e37dE8d93d3496ae143F2E900490f6280C57cD",
                category=TokenCategory.LIQUIDITY_POOL,
            ),
        ],
        timeout=5.0,
    )


@pytest.fixture()
def fake_repository() -> FakeRepository:
    return FakeRepository()
