"""Tests for the RPC provider helpers and balance readers."""

from typing import Any

import pytest
from conftest import ADDRESS_A, FakeProvider
from pydantic import ValidationError
from web3.providers.async_base import AsyncBaseProvider

from hyper_portfolio_tracker.protocols.base import BaseProtocolHandler, ContractCallError
from hyper_portfolio_tracker.protocols.erc20 import ERC20BalanceReader, NativeBalanceReader
from hyper_portfolio_tracker.protocols.hyperlend import POOL_DATA_PROVIDER_ABI
from hyper_portfolio_tracker.rpc import ERC20_BALANCE_OF_ABI, HyperEVMProvider, RetryConfig, format_units
from hyper_portfolio_tracker.rpc.retry import retry_async

TOKEN = "0x02c6a2fa58cc01a18b8d9e00ea48d65e4df26c70"


@pytest.mark.parametrize(
    ("value", "decimals", "expected"),
    [
        (1_500_000_000_000_000_000, 18, "1.5"),
        (0, 18, "0"),
        (1, 18, "0.000000000000000001"),
        (10**24, 18, "1000000"),
        (123_456, 6, "0.123456"),
    ],
)
def test_format_units(value, decimals, expected):
    assert format_units(value, decimals) == expected


class TestRetryConfig:
    def test_exponential_delay(self):
        config = RetryConfig(max_retries=3, base_delay=1.0, max_delay=30.0, exponential_base=2.0)

        assert config.max_attempts == 4
        assert list(config.delays()) == [1.0, 2.0, 4.0]

    def test_delay_is_capped(self):
        config = RetryConfig(base_delay=10.0, max_delay=15.0)

        assert config.get_delay(5) == 15.0

    def test_no_retries(self):
        assert list(RetryConfig(max_retries=0).delays()) == []

    def test_rejects_negative_retries(self):
        with pytest.raises(ValidationError):
            RetryConfig(max_retries=-1)


class TestRetryAsync:
    @pytest.mark.asyncio
    async def test_retries_until_success(self):
        attempts = []

        async def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise ConnectionError("temporary")
            return 42

        assert await retry_async(flaky, RetryConfig(max_retries=2, base_delay=0.0)) == 42
        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_raises_last_error(self):
        attempts = []

        async def failing():
            attempts.append(1)
            raise ConnectionError(f"attempt {len(attempts)}")

        with pytest.raises(ConnectionError, match="attempt 2"):
            await retry_async(failing, RetryConfig(max_retries=1, base_delay=0.0))
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_provider_uses_its_policy(self):
        provider = HyperEVMProvider("http://localhost:8545", RetryConfig(max_retries=1, base_delay=0.0))
        attempts = []

        async def failing():
            attempts.append(1)
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            await provider.make_request("eth_call", failing)
        assert len(attempts) == 2


def test_checksum_address():
    checksum = HyperEVMProvider.to_checksum_address(TOKEN)

    assert checksum.lower() == TOKEN
    assert checksum != TOKEN
    assert HyperEVMProvider.to_checksum_address(checksum) == checksum


def test_handler_requires_name():
    class Nameless(BaseProtocolHandler):
        pass

    with pytest.raises(ValueError, match="must define 'name'"):
        Nameless()


class TestNativeBalanceReader:
    @pytest.mark.asyncio
    async def test_formats_balance(self):
        provider = FakeProvider(balances={ADDRESS_A: 2_250_000_000_000_000_000})

        assert await NativeBalanceReader(provider).get_balance(ADDRESS_A) == "2.25"

    @pytest.mark.asyncio
    async def test_wraps_errors(self):
        provider = FakeProvider(balances={ADDRESS_A: TimeoutError("rpc timeout")})

        with pytest.raises(ContractCallError, match="eth_getBalance"):
            await NativeBalanceReader(provider).get_balance(ADDRESS_A)

    @pytest.mark.asyncio
    async def test_requires_provider(self):
        with pytest.raises(RuntimeError, match="not configured"):
            await NativeBalanceReader().get_balance(ADDRESS_A)

    @pytest.mark.asyncio
    async def test_decimals_are_configurable(self):
        provider = FakeProvider(balances={ADDRESS_A: 1_500_000})

        assert await NativeBalanceReader(provider, decimals=6).get_balance(ADDRESS_A) == "1.5"


class TestERC20BalanceReader:
    @pytest.mark.asyncio
    async def test_reads_balance_of(self):
        provider = FakeProvider({"balanceOf": 1_500_000_000_000_000_000})

        balance = await ERC20BalanceReader(provider).get_balance(TOKEN, ADDRESS_A)

        assert balance == "1.5"
        contract, method, params = provider.calls[0]
        assert contract == TOKEN
        assert method == "balanceOf"
        assert params == (HyperEVMProvider.to_checksum_address(ADDRESS_A),)

    @pytest.mark.asyncio
    async def test_revert_raises_contract_call_error(self):
        provider = FakeProvider({"balanceOf": ValueError("execution reverted")})

        with pytest.raises(ContractCallError, match="balanceOf"):
            await ERC20BalanceReader(provider).get_balance(TOKEN, ADDRESS_A)


class JSONRPCStub(AsyncBaseProvider):
    """web3 provider answering each JSON-RPC method from a fixed table."""

    def __init__(self, results: dict[str, Any]) -> None:
        super().__init__()
        self.results = results
        self.requests: list[tuple[str, Any]] = []

    async def make_request(self, method, params):
        self.requests.append((method, params))
        return {"jsonrpc": "2.0", "id": len(self.requests), "result": self.results[method]}

    async def is_connected(self, show_traceback: bool = False) -> bool:
        return True

    def eth_calls(self) -> list[dict[str, Any]]:
        return [params[0] for method, params in self.requests if method == "eth_call"]


def _stub_provider(results: dict[str, Any]) -> tuple[HyperEVMProvider, JSONRPCStub]:
    stub = JSONRPCStub({"eth_chainId": hex(999), **results})
    return HyperEVMProvider("http://unused", RetryConfig(max_retries=0), transport=stub), stub


def _encode(provider: HyperEVMProvider, types: list[str], values: list[Any]) -> str:
    return "0x" + provider.web3.codec.encode(types, values).hex()


class TestWeb3CallPath:
    @pytest.mark.asyncio
    async def test_erc20_balance_of_round_trip(self):
        provider, stub = _stub_provider({})
        stub.results["eth_call"] = _encode(provider, ["uint256"], [7 * 10**18])

        balance = await ERC20BalanceReader(provider).get_balance(TOKEN, ADDRESS_A)

        assert balance == "7"
        (call,) = stub.eth_calls()
        assert call["to"] == HyperEVMProvider.to_checksum_address(TOKEN)
        # balanceOf(address) selector followed by the padded owner
        data = call.get("data") or call.get("input")
        assert data.lower() == "0x70a08231" + "0" * 24 + ADDRESS_A[2:]

    @pytest.mark.asyncio
    async def test_non_checksummed_argument_is_rejected(self):
        provider, stub = _stub_provider({})
        reader = ERC20BalanceReader(provider)

        with pytest.raises(ContractCallError, match="balanceOf"):
            await reader._make_contract_call(TOKEN, ERC20_BALANCE_OF_ABI, "balanceOf", [ADDRESS_A])
        assert stub.eth_calls() == []

    @pytest.mark.asyncio
    async def test_native_balance(self):
        provider, stub = _stub_provider({"eth_getBalance": hex(5 * 10**18)})

        assert await NativeBalanceReader(provider).get_balance(ADDRESS_A) == "5"
        method, params = stub.requests[-1]
        assert method == "eth_getBalance"
        assert params[0] == HyperEVMProvider.to_checksum_address(ADDRESS_A)

    @pytest.mark.asyncio
    async def test_reserves_tuple_array_is_decoded(self):
        usdt0 = "0x" + "01" * 20
        whype = "0x" + "02" * 20
        provider, stub = _stub_provider({})
        stub.results["eth_call"] = _encode(provider, ["(string,address)[]"], [[("USDT0", usdt0), ("WHYPE", whype)]])

        reserves = await provider.call("0x" + "55" * 20, POOL_DATA_PROVIDER_ABI, "getAllReservesTokens")

        assert [(symbol, address.lower()) for symbol, address in reserves] == [("USDT0", usdt0), ("WHYPE", whype)]
        assert all(address == HyperEVMProvider.to_checksum_address(address) for _, address in reserves)
