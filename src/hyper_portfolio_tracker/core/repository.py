"""Portfolio repository: one async operation per data need."""

import logging
from typing import Protocol

from hyper_portfolio_tracker.core.models import HyperLendData, OpaquePayload, PendleMarketPosition
from hyper_portfolio_tracker.data.config import PortfolioConfig
from hyper_portfolio_tracker.integrations.hyperliquid import HyperliquidClient
from hyper_portfolio_tracker.integrations.pendle import PendleClient
from hyper_portfolio_tracker.protocols.erc20 import ERC20BalanceReader, NativeBalanceReader
from hyper_portfolio_tracker.protocols.hyperlend import HyperLendHandler
from hyper_portfolio_tracker.rpc.provider import HyperEVMProvider

logger = logging.getLogger(__name__)


class PortfolioRepository(Protocol):
    """
    Data access seam used by the query fan-out.

    Implementations never validate addresses. Errors propagate to the caller,
    except for HyperLend, whose client degrades to an empty result.
    """

    async def get_spot_clearinghouse_state(self, address: str) -> OpaquePayload: ...

    async def get_perp_clearinghouse_state(self, address: str) -> OpaquePayload: ...

    async def get_open_orders(self, address: str) -> OpaquePayload: ...

    async def get_hyper_evm_balance(self, address: str) -> str: ...

    async def get_hyperlend_data(self, address: str) -> HyperLendData: ...

    async def get_pendle_positions(self, address: str) -> list[PendleMarketPosition]: ...

    async def get_behype_balance(self, address: str) -> str: ...

    async def get_feusd_balance(self, address: str) -> str: ...

    async def get_usdt0_balance(self, address: str) -> str: ...

    async def get_usdt0_frontier_balance(self, address: str) -> str: ...

    async def get_behype_usdt0_balance(self, address: str) -> str: ...


class HyperEVMPortfolioRepository:
    """
    Repository backed by the Hyperliquid API, HyperEVM RPC and Pendle API.

    Everything is composed from an explicit configuration and a shared
    provider; contract addresses stay hidden behind this class.

    Parameters
    ----------
    config : PortfolioConfig
        Contract table and API URLs
    provider : HyperEVMProvider
        Shared read-only RPC connection
    hyperliquid : HyperliquidClient | None
        Exchange client (default: built from config)
    pendle : PendleClient | None
        Yield protocol client (default: built from config)

    """

    def __init__(
        self,
        config: PortfolioConfig,
        provider: HyperEVMProvider,
        hyperliquid: HyperliquidClient | None = None,
        pendle: PendleClient | None = None,
    ) -> None:
        self.config = config
        self.provider = provider
        self.hyperliquid = hyperliquid or HyperliquidClient(config.hyperliquid_api_url, timeout=config.timeout)
        self.pendle = pendle or PendleClient(
            config.pendle_api_url,
            chain_id=config.chain_id,
            timeout=config.timeout,
        )
        self.native = NativeBalanceReader(provider, decimals=config.native_decimals)
        self.erc20 = ERC20BalanceReader(provider)
        self.hyperlend = HyperLendHandler(provider, config.hyperlend)

    async def get_spot_clearinghouse_state(self, address: str) -> OpaquePayload:
        return await self.hyperliquid.get_spot_clearinghouse_state(address)

    async def get_perp_clearinghouse_state(self, address: str) -> OpaquePayload:
        return await self.hyperliquid.get_perp_clearinghouse_state(address)

    async def get_open_orders(self, address: str) -> OpaquePayload:
        return await self.hyperliquid.get_open_orders(address)

    async def get_hyper_evm_balance(self, address: str) -> str:
        return await self.native.get_balance(address)

    async def get_hyperlend_data(self, address: str) -> HyperLendData:
        return await self.hyperlend.get_data(address)

    async def get_pendle_positions(self, address: str) -> list[PendleMarketPosition]:
        return await self.pendle.get_positions(address)

    async def get_behype_balance(self, address: str) -> str:
        return await self._token_balance("beHYPE", address)

    async def get_feusd_balance(self, address: str) -> str:
        return await self._token_balance("feUSD", address)

    async def get_usdt0_balance(self, address: str) -> str:
        return await self._token_balance("USDT0", address)

    async def get_usdt0_frontier_balance(self, address: str) -> str:
        return await self._token_balance("USDT0 Frontier", address)

    async def get_behype_usdt0_balance(self, address: str) -> str:
        return await self._token_balance("beHYPE/USDT0", address)

    async def _token_balance(self, symbol: str, address: str) -> str:
        token = self.config.token(symbol)
        return await self.erc20.get_balance(token.address, address)

    async def aclose(self) -> None:
        """Close HTTP clients and the RPC session."""
        await self.hyperliquid.aclose()
        await self.pendle.aclose()
        await self.provider.disconnect()
        logger.debug("Repository closed")

    async def __aenter__(self) -> "HyperEVMPortfolioRepository":
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.aclose()
