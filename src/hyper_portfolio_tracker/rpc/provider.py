"""HyperEVM RPC provider built on web3.py's asyncio API."""

import logging
from collections.abc import Awaitable, Callable
from decimal import Decimal
from typing import Any

from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.providers.async_base import AsyncBaseProvider

from hyper_portfolio_tracker.rpc.retry import RetryConfig, retry_async

logger = logging.getLogger(__name__)

# Minimal ERC20 fragment; the only contract read tokens need.
ERC20_BALANCE_OF_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "balanceOf",
        "stateMutability": "view",
        "inputs": [{"name": "owner", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    }
]


def format_units(value: int, decimals: int = 18) -> str:
    """
    Format an integer amount of smallest units as a decimal string.

    Uses fixed-point scaling, never floats. Trailing zeros are dropped.

    Parameters
    ----------
    value : int
        Amount in smallest units (e.g., wei)
    decimals : int
        Number of decimal places of the asset

    Returns
    -------
    str
        Decimal string

    Examples
    --------
    >>> format_units(1_500_000_000_000_000_000)
    '1.5'
    >>> format_units(0)
    '0'

    """
    amount = Decimal(int(value)).scaleb(-decimals).normalize()
    return f"{amount:f}"


class HyperEVMProvider:
    """
    Shared read-only connection to the HyperEVM JSON-RPC endpoint.

    One instance is reused by every concurrent request. It holds no
    per-request state, so no locking is needed.

    Parameters
    ----------
    rpc_url : str
        JSON-RPC endpoint URL
    retry_config : RetryConfig | None
        Retry policy for individual calls
    transport : AsyncBaseProvider | None
        web3 provider to use instead of an HTTP provider for ``rpc_url``

    """

    def __init__(
        self,
        rpc_url: str,
        retry_config: RetryConfig | None = None,
        transport: AsyncBaseProvider | None = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.transport = transport
        self.retry_config = retry_config or RetryConfig(
            max_retries=2,
            base_delay=0.5,
            max_delay=5.0,
            exponential_base=2.0,
        )
        self._web3: AsyncWeb3 | None = None

    @property
    def web3(self) -> AsyncWeb3:
        """Connected web3 instance, created on first use."""
        if self._web3 is None:
            self.connect()
        return self._web3  # type: ignore[return-value]

    def connect(self) -> None:
        """Create the async web3 client for the configured endpoint."""
        transport = self.transport if self.transport is not None else AsyncHTTPProvider(self.rpc_url)
        self._web3 = AsyncWeb3(transport)
        logger.debug("HyperEVM provider using %s", self.rpc_url)

    async def disconnect(self) -> None:
        """Close the underlying HTTP session, if any."""
        if self._web3 is None:
            return
        try:
            await self._web3.provider.disconnect()
        except Exception as e:
            logger.debug("Error during provider cleanup: %s", e)
        self._web3 = None

    @staticmethod
    def to_checksum_address(address: str) -> str:
        """Return the EIP-55 checksum form of an address."""
        return AsyncWeb3.to_checksum_address(address)

    async def get_balance(self, address: str) -> int:
        """
        Get the native balance of an address in wei.

        Parameters
        ----------
        address : str
            Account address

        Returns
        -------
        int
            Balance in smallest units

        """
        checksum = self.to_checksum_address(address)
        return await self.make_request("eth_getBalance", lambda: self.web3.eth.get_balance(checksum))

    async def call(
        self,
        contract_address: str,
        abi: list[dict[str, Any]],
        method: str,
        params: list[Any] | None = None,
    ) -> Any:
        """
        Call a view function on a contract.

        Parameters
        ----------
        contract_address : str
            Target contract address
        abi : list[dict[str, Any]]
            ABI fragment containing ``method``
        method : str
            Function name (e.g., 'balanceOf')
        params : list[Any] | None
            Function arguments

        Returns
        -------
        Any
            Decoded return value

        """
        contract = self.web3.eth.contract(address=self.to_checksum_address(contract_address), abi=abi)
        function = getattr(contract.functions, method)(*(params or []))
        return await self.make_request(method, function.call)

    async def make_request(self, label: str, request: Callable[[], Awaitable[Any]]) -> Any:
        """
        Await an RPC request under the provider's retry policy.

        Parameters
        ----------
        label : str
            Method name used in log messages
        request : Callable[[], Awaitable[Any]]
            Factory producing a fresh awaitable per attempt

        Returns
        -------
        Any
            RPC response

        """
        return await retry_async(request, self.retry_config, label=f"RPC call {label}")

    async def __aenter__(self) -> "HyperEVMProvider":
        """Async context manager entry."""
        self.connect()
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Async context manager exit."""
        await self.disconnect()
