"""Base class for on-chain readers with common contract-call handling."""

from typing import Any, ClassVar

from hyper_portfolio_tracker.rpc.provider import HyperEVMProvider


class ContractCallError(RuntimeError):
    """Exception raised when a contract read reverts or the RPC call fails."""


class BaseProtocolHandler:
    """
    Base class for readers that query HyperEVM contracts.

    Subclasses share one read-only provider and never keep per-request state.

    Attributes
    ----------
    name : str
        Unique reader identifier (must be set in subclass)

    """

    name: ClassVar[str] = ""

    def __init__(self, rpc_provider: HyperEVMProvider | None = None) -> None:
        """
        Initialize the reader.

        Parameters
        ----------
        rpc_provider : HyperEVMProvider | None
            Shared provider for contract calls

        """
        if not self.name:
            msg = f"{self.__class__.__name__} must define 'name' attribute"
            raise ValueError(msg)
        self.rpc_provider = rpc_provider

    def _require_provider(self) -> HyperEVMProvider:
        if not self.rpc_provider:
            msg = "RPC provider not configured for this handler"
            raise RuntimeError(msg)
        return self.rpc_provider

    async def _make_contract_call(
        self,
        contract_address: str,
        abi: list[dict[str, Any]],
        method: str,
        params: list[Any] | None = None,
    ) -> Any:
        """
        Call a view function using the RPC provider.

        Parameters
        ----------
        contract_address : str
            Target contract address
        abi : list[dict[str, Any]]
            ABI fragment containing ``method``
        method : str
            Method name (e.g., 'balanceOf')
        params : list[Any] | None
            Method parameters (default: None)

        Returns
        -------
        Any
            Call result

        Raises
        ------
        RuntimeError
            If RPC provider is not configured
        ContractCallError
            If the call fails

        """
        provider = self._require_provider()

        try:
            return await provider.call(contract_address, abi, method, params or [])
        except Exception as e:
            msg = f"Contract call {method} on {contract_address} failed: {e}"
            raise ContractCallError(msg) from e
