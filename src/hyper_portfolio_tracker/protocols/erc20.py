"""Native HYPE and generic ERC20 balance readers."""

from hyper_portfolio_tracker.protocols.base import BaseProtocolHandler, ContractCallError
from hyper_portfolio_tracker.rpc.provider import ERC20_BALANCE_OF_ABI, HyperEVMProvider, format_units

NATIVE_DECIMALS = 18
TOKEN_DECIMALS = 18


class NativeBalanceReader(BaseProtocolHandler):
    """Reads the HYPE balance of an address on HyperEVM."""

    name = "native"

    def __init__(self, rpc_provider: HyperEVMProvider | None = None, decimals: int = NATIVE_DECIMALS) -> None:
        super().__init__(rpc_provider)
        self.decimals = decimals

    async def get_balance(self, address: str) -> str:
        """
        Get the native balance of an address.

        Parameters
        ----------
        address : str
            Account address

        Returns
        -------
        str
            Balance in HYPE as a decimal string

        Raises
        ------
        ContractCallError
            If the balance query fails

        """
        provider = self._require_provider()

        try:
            wei = await provider.get_balance(address)
        except Exception as e:
            msg = f"eth_getBalance for {address} failed: {e}"
            raise ContractCallError(msg) from e

        return format_units(wei, self.decimals)


class ERC20BalanceReader(BaseProtocolHandler):
    """Reads ``balanceOf`` on any ERC20 contract."""

    name = "erc20"

    async def get_balance(self, contract_address: str, owner_address: str) -> str:
        """
        Get the token balance of an owner.

        Parameters
        ----------
        contract_address : str
            ERC20 contract address
        owner_address : str
            Wallet address to check

        Returns
        -------
        str
            Balance as a decimal string (18 decimals)

        """
        raw = await self._make_contract_call(
            contract_address,
            ERC20_BALANCE_OF_ABI,
            "balanceOf",
            [HyperEVMProvider.to_checksum_address(owner_address)],
        )
        return format_units(raw, TOKEN_DECIMALS)
