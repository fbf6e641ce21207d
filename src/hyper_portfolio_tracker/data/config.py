"""Explicit configuration passed to the repository and provider clients."""

from pydantic import BaseModel, Field

from hyper_portfolio_tracker.data.addresses import HYPEREVM_CHAIN_ID, TOKEN_CATEGORIES, TokenCategory


class TokenContract(BaseModel):
    """
    ERC20 contract tracked for every address.

    Attributes
    ----------
    symbol : str
        Display symbol
    address : str
        Contract address
    category : TokenCategory
        Category the token contributes to

    """

    symbol: str
    address: str
    category: TokenCategory


class HyperLendAddresses(BaseModel):
    """HyperLend Core contract addresses."""

    pool: str
    pool_data_provider: str
    oracle: str


class PortfolioConfig(BaseModel):
    """
    Connection and contract table owned by whoever composes the repository.

    Attributes
    ----------
    chain_id : int
        Target chain id; only positions on this chain are consumed
    rpc_url : str
        HyperEVM JSON-RPC endpoint
    hyperliquid_api_url : str
        Hyperliquid ``info`` endpoint
    pendle_api_url : str
        Pendle core API base URL
    hyperlend : HyperLendAddresses
        HyperLend Core contracts
    native_decimals : int
        Decimals of the native HYPE balance
    tokens : list[TokenContract]
        Tracked ERC20 contracts, in display order
    timeout : float
        HTTP request timeout in seconds

    """

    chain_id: int = HYPEREVM_CHAIN_ID
    rpc_url: str
    hyperliquid_api_url: str
    pendle_api_url: str
    hyperlend: HyperLendAddresses
    native_decimals: int = 18
    tokens: list[TokenContract] = Field(default_factory=list)
    timeout: float = 30.0

    def token(self, symbol: str) -> TokenContract:
        """
        Look up a tracked token by symbol.

        Raises
        ------
        KeyError
            If the symbol is not configured

        """
        for token in self.tokens:
            if token.symbol == symbol:
                return token
        msg = f"Token {symbol!r} is not configured"
        raise KeyError(msg)


def category_for(symbol: str) -> TokenCategory:
    """
    Return the static category of a token symbol.

    Raises
    ------
    KeyError
        If the symbol has no known category

    """
    try:
        return TOKEN_CATEGORIES[symbol]
    except KeyError:
        msg = f"No category known for token {symbol!r}"
        raise KeyError(msg) from None
