"""Centralized address constants and the static token category table."""

from enum import StrEnum

HYPEREVM_CHAIN = "hyperevm"
HYPEREVM_CHAIN_ID = 999

ADDRESS_PATTERN = r"^0x[0-9a-fA-F]{40}$"


class TokenCategory(StrEnum):
    """Category a tracked token contributes to."""

    STABLE = "stable"
    LIQUID_STAKING = "liquid_staking"
    LIQUIDITY_POOL = "liquidity_pool"


# Symbol -> category. Only stable tokens are valued (1:1 USD) in the snapshot.
TOKEN_CATEGORIES: dict[str, TokenCategory] = {
    "feUSD": TokenCategory.STABLE,
    "USDT0": TokenCategory.STABLE,
    "USDT0 Frontier": TokenCategory.STABLE,
    "beHYPE": TokenCategory.LIQUID_STAKING,
    "beHYPE/USDT0": TokenCategory.LIQUIDITY_POOL,
}

STABLE_TOKEN_SYMBOLS: tuple[str, ...] = tuple(
    symbol for symbol, category in TOKEN_CATEGORIES.items() if category is TokenCategory.STABLE
)
