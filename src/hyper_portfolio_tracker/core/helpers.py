"""Address list helpers and display utilities."""

import re
from collections.abc import Sequence
from typing import Any

from hyper_portfolio_tracker.data.addresses import ADDRESS_PATTERN

_ADDRESS_RE = re.compile(ADDRESS_PATTERN)


def is_valid_address(address: Any) -> bool:
    """
    Check whether a value is a well-formed HyperEVM address.

    Parameters
    ----------
    address : Any
        Candidate value

    Returns
    -------
    bool
        True for ``0x`` followed by 40 hex characters (any case)

    Examples
    --------
    >>> is_valid_address("0x" + "ab" * 20)
    True
    >>> is_valid_address("0x1234")
    False

    """
    return isinstance(address, str) and _ADDRESS_RE.fullmatch(address) is not None


def normalize_candidate(raw: str) -> str:
    """Trim surrounding whitespace from user input."""
    return raw.strip()


def add_address(addresses: Sequence[str], candidate: str) -> tuple[list[str], bool]:
    """
    Append a candidate address to a list.

    Empty, malformed and already present candidates are rejected.

    Parameters
    ----------
    addresses : Sequence[str]
        Current address list
    candidate : str
        Raw user input

    Returns
    -------
    tuple[list[str], bool]
        New list and whether the candidate was added

    """
    address = normalize_candidate(candidate)
    if not address or not is_valid_address(address) or address in addresses:
        return list(addresses), False
    return [*addresses, address], True


def remove_address(addresses: Sequence[str], address: str) -> list[str]:
    """Return the list without any occurrence of ``address``."""
    return [item for item in addresses if item != address]


def ensure_list(value: Any) -> list[Any]:
    """
    Turn an opaque JSON value into a list of displayable entries.

    Lists pass through, mappings become ``{"key", "value"}`` entries and
    anything else yields an empty list.

    Examples
    --------
    >>> ensure_list({"a": 1})
    [{'key': 'a', 'value': 1}]
    >>> ensure_list(None)
    []

    """
    if isinstance(value, list):
        return value
    if isinstance(value, dict) and value:
        return [{"key": key, "value": item} for key, item in value.items()]
    return []
