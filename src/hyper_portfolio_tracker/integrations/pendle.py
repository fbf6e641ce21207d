"""Pendle dashboard API client for open yield positions."""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from hyper_portfolio_tracker.core.models import PendleMarketPosition
from hyper_portfolio_tracker.data.addresses import HYPEREVM_CHAIN_ID

logger = logging.getLogger(__name__)


class PendleAPIError(Exception):
    """Exception raised for Pendle API errors."""


class PendleClient:
    """
    Client for the Pendle core API.

    Only open positions on the configured chain are returned; closed and
    SY positions are dropped.

    Parameters
    ----------
    base_url : str
        Core API base URL
    chain_id : int
        Chain whose positions are kept
    timeout : float
        Request timeout in seconds
    client : httpx.AsyncClient | None
        Pre-built client; owned by the caller

    """

    BASE_URL = "https://api-v2.pendle.finance/core"

    def __init__(
        self,
        base_url: str = BASE_URL,
        chain_id: int = HYPEREVM_CHAIN_ID,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.chain_id = chain_id
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def get_raw_positions(self, address: str) -> dict[str, Any]:
        """
        Fetch the dashboard positions response for a wallet.

        Parameters
        ----------
        address : str
            Wallet address

        Returns
        -------
        dict[str, Any]
            Raw response with a ``positions`` list, one entry per chain

        Raises
        ------
        PendleAPIError
            If the API request fails

        """
        url = f"{self.base_url}/v1/dashboard/positions/database/{address}"

        try:
            response = await self.client.get(url, params={"filterUsd": "0"})
            response.raise_for_status()
            return response.json()

        except httpx.TimeoutException as e:
            msg = f"Request timeout: {e}"
            raise PendleAPIError(msg) from e
        except httpx.HTTPStatusError as e:
            msg = f"HTTP error {e.response.status_code}: {e}"
            raise PendleAPIError(msg) from e
        except httpx.HTTPError as e:
            msg = f"HTTP request failed: {e}"
            raise PendleAPIError(msg) from e
        except ValueError as e:
            msg = f"Invalid JSON in positions response: {e}"
            raise PendleAPIError(msg) from e

    async def get_positions(self, address: str) -> list[PendleMarketPosition]:
        """
        Fetch open positions on the target chain.

        Parameters
        ----------
        address : str
            Wallet address

        Returns
        -------
        list[PendleMarketPosition]
            Open positions of every matching chain entry, flattened

        Raises
        ------
        PendleAPIError
            If the request fails or the response is not a JSON object

        """
        raw = await self.get_raw_positions(address)
        if not isinstance(raw, dict):
            msg = f"Unexpected positions response: {type(raw).__name__}"
            raise PendleAPIError(msg)

        positions = []
        for entry in raw.get("positions") or []:
            if not isinstance(entry, dict) or entry.get("chainId") != self.chain_id:
                continue
            for item in entry.get("openPositions") or []:
                try:
                    positions.append(PendleMarketPosition.model_validate(item))
                except ValidationError as e:
                    logger.warning("Skipping malformed Pendle position for %s: %s", address, e)

        logger.debug("Pendle: %d open positions for %s", len(positions), address)
        return positions

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "PendleClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.aclose()
