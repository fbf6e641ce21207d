"""Hyperliquid exchange ``info`` API client."""

import logging
from typing import Any

import httpx

from hyper_portfolio_tracker.core.models import OpaquePayload

logger = logging.getLogger(__name__)


class HyperliquidAPIError(Exception):
    """Exception raised for Hyperliquid API errors."""


class HyperliquidClient:
    """
    Client for the Hyperliquid exchange ``info`` endpoint.

    Every request is a POST of ``{"type": ..., "user": ...}`` to the same URL.
    Responses are returned verbatim as opaque payloads: this client does not
    interpret exchange state.

    Parameters
    ----------
    base_url : str
        Full ``info`` endpoint URL
    timeout : float
        Request timeout in seconds
    client : httpx.AsyncClient | None
        Pre-built client (e.g., with a mock transport); owned by the caller

    """

    BASE_URL = "https://api.hyperliquid.xyz/info"
    SOURCE = "hyperliquid"

    # Request types understood by the info endpoint
    SPOT_STATE = "spotClearinghouseState"
    PERP_STATE = "clearinghouseState"
    OPEN_ORDERS = "frontendOpenOrders"

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def get_spot_clearinghouse_state(self, address: str) -> OpaquePayload:
        """Fetch spot balances held on HyperCore."""
        return await self._info(self.SPOT_STATE, address)

    async def get_perp_clearinghouse_state(self, address: str) -> OpaquePayload:
        """Fetch perpetuals margin summary and positions."""
        return await self._info(self.PERP_STATE, address)

    async def get_open_orders(self, address: str) -> OpaquePayload:
        """Fetch open orders with frontend metadata."""
        return await self._info(self.OPEN_ORDERS, address)

    async def _info(self, request_type: str, address: str) -> OpaquePayload:
        """
        POST one ``info`` request.

        Parameters
        ----------
        request_type : str
            Value of the ``type`` field
        address : str
            User address

        Returns
        -------
        OpaquePayload
            Decoded response body tagged with its request type

        Raises
        ------
        HyperliquidAPIError
            If the request fails or returns a non-2xx status

        """
        body: dict[str, Any] = {"type": request_type, "user": address}

        try:
            response = await self.client.post(self.base_url, json=body)
            response.raise_for_status()
            data = response.json()

        except httpx.TimeoutException as e:
            msg = f"Request timeout: {e}"
            raise HyperliquidAPIError(msg) from e
        except httpx.HTTPStatusError as e:
            msg = f"HTTP error {e.response.status_code}: {e}"
            raise HyperliquidAPIError(msg) from e
        except httpx.HTTPError as e:
            msg = f"HTTP request failed: {e}"
            raise HyperliquidAPIError(msg) from e
        except ValueError as e:
            msg = f"Invalid JSON in {request_type} response: {e}"
            raise HyperliquidAPIError(msg) from e

        logger.debug("Hyperliquid %s for %s received", request_type, address)
        return OpaquePayload(source=self.SOURCE, kind=request_type, data=data)

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "HyperliquidClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.aclose()
