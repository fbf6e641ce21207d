"""Per-address query fan-out with independent per-request state."""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from hyper_portfolio_tracker.core.aggregator import build_overview
from hyper_portfolio_tracker.core.helpers import is_valid_address
from hyper_portfolio_tracker.core.models import TOKEN_NEEDS, DataNeed, PortfolioOverview, PortfolioResults

if TYPE_CHECKING:
    from hyper_portfolio_tracker.core.repository import PortfolioRepository

logger = logging.getLogger(__name__)

# Repository operation backing each need
NEED_OPERATIONS: dict[DataNeed, str] = {
    DataNeed.SPOT_STATE: "get_spot_clearinghouse_state",
    DataNeed.PERP_STATE: "get_perp_clearinghouse_state",
    DataNeed.OPEN_ORDERS: "get_open_orders",
    DataNeed.NATIVE_BALANCE: "get_hyper_evm_balance",
    DataNeed.HYPERLEND: "get_hyperlend_data",
    DataNeed.PENDLE: "get_pendle_positions",
    DataNeed.BEHYPE: "get_behype_balance",
    DataNeed.FEUSD: "get_feusd_balance",
    DataNeed.USDT0: "get_usdt0_balance",
    DataNeed.USDT0_FRONTIER: "get_usdt0_frontier_balance",
    DataNeed.BEHYPE_USDT0: "get_behype_usdt0_balance",
}


class QueryStatus(StrEnum):
    """Lifecycle of a single (need, address) request."""

    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


class QueryState(BaseModel):
    """
    State of one request.

    Attributes
    ----------
    address : str
        Address the request is for
    status : QueryStatus
        Current lifecycle state
    data : Any
        Result once successful
    error : str | None
        Failure message once failed

    """

    address: str
    status: QueryStatus = QueryStatus.PENDING
    data: Any = None
    error: str | None = None

    @property
    def is_loading(self) -> bool:
        return self.status is QueryStatus.PENDING


class NeedQuery:
    """
    All requests for one data need, one asyncio task per address.

    Parameters
    ----------
    need : DataNeed
        Need served by this query
    fetch : Callable[[str], Awaitable[Any]]
        Repository operation called once per address
    on_settled : Callable[[], None] | None
        Called whenever a request finishes

    """

    def __init__(
        self,
        need: DataNeed,
        fetch: Callable[[str], Awaitable[Any]],
        on_settled: Callable[[], None] | None = None,
    ) -> None:
        self.need = need
        self._fetch = fetch
        self._on_settled = on_settled
        self._addresses: list[str] = []
        self._states: dict[str, QueryState] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}

    def set_addresses(self, addresses: list[str]) -> None:
        """
        Reconcile running requests with a new, already validated address list.

        Requests for removed addresses are cancelled and their state dropped;
        new addresses get a request; the rest keep running untouched. Must be
        called from within a running event loop.

        """
        wanted = set(addresses)

        for address in [a for a in self._states if a not in wanted]:
            task = self._tasks.pop(address, None)
            if task is not None:
                task.cancel()
            del self._states[address]

        for address in addresses:
            if address in self._states:
                continue
            state = QueryState(address=address)
            self._states[address] = state
            self._tasks[address] = asyncio.create_task(
                self._run(address, state),
                name=f"{self.need.value}:{address}",
            )

        self._addresses = list(addresses)

    async def _run(self, address: str, state: QueryState) -> None:
        try:
            result = await self._fetch(address)
        except Exception as e:
            # Stale: the address was removed (and maybe re-added) meanwhile
            if self._states.get(address) is state:
                state.status = QueryStatus.ERROR
                state.error = str(e) or e.__class__.__name__
                logger.warning("%s request for %s failed: %s", self.need.value, address, state.error)
        else:
            if self._states.get(address) is state:
                state.status = QueryStatus.SUCCESS
                state.data = result
                logger.debug("%s request for %s succeeded", self.need.value, address)
        finally:
            if self._tasks.get(address) is asyncio.current_task():
                del self._tasks[address]
            if self._on_settled is not None:
                self._on_settled()

    @property
    def addresses(self) -> list[str]:
        return list(self._addresses)

    @property
    def states(self) -> list[QueryState]:
        """Request states aligned with the address list, never arrival order."""
        return [self._states[address] for address in self._addresses]

    @property
    def is_loading(self) -> bool:
        return any(state.is_loading for state in self.states)

    @property
    def data(self) -> list[Any]:
        """Successful results in address order; failures are left out."""
        return [state.data for state in self.states if state.status is QueryStatus.SUCCESS]

    @property
    def errors(self) -> dict[str, str]:
        return {state.address: state.error for state in self.states if state.error is not None}

    @property
    def pending_tasks(self) -> list[asyncio.Task[None]]:
        return [task for task in self._tasks.values() if not task.done()]


class PortfolioQueries:
    """
    Fan-out of every data need across the current address list.

    Requests for different needs and addresses run independently; results
    are read incrementally through ``results()``/``overview()`` and never
    behind a barrier.

    Parameters
    ----------
    repository : PortfolioRepository
        Data access seam

    Examples
    --------
    >>> async def show(repository, addresses):
    ...     queries = PortfolioQueries(repository)
    ...     queries.set_addresses(addresses)
    ...     async for overview in queries.updates():
    ...         print(overview.snapshot.total_usd, overview.is_loading)

    """

    def __init__(self, repository: "PortfolioRepository") -> None:
        self.repository = repository
        self._addresses: list[str] = []
        self._changed = asyncio.Event()
        self.queries: dict[DataNeed, NeedQuery] = {
            need: NeedQuery(need, getattr(repository, operation), self._notify)
            for need, operation in NEED_OPERATIONS.items()
        }

    def _notify(self) -> None:
        self._changed.set()

    def set_addresses(self, candidates: Iterable[str]) -> list[str]:
        """
        Replace the address list.

        Malformed entries are dropped silently and never reach the repository.

        Parameters
        ----------
        candidates : Iterable[str]
            Raw address list; duplicates are kept

        Returns
        -------
        list[str]
            Valid addresses now being queried

        """
        valid = [address for address in candidates if is_valid_address(address)]
        self._addresses = valid

        for query in self.queries.values():
            query.set_addresses(valid)

        self._notify()
        return list(valid)

    @property
    def addresses(self) -> list[str]:
        return list(self._addresses)

    def __getitem__(self, need: DataNeed) -> NeedQuery:
        return self.queries[need]

    @property
    def loading(self) -> dict[DataNeed, bool]:
        return {need: query.is_loading for need, query in self.queries.items()}

    @property
    def is_loading(self) -> bool:
        return any(query.is_loading for query in self.queries.values())

    def results(self) -> PortfolioResults:
        """Successful results available right now."""
        return PortfolioResults(
            spot_states=self.queries[DataNeed.SPOT_STATE].data,
            perp_states=self.queries[DataNeed.PERP_STATE].data,
            open_orders=self.queries[DataNeed.OPEN_ORDERS].data,
            native_balances=self.queries[DataNeed.NATIVE_BALANCE].data,
            hyperlend=self.queries[DataNeed.HYPERLEND].data,
            pendle=self.queries[DataNeed.PENDLE].data,
            token_balances={symbol: self.queries[need].data for need, symbol in TOKEN_NEEDS.items()},
        )

    def overview(self) -> PortfolioOverview:
        """Overview computed from whatever has resolved so far."""
        return build_overview(self.results(), self.loading)

    async def updates(self) -> AsyncIterator[PortfolioOverview]:
        """
        Yield a fresh overview whenever requests settle.

        The first overview is yielded immediately. Several requests settling
        between two iterations are coalesced into one overview. The iterator
        stops after the overview in which nothing is loading.

        """
        while True:
            self._changed.clear()
            overview = self.overview()
            yield overview
            if not self.is_loading:
                return
            await self._changed.wait()

    async def settle(self) -> None:
        """Wait until no request is pending. Failures are recorded, not raised."""
        while True:
            pending = [task for query in self.queries.values() for task in query.pending_tasks]
            if not pending:
                return
            await asyncio.wait(pending)

    def cancel(self) -> None:
        """Cancel every in-flight request and forget all addresses."""
        self.set_addresses([])
