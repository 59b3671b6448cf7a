"""
In-memory query cache with stale-while-revalidate observers.

Entries are keyed by hashable tuples (kind, operation, params...). A key
holds the last successful result plus freshness metadata and at most one
in-flight fetch. Observers (Query, InfiniteQuery) serve whatever the cache
holds immediately and refresh it in the background.

Nothing here is thread-safe: all state lives on one asyncio event loop.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Hashable, Optional

logger = logging.getLogger(__name__)

MAX_RETRY_DELAY = 30.0

Fetcher = Callable[[], Awaitable[Any]]
Listener = Callable[["QueryState"], None]


class QueryStatus(str, Enum):
    pending = "pending"
    success = "success"
    error = "error"


class FetchStatus(str, Enum):
    fetching = "fetching"
    idle = "idle"


@dataclass
class QueryEntry:
    """Cached result for one key."""

    data: Any = None
    has_data: bool = False
    error: Optional[BaseException] = None
    data_updated_at: Optional[float] = None
    error_updated_at: Optional[float] = None
    invalidated: bool = False
    task: Optional[asyncio.Task] = None
    listeners: list[Listener] = field(default_factory=list)

    @property
    def is_fetching(self) -> bool:
        return self.task is not None and not self.task.done()

    @property
    def status(self) -> QueryStatus:
        if self.error is not None:
            return QueryStatus.error
        if self.has_data:
            return QueryStatus.success
        return QueryStatus.pending


@dataclass(frozen=True)
class QueryState:
    """Snapshot handed to presentation code."""

    status: QueryStatus
    fetch_status: FetchStatus
    data: Any = None
    error: Optional[BaseException] = None
    data_updated_at: Optional[float] = None
    enabled: bool = True

    @property
    def is_fetching(self) -> bool:
        return self.fetch_status == FetchStatus.fetching

    @property
    def is_loading(self) -> bool:
        """First load: nothing cached yet and a fetch is running."""
        return self.status == QueryStatus.pending and self.is_fetching

    @property
    def is_refetching(self) -> bool:
        """Background refresh of data that is already on screen."""
        return self.is_fetching and self.status != QueryStatus.pending

    @property
    def is_success(self) -> bool:
        return self.status == QueryStatus.success

    @property
    def is_error(self) -> bool:
        return self.status == QueryStatus.error

    @property
    def is_idle(self) -> bool:
        """Disabled, or never fetched: no data and nothing in flight."""
        return self.status == QueryStatus.pending and not self.is_fetching


class QueryClient:
    """
    Key -> entry map shared by all observers.

    - fetch(): start (or join) the fetch for a key; failed fetches are retried
      with exponential backoff and then recorded as the entry's error.
    - fetch_query(): await a fetch and return its data, raising on failure.
    - is_stale(): whether observers should refetch on mount.
    - invalidate(): mark entries stale. Entries are never evicted.
    """

    def __init__(
        self,
        stale_time: float = 0.0,
        retry: int = 3,
        retry_delay: float = 1.0,
    ) -> None:
        self._stale_time = stale_time
        self._retry = retry
        self._retry_delay = retry_delay
        self._entries: dict[Hashable, QueryEntry] = {}
        self._clock = time.monotonic  # overridable for testing

    def _entry(self, key: Hashable) -> QueryEntry:
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = QueryEntry()
        return entry

    def get_entry(self, key: Hashable) -> Optional[QueryEntry]:
        return self._entries.get(key)

    def get_state(self, key: Hashable, enabled: bool = True) -> QueryState:
        entry = self._entries.get(key) or QueryEntry()
        return QueryState(
            status=entry.status,
            fetch_status=FetchStatus.fetching if entry.is_fetching else FetchStatus.idle,
            data=entry.data,
            error=entry.error,
            data_updated_at=entry.data_updated_at,
            enabled=enabled,
        )

    def get_query_data(self, key: Hashable) -> Any:
        entry = self._entries.get(key)
        return entry.data if entry is not None else None

    def set_query_data(self, key: Hashable, data: Any) -> None:
        entry = self._entry(key)
        entry.data = data
        entry.has_data = True
        entry.error = None
        entry.invalidated = False
        entry.data_updated_at = self._clock()
        self._notify(key)

    def is_stale(self, key: Hashable) -> bool:
        entry = self._entries.get(key)
        if entry is None or not entry.has_data or entry.invalidated:
            return True
        if self._stale_time <= 0:
            return True
        return self._clock() - entry.data_updated_at >= self._stale_time

    def invalidate(self, prefix: tuple = ()) -> int:
        """Mark every entry whose key starts with ``prefix`` as stale."""
        count = 0
        for key, entry in self._entries.items():
            if isinstance(key, tuple) and key[: len(prefix)] == prefix:
                entry.invalidated = True
                count += 1
        return count

    def subscribe(self, key: Hashable, listener: Listener) -> Callable[[], None]:
        entry = self._entry(key)
        entry.listeners.append(listener)

        def unsubscribe() -> None:
            if listener in entry.listeners:
                entry.listeners.remove(listener)

        return unsubscribe

    def fetch(self, key: Hashable, fn: Fetcher) -> asyncio.Task:
        """
        Start a fetch for ``key`` on the running loop.

        A fetch already in flight for the same key is returned instead of
        starting a second one.
        """
        entry = self._entry(key)
        if entry.is_fetching:
            return entry.task
        entry.task = asyncio.get_running_loop().create_task(self._run(key, entry, fn))
        self._notify(key)
        return entry.task

    async def fetch_query(self, key: Hashable, fn: Fetcher) -> Any:
        task = self.fetch(key, fn)
        await task
        entry = self._entries[key]
        if entry.error is not None:
            raise entry.error
        return entry.data

    async def _run(self, key: Hashable, entry: QueryEntry, fn: Fetcher) -> None:
        attempt = 0
        try:
            while True:
                logger.debug("Fetching %r", key)
                try:
                    data = await fn()
                except Exception as exc:
                    if attempt < self._retry:
                        delay = min(self._retry_delay * 2**attempt, MAX_RETRY_DELAY)
                        attempt += 1
                        logger.warning(
                            "Query %r failed (attempt %d), retrying in %.1fs: %s",
                            key, attempt, delay, exc,
                        )
                        await asyncio.sleep(delay)
                        continue
                    logger.warning("Query %r failed: %s", key, exc)
                    entry.error = exc
                    entry.error_updated_at = self._clock()
                    return
                entry.data = data
                entry.has_data = True
                entry.error = None
                entry.invalidated = False
                entry.data_updated_at = self._clock()
                return
        finally:
            entry.task = None
            self._notify(key)

    def _notify(self, key: Hashable) -> None:
        entry = self._entries.get(key)
        if entry is None or not entry.listeners:
            return
        state = self.get_state(key)
        for listener in list(entry.listeners):
            listener(state)


class Query:
    """
    Observer for one cache key.

    mount() serves the cached entry at once and refetches in the background
    when it is missing or stale, then polls every ``refetch_interval`` seconds
    until unmount(). Unmounting never cancels a fetch already in flight; its
    result still lands in the cache for the next observer of the same key.
    A disabled query never touches the network.
    """

    def __init__(
        self,
        client: QueryClient,
        key: Hashable,
        fn: Fetcher,
        enabled: bool = True,
        refetch_interval: Optional[float] = None,
    ) -> None:
        self.client = client
        self.key = key
        self._fn = fn
        self.enabled = enabled
        self.refetch_interval = refetch_interval
        self._poller: Optional[asyncio.Task] = None
        self._unsubscribers: list[Callable[[], None]] = []

    @property
    def state(self) -> QueryState:
        return self.client.get_state(self.key, self.enabled)

    @property
    def data(self) -> Any:
        return self.state.data

    def mount(self) -> None:
        if not self.enabled:
            return
        if self.client.is_stale(self.key):
            self.client.fetch(self.key, self._fn)
        if self.refetch_interval and self._poller is None:
            self._poller = asyncio.get_running_loop().create_task(self._poll())

    def unmount(self) -> None:
        if self._poller is not None:
            self._poller.cancel()
            self._poller = None
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self.refetch_interval)
            self.client.fetch(self.key, self._fn)

    def refetch(self) -> Optional[asyncio.Task]:
        if not self.enabled:
            return None
        return self.client.fetch(self.key, self._fn)

    async def wait(self) -> QueryState:
        """Wait for the in-flight fetch, if any, and return the new state."""
        entry = self.client.get_entry(self.key)
        if entry is not None and entry.is_fetching:
            await entry.task
        return self.state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        unsubscribe = self.client.subscribe(self.key, listener)
        self._unsubscribers.append(unsubscribe)
        return unsubscribe

    async def __aenter__(self) -> "Query":
        self.mount()
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.unmount()


@dataclass(frozen=True)
class InfiniteData:
    """Pages of an infinite query in fetch order, with the params that fetched them."""

    pages: tuple = ()
    page_params: tuple = ()


def _page_items(page: Any) -> list:
    return list(getattr(page, "data", page) or [])


class InfiniteQuery(Query):
    """
    Observer accumulating offset pages under one key.

    Page params are offsets: page N is fetched with
    ``initial_page_param + N * page_size``. A next page exists only while the
    last fetched page came back full; a short page means the end of the data.
    ``items`` concatenates all pages in fetch order without de-duplication.
    """

    def __init__(
        self,
        client: QueryClient,
        key: Hashable,
        fn: Callable[[int], Awaitable[Any]],
        page_size: int,
        enabled: bool = True,
        initial_page_param: int = 0,
    ) -> None:
        super().__init__(client, key, self._refetch_pages, enabled=enabled)
        self._page_fn = fn
        self.page_size = page_size
        self.initial_page_param = initial_page_param
        self._next_task: Optional[asyncio.Task] = None

    @property
    def data(self) -> InfiniteData:
        return self.client.get_query_data(self.key) or InfiniteData()

    @property
    def pages(self) -> tuple:
        return self.data.pages

    @property
    def items(self) -> list:
        return [item for page in self.pages for item in _page_items(page)]

    def get_next_page_param(self, data: InfiniteData) -> Optional[int]:
        if not data.pages:
            return self.initial_page_param
        if len(_page_items(data.pages[-1])) < self.page_size:
            return None
        return self.initial_page_param + len(data.pages) * self.page_size

    @property
    def has_next_page(self) -> bool:
        return bool(self.pages) and self.get_next_page_param(self.data) is not None

    @property
    def is_fetching_next_page(self) -> bool:
        return self._next_task is not None and not self._next_task.done()

    def fetch_next_page(self) -> Optional[asyncio.Task]:
        if not self.enabled or not self.has_next_page:
            return None
        entry = self.client.get_entry(self.key)
        if entry is not None and entry.is_fetching:
            # a refetch owns the key; queue the next page behind it
            self._next_task = asyncio.get_running_loop().create_task(self._fetch_next_after())
        else:
            self._next_task = self.client.fetch(self.key, self._fetch_next)
        return self._next_task

    async def _fetch_next_after(self) -> None:
        entry = self.client.get_entry(self.key)
        while entry is not None and entry.is_fetching:
            await entry.task
            entry = self.client.get_entry(self.key)
        if self.has_next_page:
            await self.client.fetch(self.key, self._fetch_next)

    async def _fetch_next(self) -> InfiniteData:
        data = self.data
        param = self.get_next_page_param(data)
        if param is None:
            return data
        page = await self._page_fn(param)
        return InfiniteData(data.pages + (page,), data.page_params + (param,))

    async def _refetch_pages(self) -> InfiniteData:
        """Fetch the first page, or re-fetch every loaded page in order."""
        count = max(1, len(self.pages))
        data = InfiniteData()
        for _ in range(count):
            param = self.get_next_page_param(data)
            if param is None:
                break
            page = await self._page_fn(param)
            data = InfiniteData(data.pages + (page,), data.page_params + (param,))
        return data
