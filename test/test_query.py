"""Tests for the query cache and its observers."""

import asyncio

import pytest

from fleet_monitor.query import (
    FetchStatus,
    InfiniteData,
    InfiniteQuery,
    Query,
    QueryClient,
    QueryStatus,
)

KEY = ("vehicles", "list", None)


class FakeClock:
    """Controllable clock for deterministic staleness tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _make_client(stale_time=0.0, retry=0):
    clock = FakeClock()
    client = QueryClient(stale_time=stale_time, retry=retry, retry_delay=0.0)
    client._clock = clock
    return client, clock


class Counter:
    """Async fetch function that counts calls and can be held open."""

    def __init__(self, results=None):
        self.calls = 0
        self.results = list(results or [])
        self.gate = asyncio.Event()
        self.gate.set()

    def hold(self):
        self.gate = asyncio.Event()

    def release(self):
        self.gate.set()

    async def __call__(self):
        self.calls += 1
        await self.gate.wait()
        if self.results:
            result = self.results.pop(0)
            if isinstance(result, Exception):
                raise result
            return result
        return f"data-{self.calls}"


class TestQueryClient:
    @pytest.mark.asyncio
    async def test_fetch_stores_data(self):
        client, clock = _make_client()
        fn = Counter()
        await client.fetch(KEY, fn)
        state = client.get_state(KEY)
        assert state.status == QueryStatus.success
        assert state.fetch_status == FetchStatus.idle
        assert state.data == "data-1"
        assert state.data_updated_at == clock.now

    @pytest.mark.asyncio
    async def test_concurrent_fetches_share_one_call(self):
        client, _ = _make_client()
        fn = Counter()
        fn.hold()
        first = client.fetch(KEY, fn)
        second = client.fetch(KEY, fn)
        assert first is second
        assert client.get_state(KEY).is_fetching
        fn.release()
        await first
        assert fn.calls == 1

    @pytest.mark.asyncio
    async def test_different_keys_fetch_separately(self):
        client, _ = _make_client()
        fn = Counter()
        await asyncio.gather(client.fetch(("a",), fn), client.fetch(("b",), fn))
        assert fn.calls == 2

    @pytest.mark.asyncio
    async def test_fetch_query_returns_data(self):
        client, _ = _make_client()
        assert await client.fetch_query(KEY, Counter()) == "data-1"

    @pytest.mark.asyncio
    async def test_failure_without_retry_records_error(self):
        client, _ = _make_client(retry=0)
        fn = Counter([RuntimeError("upstream down")])
        with pytest.raises(RuntimeError, match="upstream down"):
            await client.fetch_query(KEY, fn)
        state = client.get_state(KEY)
        assert state.is_error
        assert state.data is None
        assert fn.calls == 1

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self):
        client, _ = _make_client(retry=2)
        fn = Counter([RuntimeError("1"), RuntimeError("2"), "ok"])
        assert await client.fetch_query(KEY, fn) == "ok"
        assert fn.calls == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self):
        client, _ = _make_client(retry=2)
        fn = Counter([RuntimeError("1"), RuntimeError("2"), RuntimeError("3"), "late"])
        with pytest.raises(RuntimeError, match="3"):
            await client.fetch_query(KEY, fn)
        assert fn.calls == 3

    @pytest.mark.asyncio
    async def test_error_keeps_previous_data(self):
        client, _ = _make_client()
        fn = Counter(["first", RuntimeError("boom")])
        await client.fetch(KEY, fn)
        await client.fetch(KEY, fn)
        state = client.get_state(KEY)
        assert state.is_error
        assert state.data == "first"

    @pytest.mark.asyncio
    async def test_success_clears_error(self):
        client, _ = _make_client()
        fn = Counter([RuntimeError("boom"), "second"])
        await client.fetch(KEY, fn)
        await client.fetch(KEY, fn)
        state = client.get_state(KEY)
        assert state.is_success
        assert state.error is None

    def test_missing_entry_is_pending_and_stale(self):
        client, _ = _make_client()
        state = client.get_state(KEY)
        assert state.status == QueryStatus.pending
        assert state.is_idle
        assert client.is_stale(KEY)

    def test_stale_time(self):
        client, clock = _make_client(stale_time=10)
        client.set_query_data(KEY, "cached")
        assert not client.is_stale(KEY)
        clock.advance(9)
        assert not client.is_stale(KEY)
        clock.advance(1)
        assert client.is_stale(KEY)

    def test_zero_stale_time_always_stale(self):
        client, _ = _make_client(stale_time=0)
        client.set_query_data(KEY, "cached")
        assert client.is_stale(KEY)

    def test_invalidate_by_prefix(self):
        client, _ = _make_client(stale_time=60)
        client.set_query_data(("vehicles", "list", None), 1)
        client.set_query_data(("vehicles", "getById", "y1", None), 2)
        client.set_query_data(("routes", "list", None), 3)
        assert client.invalidate(("vehicles",)) == 2
        assert client.is_stale(("vehicles", "list", None))
        assert client.is_stale(("vehicles", "getById", "y1", None))
        assert not client.is_stale(("routes", "list", None))
        assert client.get_query_data(("vehicles", "list", None)) == 1

    @pytest.mark.asyncio
    async def test_listeners_notified_on_start_and_finish(self):
        client, _ = _make_client()
        states = []
        unsubscribe = client.subscribe(KEY, states.append)
        await client.fetch(KEY, Counter())
        assert [s.is_fetching for s in states] == [True, False]
        assert states[-1].data == "data-1"
        unsubscribe()
        await client.fetch(KEY, Counter())
        assert len(states) == 2


class TestQuery:
    @pytest.mark.asyncio
    async def test_first_load_then_background_refresh(self):
        client, _ = _make_client()
        fn = Counter()
        fn.hold()
        query = Query(client, KEY, fn)
        query.mount()
        assert query.state.is_loading
        assert not query.state.is_refetching
        fn.release()
        state = await query.wait()
        assert state.is_success
        assert state.data == "data-1"

        fn.hold()
        query.refetch()
        state = query.state
        assert not state.is_loading
        assert state.is_fetching
        assert state.is_refetching
        assert state.data == "data-1"
        fn.release()
        assert (await query.wait()).data == "data-2"
        query.unmount()

    @pytest.mark.asyncio
    async def test_second_observer_gets_cached_data_while_revalidating(self):
        client, _ = _make_client(stale_time=0)
        fn = Counter()
        async with Query(client, KEY, fn) as first:
            await first.wait()
        fn.hold()
        second = Query(client, KEY, fn)
        second.mount()
        assert second.data == "data-1"
        assert second.state.is_refetching
        fn.release()
        assert (await second.wait()).data == "data-2"
        second.unmount()

    @pytest.mark.asyncio
    async def test_fresh_data_not_refetched_on_mount(self):
        client, _ = _make_client(stale_time=60)
        fn = Counter()
        async with Query(client, KEY, fn) as first:
            await first.wait()
        async with Query(client, KEY, fn) as second:
            await second.wait()
            assert second.data == "data-1"
        assert fn.calls == 1

    @pytest.mark.asyncio
    async def test_invalidated_data_refetched_on_mount(self):
        client, _ = _make_client(stale_time=60)
        fn = Counter()
        async with Query(client, KEY, fn) as first:
            await first.wait()
        client.invalidate(("vehicles",))
        async with Query(client, KEY, fn) as second:
            await second.wait()
        assert fn.calls == 2

    @pytest.mark.asyncio
    async def test_disabled_query_never_fetches(self):
        client, _ = _make_client()
        fn = Counter()
        query = Query(client, KEY, fn, enabled=False, refetch_interval=0.01)
        query.mount()
        assert query.refetch() is None
        await asyncio.sleep(0.03)
        state = await query.wait()
        assert fn.calls == 0
        assert state.is_idle
        assert not state.enabled
        query.unmount()

    @pytest.mark.asyncio
    async def test_polls_until_unmounted(self):
        client, _ = _make_client()
        fn = Counter()
        query = Query(client, KEY, fn, refetch_interval=0.01)
        query.mount()
        await asyncio.sleep(0.1)
        query.unmount()
        await query.wait()
        assert fn.calls >= 3
        calls = fn.calls
        await asyncio.sleep(0.05)
        assert fn.calls == calls

    @pytest.mark.asyncio
    async def test_unmount_keeps_in_flight_result(self):
        client, _ = _make_client()
        fn = Counter()
        fn.hold()
        query = Query(client, KEY, fn)
        query.mount()
        query.unmount()
        fn.release()
        await query.wait()
        assert client.get_query_data(KEY) == "data-1"

    @pytest.mark.asyncio
    async def test_subscribe_until_unmount(self):
        client, _ = _make_client()
        states = []
        query = Query(client, KEY, Counter())
        query.subscribe(states.append)
        query.mount()
        await query.wait()
        assert states[-1].is_success
        query.unmount()
        count = len(states)
        await client.fetch(KEY, Counter())
        assert len(states) == count


def _pager(total: int):
    """Page function over ``range(total)``; records the offsets it was called with."""
    offsets = []

    async def fetch_page(offset: int, page_size: int = 2):
        offsets.append(offset)
        return list(range(total))[offset:offset + page_size]

    return fetch_page, offsets


class TestInfiniteQuery:
    @pytest.mark.asyncio
    async def test_pages_accumulate_in_order(self):
        client, _ = _make_client()
        fetch_page, offsets = _pager(5)
        query = InfiniteQuery(client, ("items", "infinite"), fetch_page, page_size=2)
        query.mount()
        await query.wait()
        assert query.items == [0, 1]
        assert query.has_next_page

        await query.fetch_next_page()
        assert query.items == [0, 1, 2, 3]
        assert query.has_next_page

        await query.fetch_next_page()
        assert query.items == [0, 1, 2, 3, 4]
        assert not query.has_next_page
        assert query.fetch_next_page() is None
        assert offsets == [0, 2, 4]
        assert query.data.page_params == (0, 2, 4)

    @pytest.mark.asyncio
    async def test_items_shifting_between_pages_not_deduplicated(self):
        client, _ = _make_client()
        rows = ["a", "b", "c", "d"]

        async def fetch_page(offset):
            page = rows[offset:offset + 2]
            # a new row lands at the front after the first page is read
            rows.insert(0, "new")
            return page

        query = InfiniteQuery(client, ("items", "infinite"), fetch_page, page_size=2)
        query.mount()
        await query.wait()
        await query.fetch_next_page()
        assert query.items == ["a", "b", "b", "c"]

    @pytest.mark.asyncio
    async def test_full_last_page_fetches_one_empty_page(self):
        client, _ = _make_client()
        fetch_page, offsets = _pager(4)
        query = InfiniteQuery(client, ("items", "infinite"), fetch_page, page_size=2)
        query.mount()
        await query.wait()
        await query.fetch_next_page()
        assert query.has_next_page
        await query.fetch_next_page()
        assert query.items == [0, 1, 2, 3]
        assert not query.has_next_page
        assert offsets == [0, 2, 4]

    @pytest.mark.asyncio
    async def test_no_next_page_before_first_load(self):
        client, _ = _make_client()
        fetch_page, offsets = _pager(5)
        query = InfiniteQuery(client, ("items", "infinite"), fetch_page, page_size=2)
        assert not query.has_next_page
        assert query.fetch_next_page() is None
        assert query.data == InfiniteData()
        assert offsets == []

    @pytest.mark.asyncio
    async def test_refetch_reloads_every_loaded_page(self):
        client, _ = _make_client()
        fetch_page, offsets = _pager(5)
        query = InfiniteQuery(client, ("items", "infinite"), fetch_page, page_size=2)
        query.mount()
        await query.wait()
        await query.fetch_next_page()
        offsets.clear()
        await query.refetch()
        assert offsets == [0, 2]
        assert query.items == [0, 1, 2, 3]

    @pytest.mark.asyncio
    async def test_next_page_waits_for_running_refetch(self):
        client, _ = _make_client()
        fetch_page, offsets = _pager(5)
        query = InfiniteQuery(client, ("items", "infinite"), fetch_page, page_size=2)
        query.mount()
        await query.wait()
        offsets.clear()

        refetch = query.refetch()
        task = query.fetch_next_page()
        assert task is not refetch
        assert query.is_fetching_next_page
        await task

        assert offsets == [0, 2]
        assert len(query.pages) == 2
        assert query.items == [0, 1, 2, 3]

    @pytest.mark.asyncio
    async def test_initial_page_param_offsets_every_page(self):
        client, _ = _make_client()
        fetch_page, offsets = _pager(9)
        query = InfiniteQuery(
            client, ("items", "infinite"), fetch_page, page_size=2, initial_page_param=4
        )
        query.mount()
        await query.wait()
        await query.fetch_next_page()
        await query.fetch_next_page()
        assert offsets == [4, 6, 8]
        assert query.items == [4, 5, 6, 7, 8]
        assert not query.has_next_page

    @pytest.mark.asyncio
    async def test_is_fetching_next_page(self):
        client, _ = _make_client()
        gate = asyncio.Event()

        async def fetch_page(offset):
            if offset:
                await gate.wait()
            return [offset, offset + 1]

        query = InfiniteQuery(client, ("items", "infinite"), fetch_page, page_size=2)
        query.mount()
        await query.wait()
        task = query.fetch_next_page()
        assert query.is_fetching_next_page
        assert query.state.is_refetching
        gate.set()
        await task
        assert not query.is_fetching_next_page
        assert query.items == [0, 1, 2, 3]

    @pytest.mark.asyncio
    async def test_pages_with_data_attribute(self):
        class Page:
            def __init__(self, data):
                self.data = data

        client, _ = _make_client()

        async def fetch_page(offset):
            return Page(["a", "b"] if offset == 0 else ["c"])

        query = InfiniteQuery(client, ("items", "infinite"), fetch_page, page_size=2)
        query.mount()
        await query.wait()
        await query.fetch_next_page()
        assert query.items == ["a", "b", "c"]
        assert not query.has_next_page

    @pytest.mark.asyncio
    async def test_disabled_infinite_query(self):
        client, _ = _make_client()
        fetch_page, offsets = _pager(5)
        query = InfiniteQuery(
            client, ("items", "infinite"), fetch_page, page_size=2, enabled=False
        )
        query.mount()
        await query.wait()
        assert offsets == []
        assert query.items == []
