import asyncio

import pytest

from src.core.errors import RemoteStatusError, TransportError
from src.features.listing.store import RecordStore, RecordStoreRegistry
from src.features.records.models import CacheState
from src.features.records.registry import STUDENT, SUBJECT


class FakeListClient:
    def __init__(self, items=None, error=None, on_request=None):
        self.items = items or []
        self.error = error
        self.on_request = on_request
        self.requests = 0

    async def get_json(self, path, params=None):
        self.requests += 1
        if self.on_request:
            self.on_request()
        if self.error is not None:
            raise self.error
        return {"content": self.items, "last": True}


def test_store_starts_not_fetched_and_loads_once():
    client = FakeListClient(items=[{"admissionNumber": "A-1"}])
    store = RecordStore(client, STUDENT)
    assert store.state is CacheState.NOT_FETCHED

    asyncio.run(store.ensure_loaded())
    asyncio.run(store.ensure_loaded())

    assert store.state is CacheState.LOADED
    assert store.collection == [{"admissionNumber": "A-1"}]
    assert client.requests == 1


def test_empty_collection_is_a_state_of_its_own():
    store = RecordStore(FakeListClient(items=[]), SUBJECT)

    asyncio.run(store.refresh())

    assert store.state is CacheState.EMPTY
    assert store.collection == []


def test_total_failure_marks_failed_and_retries_on_next_load():
    client = FakeListClient(error=TransportError("Failed to fetch"))
    store = RecordStore(client, STUDENT)

    asyncio.run(store.ensure_loaded())
    assert store.state is CacheState.FAILED
    assert isinstance(store.last_error, TransportError)
    # página 0 + reintento sin paginación
    assert client.requests == 2

    client.error = None
    client.items = [{"admissionNumber": "A-9"}]
    asyncio.run(store.ensure_loaded())
    assert store.state is CacheState.LOADED
    assert store.last_error is None


def test_result_is_discarded_when_closed_during_fetch():
    store = None

    def close_store():
        store.close()

    client = FakeListClient(items=[{"admissionNumber": "A-1"}], on_request=close_store)
    store = RecordStore(client, STUDENT)

    asyncio.run(store.refresh())

    assert store.alive is False
    assert store.collection == []


def test_state_is_fetching_while_request_is_in_flight():
    observed = []
    store = None

    client = FakeListClient(items=[{"x": 1}], on_request=lambda: observed.append(store.state))
    store = RecordStore(client, STUDENT)

    asyncio.run(store.refresh())

    assert observed == [CacheState.FETCHING]


def test_registry_reuses_store_per_kind_and_closes_all():
    registry = RecordStoreRegistry(FakeListClient(error=RemoteStatusError(500, "x")))

    first = registry.get("student")
    assert registry.get("student") is first
    assert registry.get("subject") is not first

    registry.close()
    assert first.alive is False


class SlowListClient:
    def __init__(self, items):
        self.items = items
        self.requests = 0

    async def get_json(self, path, params=None):
        self.requests += 1
        await asyncio.sleep(0.05)
        return {"content": self.items, "last": True}


def test_concurrent_loads_share_one_fetch():
    client = SlowListClient([{"admissionNumber": "A-1"}])
    store = RecordStore(client, STUDENT)

    async def scenario():
        return await asyncio.gather(store.ensure_loaded(), store.ensure_loaded(), store.refresh())

    first, second, third = asyncio.run(scenario())

    assert first == second == third == [{"admissionNumber": "A-1"}]
    assert client.requests == 1
    assert store.state is CacheState.LOADED


def test_unexpected_error_marks_failed_and_allows_retry():
    client = FakeListClient(items=[{"admissionNumber": "A-1"}], error=RuntimeError("boom"))
    store = RecordStore(client, STUDENT)

    with pytest.raises(RuntimeError):
        asyncio.run(store.ensure_loaded())

    assert store.state is CacheState.FAILED
    assert isinstance(store.last_error, RuntimeError)
    assert store.loading is False

    client.error = None
    assert asyncio.run(store.ensure_loaded()) == [{"admissionNumber": "A-1"}]
    assert store.state is CacheState.LOADED
