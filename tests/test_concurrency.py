"""Concurrent access to both storage backends and the service."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from conftest import NOW, make_record
from pastebin.database import InMemoryStore, PasteDatabase
from pastebin.exceptions import KeyCollision
from pastebin.policy import AccessMode, Permitted
from pastebin.service import PasteService


def _run_concurrently(n, fn):
    barrier = threading.Barrier(n)

    def task(i):
        barrier.wait()
        return fn(i)

    with ThreadPoolExecutor(max_workers=n) as pool:
        return list(pool.map(task, range(n)))


@pytest.mark.parametrize("n", [1, 2, 8, 32])
def test_burn_record_read_exactly_once(store, n):
    store.put(make_record(burn_after_reading=True), NOW)

    results = _run_concurrently(n, lambda _: store.get_normal("abc12345", NOW))

    assert sum(r is not None for r in results) == 1
    assert store.get_normal("abc12345", NOW) is None


def test_concurrent_puts_same_key_single_winner(store):
    def put(i):
        try:
            store.put(make_record(content=f"writer-{i}"), NOW)
            return i
        except KeyCollision:
            return None

    winners = [r for r in _run_concurrently(16, put) if r is not None]

    assert len(winners) == 1
    assert store.get_raw("abc12345", NOW).content == f"writer-{winners[0]}"


def test_many_burn_keys_through_service():
    service = PasteService(PasteDatabase(store=InMemoryStore(shard_count=8)))
    keys = [service.create(f"secret {i}", burn_after_reading=True, now=NOW) for i in range(50)]

    def read_all(_):
        return [isinstance(service.read(k, AccessMode.VIEW, NOW), Permitted) for k in keys]

    per_thread = _run_concurrently(8, read_all)

    for index in range(len(keys)):
        assert sum(row[index] for row in per_thread) == 1


def test_burn_record_read_once_over_repeated_rounds(store):
    for round_number in range(10):
        key = f"burn{round_number:04d}"
        store.put(make_record(key, burn_after_reading=True), NOW)

        results = _run_concurrently(16, lambda _: store.get_normal(key, NOW))

        assert sum(r is not None for r in results) == 1
