from __future__ import annotations

import pytest

from app.core.exceptions import ReconciliationError
from app.services.reconciliation import chunked, resolve_existing_ids, unique_keys

from conftest import FakeStore


def test_keys_are_queried_in_bounded_chunks() -> None:
    keys = [f"{n} main st" for n in range(250)]
    store = FakeStore()

    resolve_existing_ids(store, keys, chunk_size=100)

    assert [len(chunk) for chunk in store.select_calls] == [100, 100, 50]


def test_duplicate_keys_are_queried_once() -> None:
    store = FakeStore()

    resolve_existing_ids(store, ["a st", "b st", "a st", "a st"], chunk_size=100)

    assert store.select_calls == [["a st", "b st"]]


def test_only_found_keys_are_mapped() -> None:
    store = FakeStore(existing={"123 Main St": 7, "9 Elm St": 3})

    result = resolve_existing_ids(store, ["123 main st", "77 nowhere rd"], chunk_size=1)

    assert result == {"123 main st": 7}


def test_results_merge_across_chunks() -> None:
    store = FakeStore(existing={"A St": 1, "B St": 2, "C St": 3})

    result = resolve_existing_ids(store, ["a st", "b st", "c st"], chunk_size=2)

    assert result == {"a st": 1, "b st": 2, "c st": 3}
    assert len(store.select_calls) == 2


def test_chunk_failure_aborts_without_partial_map() -> None:
    store = FakeStore(existing={"A St": 1}, fail_select_on={1})

    with pytest.raises(ReconciliationError) as excinfo:
        resolve_existing_ids(store, ["a st", "b st", "c st"], chunk_size=1)

    assert excinfo.value.chunk_index == 1
    # Stops at the failing chunk
    assert len(store.select_calls) == 2


def test_store_matches_case_insensitively(store, add_property) -> None:
    existing = add_property("123 Main St")

    result = resolve_existing_ids(store, ["123 main st", "5 other rd"])

    assert result == {"123 main st": existing.id}


def test_unique_keys_keeps_first_seen_order() -> None:
    assert unique_keys(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]


def test_chunked_rejects_non_positive_size() -> None:
    with pytest.raises(ValueError):
        list(chunked([1, 2, 3], 0))
