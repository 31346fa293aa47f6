"""
Reconciliation Resolver - map normalized addresses to existing property ids.

Storage may reject unbounded IN (...) lists, so keys are queried in chunks
and the results merged. Any chunk failure aborts the whole resolution.
"""

import logging
from typing import Dict, Iterable, List, Protocol, Sequence, Tuple

from app.core.exceptions import ReconciliationError, StorageError
from app.services.normalizer import normalize_address

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 100


class KeyLookupStore(Protocol):
    def select_by_keys(self, keys: Sequence[str]) -> List[Tuple[int, str]]: ...


def chunked(items: Sequence, size: int) -> Iterable[Sequence]:
    """Yield contiguous slices of at most `size` items, preserving order."""
    if size < 1:
        raise ValueError(f"chunk size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield items[start:start + size]


def unique_keys(keys: Iterable[str]) -> List[str]:
    """Deduplicate keys, keeping first-seen order."""
    return list(dict.fromkeys(keys))


def resolve_existing_ids(
    store: KeyLookupStore,
    keys: Iterable[str],
    chunk_size: int = DEFAULT_CHUNK_SIZE
) -> Dict[str, int]:
    """
    Find which normalized addresses already exist in storage.

    Args:
        store: Anything exposing select_by_keys
        keys: Normalized address keys (duplicates allowed)
        chunk_size: Keys per storage query

    Returns:
        Dict of key -> existing id, only for keys found in storage

    Raises:
        ReconciliationError: If any chunk query fails
    """
    wanted = unique_keys(keys)
    existing: Dict[str, int] = {}

    for index, chunk in enumerate(chunked(wanted, chunk_size)):
        try:
            rows = store.select_by_keys(chunk)
        except StorageError as e:
            logger.error(f"Reconciliation chunk {index} failed: {e}")
            raise ReconciliationError(str(e), chunk_index=index) from e

        requested = set(chunk)
        for property_id, address in rows:
            key = normalize_address(address)
            if key in requested:
                # Rows arrive ordered by id; the last one wins for duplicates
                existing[key] = property_id

    logger.info(f"Resolved {len(existing)} existing of {len(wanted)} unique addresses")
    return existing
