"""
Batch Upsert Coordinator - write prepared records in bounded batches.

A failed batch is recorded in the outcome and skipped; later batches still run.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence

from app.core.exceptions import StorageError
from app.services.normalizer import PropertyRecord
from app.services.reconciliation import chunked

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50


class BatchWriteStore(Protocol):
    def upsert_batch(self, records: Sequence[PropertyRecord]) -> int: ...


@dataclass
class IngestionOutcome:
    """Result of one ingestion run."""
    total_rows: int = 0
    updated: int = 0
    inserted: int = 0
    skipped: int = 0
    failed_batches: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def partial_failure(self) -> bool:
        return bool(self.errors)

    def to_stats(self) -> dict:
        return {
            "totalProcessed": self.total_rows,
            "updated": self.updated,
            "inserted": self.inserted,
            "skipped": self.skipped,
        }


def upsert_in_batches(
    store: BatchWriteStore,
    records: Sequence[PropertyRecord],
    batch_size: int = DEFAULT_BATCH_SIZE,
    outcome: Optional[IngestionOutcome] = None
) -> IngestionOutcome:
    """
    Upsert records in contiguous batches and tally the results.

    Updated vs inserted is decided per record by whether it carried an id
    when the batch was built, not by what storage ended up doing.

    Args:
        store: Anything exposing upsert_batch
        records: Prepared records, in file order
        batch_size: Records per batch
        outcome: Outcome to accumulate into (a new one if omitted)

    Returns:
        The accumulated IngestionOutcome
    """
    if outcome is None:
        outcome = IngestionOutcome(total_rows=len(records))

    for index, batch in enumerate(chunked(records, batch_size)):
        try:
            store.upsert_batch(batch)
        except StorageError as e:
            outcome.errors.append(str(e))
            outcome.failed_batches += 1
            logger.warning(f"Batch {index} ({len(batch)} records) failed: {e}")
            continue

        updates = sum(1 for r in batch if r.id is not None)
        outcome.updated += updates
        outcome.inserted += len(batch) - updates
        logger.info(f"Batch {index}: {updates} updated, {len(batch) - updates} inserted")

    return outcome
