"""
CSV ingestion pipeline.

Flow for one uploaded file:
1. Read the CSV as a table of strings (structural errors stop here)
2. Normalize every row into a (key, PropertyRecord) pair
3. Resolve ids of addresses already in storage, in chunks
4. Attach resolved ids and upsert in batches
5. Return an IngestionOutcome; batch failures are reported, not raised
"""

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Tuple, Union

import pandas as pd

from app.core.exceptions import UploadValidationError
from app.services.batch_upsert import (
    DEFAULT_BATCH_SIZE,
    IngestionOutcome,
    upsert_in_batches,
)
from app.services.normalizer import (
    ADDRESS_COLUMN,
    EXPECTED_COLUMNS,
    PropertyRecord,
    normalize_row,
)
from app.services.reconciliation import DEFAULT_CHUNK_SIZE, resolve_existing_ids

logger = logging.getLogger(__name__)

CSV_CONTENT_MARKER = "csv"
CSV_EXTENSION = ".csv"


class PropertyStore(Protocol):
    def select_by_keys(self, keys: Sequence[str]) -> List[Tuple[int, str]]: ...

    def upsert_batch(self, records: Sequence[PropertyRecord]) -> int: ...


def is_csv_upload(filename: Optional[str], content_type: Optional[str]) -> bool:
    """Accept if either the content type mentions csv or the name ends in .csv."""
    if content_type and CSV_CONTENT_MARKER in content_type.lower():
        return True
    return bool(filename) and filename.lower().endswith(CSV_EXTENSION)


def read_csv_rows(path: Union[str, Path]) -> List[dict]:
    """
    Read a CSV file into a list of row dicts with string cells.

    Raises:
        UploadValidationError: If the file can't be parsed, has no data rows,
            or lacks the address column
    """
    try:
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError:
        raise UploadValidationError("Empty CSV", ["File contains no header or data rows"])
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise UploadValidationError("CSV parsing failed", [f"CSV parsing error: {e}"])

    if df.empty:
        raise UploadValidationError("Empty CSV", ["File contains a header but no data rows"])

    columns = [str(c) for c in df.columns]
    if ADDRESS_COLUMN not in columns:
        raise UploadValidationError(
            "Missing required column",
            [f"Column '{ADDRESS_COLUMN}' is required; found: {', '.join(columns)}"]
        )

    missing = [c for c in EXPECTED_COLUMNS if c not in columns]
    if missing:
        logger.warning(f"Missing columns in upload (stored as empty): {missing}")

    return df.to_dict(orient="records")


def ingest_rows(
    store: PropertyStore,
    rows: Sequence[dict],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    batch_size: int = DEFAULT_BATCH_SIZE,
    now: Optional[datetime] = None
) -> IngestionOutcome:
    """
    Reconcile and upsert already-parsed rows.

    Raises:
        ReconciliationError: If looking up existing addresses fails (no batches run)
    """
    now = now or datetime.now(timezone.utc)
    outcome = IngestionOutcome(total_rows=len(rows))

    normalized = []
    for row in rows:
        key, record = normalize_row(row, updated_at=now)
        if not key:
            outcome.skipped += 1
            continue
        normalized.append((key, record))

    if outcome.skipped:
        logger.warning(f"Skipped {outcome.skipped} rows without {ADDRESS_COLUMN}")

    existing_ids = resolve_existing_ids(
        store, (key for key, _ in normalized), chunk_size=chunk_size
    )

    records = []
    for key, record in normalized:
        record.id = existing_ids.get(key)
        records.append(record)

    upsert_in_batches(store, records, batch_size=batch_size, outcome=outcome)

    logger.info(
        f"Ingestion complete: {outcome.total_rows} rows, {outcome.updated} updated, "
        f"{outcome.inserted} inserted, {outcome.skipped} skipped, "
        f"{outcome.failed_batches} failed batches"
    )
    return outcome


def ingest_csv(
    store: PropertyStore,
    path: Union[str, Path],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    batch_size: int = DEFAULT_BATCH_SIZE,
    now: Optional[datetime] = None
) -> IngestionOutcome:
    """
    Run the full pipeline on a CSV file. The file is left in place.

    Raises:
        UploadValidationError: Structural problem with the file (storage untouched)
        ReconciliationError: Existing-record lookup failed
    """
    rows = read_csv_rows(path)
    logger.info(f"Read {len(rows)} rows from {Path(path).name}")
    return ingest_rows(store, rows, chunk_size=chunk_size, batch_size=batch_size, now=now)


def ingest_upload(
    store: PropertyStore,
    upload_path: Union[str, Path],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    batch_size: int = DEFAULT_BATCH_SIZE,
    now: Optional[datetime] = None
) -> IngestionOutcome:
    """Run ingest_csv on an uploaded temp file and delete it on every exit path."""
    try:
        return ingest_csv(store, upload_path, chunk_size=chunk_size, batch_size=batch_size, now=now)
    finally:
        try:
            os.unlink(upload_path)
        except FileNotFoundError:
            pass
