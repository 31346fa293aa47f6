#!/usr/bin/env python3
"""
Script to import a property CSV into the database.

Runs the same reconcile-and-upsert pipeline as the upload endpoint, on a
local file that is left in place.

Usage:
    python scripts/import_properties.py data/properties.csv
    python scripts/import_properties.py data/properties.csv --batch-size 100
"""

import sys
import argparse
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.config import settings
from app.core.database import get_session_local, init_db
from app.core.exceptions import ImporterError, UploadValidationError
from app.services.ingestion import ingest_csv
from app.services.property_store import SqlPropertyStore


def main(argv=None):
    parser = argparse.ArgumentParser(description="Import property records from a CSV file")
    parser.add_argument("csv_path", type=str, help="Path to the CSV file")
    parser.add_argument("--chunk-size", type=int, default=settings.RECONCILE_CHUNK_SIZE,
                        help="Addresses per existing-record query")
    parser.add_argument("--batch-size", type=int, default=settings.UPSERT_BATCH_SIZE,
                        help="Records per upsert batch")

    args = parser.parse_args(argv)

    csv_path = Path(args.csv_path)
    if not csv_path.exists():
        print(f"Error: CSV file not found: {csv_path}")
        return 1

    init_db()
    db = get_session_local()()

    try:
        outcome = ingest_csv(
            SqlPropertyStore(db),
            csv_path,
            chunk_size=args.chunk_size,
            batch_size=args.batch_size,
        )
    except UploadValidationError as e:
        print(f"Error: {e.message}")
        for detail in e.details:
            print(f"  - {detail}")
        return 1
    except ImporterError as e:
        print(f"Error: {e}")
        return 1
    finally:
        db.close()

    print("\n=== Import Summary ===")
    print(f"  Rows read:  {outcome.total_rows}")
    print(f"  Updated:    {outcome.updated}")
    print(f"  Inserted:   {outcome.inserted}")
    print(f"  Skipped:    {outcome.skipped}")

    if outcome.partial_failure:
        print(f"  Failed batches: {outcome.failed_batches}")
        for error in outcome.errors:
            print(f"    - {error}")
        return 2

    return 0


if __name__ == "__main__":
    sys.exit(main())
