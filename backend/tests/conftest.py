"""
Pytest configuration and fixtures for the property importer test suite.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base
from app.core.exceptions import StorageError
from app.models.property import Property
from app.services.normalizer import PropertyRecord, normalize_address
from app.services.property_store import SqlPropertyStore

HEADER = (
    "PROPERTYADDRESS,CITY,STATE,ZIP,COUNTY,YEARBUILT,LATITUDE,LONGITUDE,"
    "OCCUPANCYRATE,PARKINGSPACES,HASEVCHARGING,REDEVELOPMENTOPPORTUNITIES"
)

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    """In-memory SQLite engine shared across connections."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db: Session) -> SqlPropertyStore:
    return SqlPropertyStore(db)


@pytest.fixture
def add_property(db: Session) -> Callable[..., Property]:
    """Insert a property directly and return it."""

    def _add(address: str, **fields: Any) -> Property:
        prop = Property(property_address=address, address_key=normalize_address(address), **fields)
        db.add(prop)
        db.commit()
        db.refresh(prop)
        return prop

    return _add


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[..., Path]:
    """Write CSV lines (header included by default) to a temp file."""

    def _write(*lines: str, header: str | None = HEADER, name: str = "upload.csv") -> Path:
        path = tmp_path / name
        content = [header] if header is not None else []
        content.extend(lines)
        path.write_text("\n".join(content) + "\n", encoding="utf-8")
        return path

    return _write


def csv_line(address: str, city: str = "Austin", year_built: str = "1999", **overrides: str) -> str:
    """One data line in HEADER column order."""
    values = {
        "PROPERTYADDRESS": address,
        "CITY": city,
        "STATE": "TX",
        "ZIP": "78701",
        "COUNTY": "Travis",
        "YEARBUILT": year_built,
        "LATITUDE": "30.27",
        "LONGITUDE": "-97.74",
        "OCCUPANCYRATE": "92.5",
        "PARKINGSPACES": "40",
        "HASEVCHARGING": "true",
        "REDEVELOPMENTOPPORTUNITIES": "",
    }
    values.update(overrides)
    return ",".join(values[column] for column in HEADER.split(","))


class FakeStore:
    """Records calls; fails selected chunks or batches on demand."""

    def __init__(
        self,
        existing: dict[str, int] | None = None,
        fail_select_on: set[int] | None = None,
        fail_upsert_on: set[int] | None = None,
    ) -> None:
        self.existing = existing or {}
        self.fail_select_on = fail_select_on or set()
        self.fail_upsert_on = fail_upsert_on or set()
        self.select_calls: list[list[str]] = []
        self.upsert_calls: list[list[PropertyRecord]] = []

    def select_by_keys(self, keys):
        index = len(self.select_calls)
        self.select_calls.append(list(keys))
        if index in self.fail_select_on:
            raise StorageError(f"select failed on chunk {index}")
        return [(pid, address) for address, pid in self.existing.items() if address.strip().lower() in keys]

    def upsert_batch(self, records):
        index = len(self.upsert_calls)
        self.upsert_calls.append(list(records))
        if index in self.fail_upsert_on:
            raise StorageError(f"batch {index} rejected")
        return len(records)


class FailingBatchStore(SqlPropertyStore):
    """Real SQLite store whose n-th upsert_batch call fails."""

    def __init__(self, db: Session, fail_on: set[int]) -> None:
        super().__init__(db)
        self.fail_on = fail_on
        self.calls = 0

    def upsert_batch(self, records):
        index = self.calls
        self.calls += 1
        if index in self.fail_on:
            raise StorageError(f"batch {index} rejected")
        return super().upsert_batch(records)
