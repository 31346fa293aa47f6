"""
SQLAlchemy-backed storage for property records.

Exposes the two capabilities ingestion relies on:
- select_by_keys: find existing records by normalized address
- upsert_batch: write a batch in one transaction, keyed on the unique
  normalized address (`address_key`)
"""

import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import AddressConflictError, StorageError
from app.models.property import Property
from app.services.normalizer import PropertyRecord, normalize_address

logger = logging.getLogger(__name__)

# Dialects with INSERT ... ON CONFLICT support
_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class SqlPropertyStore:
    """Property storage on a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def select_by_keys(self, keys: Sequence[str]) -> List[Tuple[int, str]]:
        """
        Return (id, property_address) for records whose normalized address is in keys.

        Raises:
            StorageError: If the query fails
        """
        if not keys:
            return []
        try:
            rows = (
                self.db.query(Property.id, Property.property_address)
                .filter(Property.address_key.in_(list(keys)))
                .order_by(Property.id)
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to query existing properties: {e}") from e
        return [(row.id, row.property_address) for row in rows]

    def upsert_batch(self, records: Sequence[PropertyRecord]) -> int:
        """
        Write one batch in a single transaction.

        Records with an id are updated by id. Records without one are inserted
        with ON CONFLICT (address_key) DO UPDATE, so an address that already
        exists in any case or spacing is updated instead of duplicated.

        Returns:
            Number of records written

        Raises:
            StorageError: If any statement fails; the whole batch is rolled back
        """
        insert = self._insert_for_dialect()
        try:
            for record in records:
                values = record.to_values()
                if record.id is not None:
                    matched = (
                        self.db.query(Property)
                        .filter(Property.id == record.id)
                        .update(values, synchronize_session=False)
                    )
                    if matched:
                        continue
                    # Row vanished since reconciliation; fall back to the address key
                    logger.debug(f"Property {record.id} not found, upserting by address")
                stmt = insert(Property).values(**values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[Property.address_key],
                    set_={k: v for k, v in values.items() if k != "address_key"},
                )
                self.db.execute(stmt)
            self.db.commit()
        except Exception as e:
            # Driver errors (e.g. OverflowError) are not always SQLAlchemyError
            self.db.rollback()
            raise StorageError(str(e)) from e
        return len(records)

    def list_all(self) -> List[Property]:
        """All properties in ascending id order."""
        return self.db.query(Property).order_by(Property.id.asc()).all()

    def get(self, property_id: int) -> Optional[Property]:
        return self.db.query(Property).filter(Property.id == property_id).first()

    def update_fields(self, prop: Property, changes: dict) -> Property:
        """
        Persist a direct field edit on one property.

        Raises:
            AddressConflictError: If the new address, ignoring case and spacing,
                belongs to another property
            StorageError: If the write fails
        """
        if "property_address" in changes:
            changes = {**changes, "address_key": normalize_address(changes["property_address"])}
        for key, value in changes.items():
            setattr(prop, key, value)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise AddressConflictError(str(e)) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(str(e)) from e
        self.db.refresh(prop)
        return prop

    def _insert_for_dialect(self):
        dialect = self.db.get_bind().dialect.name
        try:
            return _INSERT_BY_DIALECT[dialect]
        except KeyError:
            raise StorageError(f"Upsert is not supported on dialect '{dialect}'")

