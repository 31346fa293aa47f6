"""
Property API endpoints.

Includes:
- CSV upload (reconcile by address, batched upsert)
- Full property listing for the data table
- Direct field edits from the data table
"""
import logging
import os
import tempfile
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import (
    AddressConflictError,
    ReconciliationError,
    StorageError,
    UploadValidationError,
)
from app.services.ingestion import CSV_EXTENSION, ingest_upload, is_csv_upload
from app.services.normalizer import clean_text
from app.services.property_store import SqlPropertyStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["properties"])


def get_property_store(db: Session = Depends(get_db)) -> SqlPropertyStore:
    """Dependency to get the property store for a request."""
    return SqlPropertyStore(db)


# =============================================================================
# Request/Response Models
# =============================================================================

class PropertyResponse(BaseModel):
    """Response model for a stored property."""
    id: int
    property_address: str
    city: Optional[str]
    state: Optional[str]
    zip: Optional[str]
    county: Optional[str]
    year_built: Optional[int]
    latitude: Optional[float]
    longitude: Optional[float]
    occupancy_rate: Optional[float]
    parking_spaces: Optional[int]
    has_ev_charging: Optional[bool]
    redevelopment_opportunities: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class PropertyUpdate(BaseModel):
    """Request model for editing a property; only provided fields change."""
    property_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    county: Optional[str] = None
    year_built: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    occupancy_rate: Optional[float] = None
    parking_spaces: Optional[int] = None
    has_ev_charging: Optional[bool] = None
    redevelopment_opportunities: Optional[str] = None


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/upload")
async def upload_csv(
    csvFile: Optional[UploadFile] = File(None),
    store: SqlPropertyStore = Depends(get_property_store)
):
    """
    Upload a property CSV and reconcile it against stored records.

    Rows whose address (case/whitespace-insensitive) already exists are
    updated; the rest are inserted. A failing batch does not stop the run:
    its error is returned alongside the counts that did succeed.
    """
    if csvFile is None:
        return JSONResponse(status_code=400, content={"error": "No file uploaded"})

    if not is_csv_upload(csvFile.filename, csvFile.content_type):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid file type", "details": "Only CSV files are allowed"}
        )

    # Save upload to temp file; ingest_upload removes it on every exit path
    tmp = tempfile.NamedTemporaryFile(delete=False, suffix=CSV_EXTENSION)
    try:
        content = await csvFile.read()
        tmp.write(content)
        tmp.close()
    except Exception:
        tmp.close()
        os.unlink(tmp.name)
        raise

    try:
        outcome = ingest_upload(
            store,
            tmp.name,
            chunk_size=settings.RECONCILE_CHUNK_SIZE,
            batch_size=settings.UPSERT_BATCH_SIZE,
        )
    except UploadValidationError as e:
        return JSONResponse(status_code=400, content={"error": e.message, "details": e.details})
    except ReconciliationError as e:
        logger.error(f"Upload error: {e}")
        return JSONResponse(status_code=500, content={"error": "Server error", "details": str(e)})

    if outcome.partial_failure:
        return JSONResponse(
            status_code=500,
            content={
                "error": "Partial database operation failure",
                "details": outcome.errors,
                "stats": {
                    "totalProcessed": outcome.total_rows,
                    "skipped": outcome.skipped,
                    "successfulUpdates": outcome.updated,
                    "successfulInserts": outcome.inserted,
                    "failedBatches": outcome.failed_batches,
                },
            }
        )

    return {
        "message": "CSV processed successfully",
        "stats": outcome.to_stats(),
    }


@router.get("/data", response_model=List[PropertyResponse])
def list_properties(store: SqlPropertyStore = Depends(get_property_store)):
    """All stored properties in ascending id order."""
    try:
        return store.list_all()
    except Exception as e:
        logger.error(f"Failed to fetch data: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch data")


@router.patch("/properties/{property_id}", response_model=PropertyResponse)
def update_property(
    property_id: int,
    property_data: PropertyUpdate,
    store: SqlPropertyStore = Depends(get_property_store)
):
    """
    Persist direct edits made in the data table.

    The address stays the matching key for later uploads, so changing it
    to one another property already uses is rejected.
    """
    prop = store.get(property_id)
    if not prop:
        raise HTTPException(status_code=404, detail="Property not found")

    update_data = property_data.model_dump(exclude_unset=True)
    if "property_address" in update_data:
        address = clean_text(update_data["property_address"])
        if address is None:
            raise HTTPException(status_code=400, detail="Property address cannot be empty")
        update_data["property_address"] = address
    update_data["updated_at"] = datetime.now(timezone.utc)

    try:
        return store.update_fields(prop, update_data)
    except AddressConflictError:
        raise HTTPException(status_code=409, detail="Another property already has this address")
    except StorageError as e:
        logger.error(f"Failed to update property {property_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update property")
