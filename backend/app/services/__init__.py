from app.services.census import census_service, CensusService
from app.services.ingestion import ingest_csv, ingest_upload
from app.services.property_store import SqlPropertyStore

__all__ = [
    "census_service",
    "CensusService",
    "ingest_csv",
    "ingest_upload",
    "SqlPropertyStore",
]
