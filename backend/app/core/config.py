from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Property Census Importer"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = True

    # Database
    DATABASE_URL: str = "sqlite:///./properties.db"

    # Frontend (added to CORS origins when set)
    FRONTEND_URL: Optional[str] = None

    # Census Bureau
    CENSUS_API_KEY: Optional[str] = None
    CENSUS_GEOCODER_URL: str = "https://geocoding.geo.census.gov/geocoder/geographies/address"
    CENSUS_DATA_URL: str = "https://api.census.gov/data/2023/acs/acs1"
    CENSUS_TIMEOUT_SECONDS: float = 10.0

    # CSV ingestion
    RECONCILE_CHUNK_SIZE: int = 100  # keys per membership query
    UPSERT_BATCH_SIZE: int = 50  # records per upsert statement group

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
    ]

    @property
    def cors_origins(self) -> list[str]:
        """CORS origins including FRONTEND_URL when configured."""
        origins = list(self.CORS_ORIGINS)
        if self.FRONTEND_URL and self.FRONTEND_URL not in origins:
            origins.append(self.FRONTEND_URL)
        return origins

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


settings = Settings()
