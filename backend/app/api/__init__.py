from fastapi import APIRouter
from app.api.routes import (
    properties,
    census,
)

api_router = APIRouter()

api_router.include_router(properties.router)
api_router.include_router(census.router)
