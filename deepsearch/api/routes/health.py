from __future__ import annotations

from fastapi import APIRouter

from deepsearch import __version__
from deepsearch.api.schemas import HealthResponse
from deepsearch.config import settings

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health():
    config_valid, config_errors = settings.validation_status()
    return HealthResponse(
        version=__version__,
        config_valid=config_valid,
        config_errors=config_errors or None,
    )
