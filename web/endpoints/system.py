"""System health and format endpoints."""

import logging

from fastapi import HTTPException, APIRouter

from formats import format_registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.get("/health")
async def health_check():
    """Health check endpoint to verify API is running."""
    return {"isAlive": True}


@router.get("/formats")
async def get_formats():
    """Get available debate formats."""
    return {"formats": format_registry.get_format_descriptions()}


@router.get("/formats/{format_name}")
async def get_format(format_name: str):
    """Get the speaking order and POI rules of one format."""
    try:
        return format_registry.describe(format_name)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
