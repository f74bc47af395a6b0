"""
Health check routes.
"""
import os
from fastapi import APIRouter
from app.schemas.common import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint at /health."""
    return HealthResponse(
        success=True,
        data={"status": "healthy"},
        message="OK"
    )


@router.get("/api/v1/health", response_model=HealthResponse)
async def health_check_v1():
    """Health check endpoint at /api/v1/health."""
    return HealthResponse(
        success=True,
        data={"status": "healthy", "environment": os.getenv("ENVIRONMENT", "development")},
        message="OK"
    )


@router.get("/", response_model=HealthResponse)
async def root():
    """Root endpoint."""
    return HealthResponse(
        success=True,
        data={"message": "Welcome to the Study Buddy Matchmaking API"},
        message="OK"
    )
