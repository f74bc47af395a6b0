"""
Common Pydantic schemas used across the application.
"""
from typing import Dict, Any
from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Schema for health check response."""
    success: bool = Field(..., description="Whether service is healthy")
    data: Dict[str, Any] = Field(..., description="Health check data")
    message: str = Field(..., description="Health check message")
