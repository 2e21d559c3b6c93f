"""Pydantic response schemas for the FastAPI endpoints."""

from pydantic import BaseModel


class ParseResponse(BaseModel):
    """Response schema for a resume parsing request."""

    text: str
    too_long: bool
    extraction_method: str


class ErrorResponse(BaseModel):
    """Response schema for a rejected upload."""

    detail: str


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
    cloud_ocr_configured: bool
