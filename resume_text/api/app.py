"""FastAPI application for the resume text extraction API.

Provides the resume upload endpoint and a health check.
"""

import shutil
from typing import Annotated

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

from resume_text.errors import EmptyResultError, UnsupportedFormatError
from resume_text.extraction.dispatcher import TextExtractor
from resume_text.utils.config import load_config
from resume_text.utils.logger import get_logger

from .schemas import ErrorResponse, HealthResponse, ParseResponse

logger = get_logger(__name__)

VERSION = "1.0.0"

app = FastAPI(
    title="Resume Text Extraction API",
    description="Extract plain text from PDF, DOCX, TXT, and RTF resumes",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _get_extractor() -> TextExtractor:
    """Build a text extractor from the current configuration."""
    return TextExtractor(load_config())


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    config = load_config()
    return HealthResponse(
        status="healthy",
        version=VERSION,
        tesseract_available=shutil.which(config.ocr.tesseract_cmd or "tesseract")
        is not None,
        cloud_ocr_configured=bool(config.cloud_ocr.api_key),
    )


@app.post(
    "/parse-resume",
    response_model=ParseResponse,
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def parse_resume(
    file: Annotated[UploadFile | None, File()] = None,
) -> ParseResponse:
    """Extract plain text from an uploaded resume.

    Args:
        file: Uploaded resume (PDF, DOCX, TXT, or RTF).

    Returns:
        Extracted text, whether it is too long, and how it was extracted.
    """
    if file is None:
        raise HTTPException(status_code=400, detail="No file provided")

    try:
        content = await file.read()
        extractor = _get_extractor()
        result = await run_in_threadpool(
            extractor.extract, content, file.content_type, file.filename
        )
    except UnsupportedFormatError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except EmptyResultError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Parse resume error")
        raise HTTPException(
            status_code=500,
            detail="Failed to parse resume. Please try a different file.",
        ) from exc

    return ParseResponse(
        text=result.text,
        too_long=result.too_long,
        extraction_method=result.method,
    )
