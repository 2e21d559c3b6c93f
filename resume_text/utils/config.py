"""Configuration management for the resume text extractor.

Loads and validates YAML configuration with sensible defaults for the
cloud OCR tier, the local OCR tier, and the page-level pipeline limits.
Environment variables take precedence over the YAML file.
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class CloudOCRConfig(BaseModel):
    """Configuration for the OCR.space cloud OCR client."""

    api_key: str | None = None
    url: str = "https://api.ocr.space/parse/image"
    language: str = "eng"
    engine: int = 2
    max_bytes: int = Field(default=1_000_000, gt=0)
    timeout_s: float = Field(default=30.0, gt=0)


class OCRConfig(BaseModel):
    """Configuration for the local Tesseract OCR tier."""

    tesseract_cmd: str | None = None
    default_lang: str = "eng"
    psm: int = 3
    timeout_s: float = Field(default=20.0, gt=0)
    pdf_dpi: int = Field(default=200, gt=0)
    raster_fallback: bool = True


class PipelineConfig(BaseModel):
    """Page limits and text-length thresholds for the tier coordinator."""

    max_pages: int = Field(default=10, ge=1)
    min_chars_per_page: int = Field(default=10, ge=0)
    too_long_chars: int = Field(default=6000, ge=1)


class ServerConfig(BaseModel):
    """Bind address for the HTTP API server."""

    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)


class AppConfig(BaseModel):
    """Top-level application configuration."""

    cloud_ocr: CloudOCRConfig = Field(default_factory=CloudOCRConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    log_level: str = "INFO"


# Environment variable -> (section, field). A section of None targets AppConfig.
ENV_OVERRIDES: dict[str, tuple[str | None, str]] = {
    "OCR_SPACE_API_KEY": ("cloud_ocr", "api_key"),
    "OCR_SPACE_URL": ("cloud_ocr", "url"),
    "OCR_SPACE_MAX_BYTES": ("cloud_ocr", "max_bytes"),
    "OCR_SPACE_TIMEOUT_S": ("cloud_ocr", "timeout_s"),
    "TESSERACT_CMD": ("ocr", "tesseract_cmd"),
    "LOCAL_OCR_TIMEOUT_S": ("ocr", "timeout_s"),
    "MAX_PAGES": ("pipeline", "max_pages"),
    "MIN_CHARS_PER_PAGE": ("pipeline", "min_chars_per_page"),
    "TOO_LONG_CHARS": ("pipeline", "too_long_chars"),
    "HOST": ("server", "host"),
    "PORT": ("server", "port"),
    "LOG_LEVEL": (None, "log_level"),
}


def _apply_env_overrides(raw: dict, environ: Mapping[str, str]) -> dict:
    """Merge environment overrides into raw configuration data.

    Args:
        raw: Configuration mapping loaded from YAML.
        environ: Environment mapping to read overrides from.

    Returns:
        The updated configuration mapping.
    """
    for var, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value is None or value == "":
            continue
        if section is None:
            raw[key] = value
        else:
            if not isinstance(raw.get(section), dict):
                raw[section] = {}
            raw[section][key] = value
        # Never log the API key itself.
        logger.debug("Configuration %s overridden from environment", var)
    return raw


def load_config(
    path: Path | None = None, environ: Mapping[str, str] | None = None
) -> AppConfig:
    """Load configuration from a YAML file plus environment overrides.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.
        environ: Environment mapping. Defaults to ``os.environ``.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")
    if environ is None:
        environ = os.environ

    raw: dict = {}
    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    else:
        logger.info("No config file found at %s, using defaults", path)

    return AppConfig(**_apply_env_overrides(raw, environ))
