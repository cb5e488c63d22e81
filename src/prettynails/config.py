"""
PrettyNails Configuration
=========================

This module handles configuration loading for the processing pipeline.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    PRETTYNAILS_BASE_URL          -> generation.base_url
    PRETTYNAILS_TIMEOUT           -> generation.timeout_seconds
    PRETTYNAILS_DETECTOR          -> detection.backend
    PRETTYNAILS_MAX_ATTEMPTS      -> retry.max_attempts
    PRETTYNAILS_BATCH_CONCURRENCY -> batch.max_concurrency
    PRETTYNAILS_CATALOG_PATH      -> catalog.path
    PRETTYNAILS_LOG_LEVEL         -> logging.level
    PRETTYNAILS_PORT              -> server.port
    PORT                          -> server.port (container platforms)

Example:
    from prettynails.config import load_config, setup_logging

    settings = load_config()
    setup_logging(settings)
    print(settings.validation.max_dimension)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ValidationConfig(BaseModel):
    """Input image policy limits."""

    min_dimension: int = Field(default=256, gt=0, description="Minimum width/height in pixels")
    max_dimension: int = Field(default=2048, gt=0, description="Maximum width/height in pixels")
    max_bytes: int = Field(
        default=10 * 1024 * 1024,
        gt=0,
        description="Maximum encoded image size in bytes",
    )


class DetectionConfig(BaseModel):
    """Hand detection configuration."""

    backend: str = Field(
        default="mediapipe",
        description="Detector backend: 'mediapipe' or 'static'",
    )
    mask_confidence: float = Field(
        default=0.3,
        ge=0,
        le=1.0,
        description="Minimum keypoint confidence for mask discs and hand crops",
    )
    quality_confidence: float = Field(
        default=0.5,
        ge=0,
        le=1.0,
        description="Minimum keypoint confidence for quality nail-area estimates",
    )
    max_hands: int = Field(default=2, ge=1, description="Maximum hands per image")
    min_detection_confidence: float = Field(
        default=0.5,
        ge=0,
        le=1.0,
        description="Backend detection confidence",
    )


class MaskConfig(BaseModel):
    """Nail mask configuration."""

    disc_radius_px: int = Field(default=15, ge=1, description="Disc radius per fingertip")


class NormalizerConfig(BaseModel):
    """Image normalization and enhancement configuration."""

    exposure_ev: float = Field(default=0.2, description="Exposure boost in EV")
    saturation: float = Field(default=1.1, gt=0, description="Saturation multiplier")
    sharpen_intensity: float = Field(default=0.5, ge=0, description="Unsharp mask intensity")
    sharpen_radius: float = Field(default=2.5, gt=0, description="Unsharp mask blur sigma")
    crop_padding: float = Field(
        default=0.1,
        ge=0,
        description="Fractional expansion of the hand box on each axis",
    )
    enhance: bool = Field(default=False, description="Apply enhancement before generation")
    crop_to_hands: bool = Field(default=False, description="Crop to hands before generation")


class QualityConfig(BaseModel):
    """Quality analysis configuration."""

    min_resolution: int = Field(default=512, gt=0, description="Low resolution threshold")
    acceptable_score: float = Field(default=0.6, ge=0, le=1.0, description="Acceptability cutoff")
    nail_region_size: int = Field(default=20, ge=1, description="Nail area side in pixels")


class GenerationConfig(BaseModel):
    """Remote image-generation service configuration."""

    base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Service base URL",
    )
    endpoint: str = Field(
        default="/models/imagen-3.0-generate-001:generateImage",
        description="Image generation endpoint path",
    )
    timeout_seconds: float = Field(default=30.0, gt=0, description="Request timeout")
    jpeg_quality: int = Field(default=80, ge=1, le=100, description="Upload JPEG quality")
    credential_key: str = Field(
        default="gemini_api_key",
        description="Secret store key holding the API credential",
    )
    user_agent: str = Field(default="PrettyNails/1.0", description="User-Agent header")
    use_mask: bool = Field(default=False, description="Send a fingertip mask with requests")


class RetryConfig(BaseModel):
    """Caller-level retry policy around generation."""

    max_attempts: int = Field(default=3, ge=1, description="Total attempts per request")
    base_delay_seconds: float = Field(default=1.0, ge=0, description="Initial backoff delay")
    max_delay_seconds: float = Field(default=30.0, ge=0, description="Backoff ceiling")


class BatchConfig(BaseModel):
    """Batch processing configuration."""

    max_concurrency: int = Field(
        default=1,
        ge=1,
        description="Images processed concurrently (1 = sequential)",
    )


class CatalogConfig(BaseModel):
    """Design catalog configuration."""

    path: Optional[str] = Field(
        default=None,
        description="YAML file with designs (built-in samples when unset)",
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8002, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for PrettyNails.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    mask: MaskConfig = Field(default_factory=MaskConfig)
    normalizer: NormalizerConfig = Field(default_factory=NormalizerConfig)
    quality: QualityConfig = Field(default_factory=QualityConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("/app/config.yaml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Generation service
    if env_url := os.environ.get("PRETTYNAILS_BASE_URL"):
        config_data.setdefault("generation", {})["base_url"] = env_url
    if env_timeout := os.environ.get("PRETTYNAILS_TIMEOUT"):
        config_data.setdefault("generation", {})["timeout_seconds"] = float(env_timeout)

    # Detection
    if env_detector := os.environ.get("PRETTYNAILS_DETECTOR"):
        config_data.setdefault("detection", {})["backend"] = env_detector

    # Retry and batch
    if env_attempts := os.environ.get("PRETTYNAILS_MAX_ATTEMPTS"):
        config_data.setdefault("retry", {})["max_attempts"] = int(env_attempts)
    if env_conc := os.environ.get("PRETTYNAILS_BATCH_CONCURRENCY"):
        config_data.setdefault("batch", {})["max_concurrency"] = int(env_conc)

    # Catalog
    if env_catalog := os.environ.get("PRETTYNAILS_CATALOG_PATH"):
        config_data.setdefault("catalog", {})["path"] = env_catalog

    # Server settings (container platforms use PORT)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("PRETTYNAILS_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("PRETTYNAILS_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
