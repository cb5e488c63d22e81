"""
PrettyNails Main Application
============================

FastAPI entry point for the nail-design processing pipeline.

Endpoints:
    GET  /                - Service information
    GET  /health          - Liveness probe
    GET  /metrics         - Pipeline and client metrics
    GET  /designs         - Design catalog (category, tag, q filters)
    POST /analyze         - Photo quality analysis
    POST /process         - Apply a design to one photo
    POST /process/batch   - Apply a design to many photos

Images travel as base64 strings. Processing endpoints always answer with
result records; pipeline failures are FAILED results, not HTTP errors.
"""

import asyncio
import base64
import binascii
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

import httpx
from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from prettynails import __version__
from prettynails.analysis.quality import QualityAnalyzer
from prettynails.catalog.catalog import DesignCatalog, load_catalog
from prettynails.config import Settings, load_config, setup_logging
from prettynails.generation.credentials import EnvironmentSecretStore, SecretStore
from prettynails.imaging.codec import decode_image
from prettynails.imaging.normalizer import ImageNormalizer
from prettynails.imaging.validator import ImageValidator
from prettynails.models.design import DesignDescriptor
from prettynails.models.errors import PipelineError
from prettynails.perception.detector import HandDetector
from prettynails.pipeline.orchestrator import build_orchestrator, create_detector


logger = logging.getLogger(__name__)


# =============================================================================
# Request Models
# =============================================================================

class AnalyzeRequest(BaseModel):
    image: str = Field(..., description="Base64-encoded JPEG or PNG")


class ProcessBody(BaseModel):
    image: str = Field(..., description="Base64-encoded JPEG or PNG")
    design_id: str = Field(..., description="Catalog design identifier")


class BatchBody(BaseModel):
    images: List[str] = Field(..., description="Base64-encoded JPEG or PNG images")
    design_id: str = Field(..., description="Catalog design identifier")
    max_concurrency: Optional[int] = Field(
        default=None,
        ge=1,
        description="Overrides the configured batch concurrency",
    )


def _decode_base64(payload: str) -> bytes:
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="Image is not valid base64")


def _design_payload(design: DesignDescriptor) -> dict:
    return design.model_dump(mode="json")


# =============================================================================
# Application Factory
# =============================================================================

def create_app(
    settings: Optional[Settings] = None,
    secret_store: Optional[SecretStore] = None,
    detector: Optional[HandDetector] = None,
    catalog: Optional[DesignCatalog] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Configuration (loaded from file/env when None)
        secret_store: Credential source (environment when None)
        detector: Hand detector (created from settings when None)
        catalog: Design catalog (loaded from settings when None)
        transport: httpx transport for the generation client

    Returns:
        Configured FastAPI app
    """
    settings = settings or load_config()
    secret_store = secret_store or EnvironmentSecretStore()
    detector = detector if detector is not None else create_detector(settings)
    catalog = catalog if catalog is not None else load_catalog(settings.catalog.path)

    validator = ImageValidator(
        min_dimension=settings.validation.min_dimension,
        max_dimension=settings.validation.max_dimension,
        max_bytes=settings.validation.max_bytes,
    )
    orchestrator = build_orchestrator(
        settings,
        secret_store,
        detector=detector,
        transport=transport,
    )
    analyzer = QualityAnalyzer(
        detector,
        validator,
        min_confidence=settings.detection.quality_confidence,
        min_resolution=settings.quality.min_resolution,
        nail_region_size=settings.quality.nail_region_size,
        acceptable_score=settings.quality.acceptable_score,
    )
    orienter = ImageNormalizer(max_dimension=settings.validation.max_dimension)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.started_at = time.time()
        logger.info(
            f"Starting PrettyNails {__version__}: detector={settings.detection.backend}, "
            f"designs={len(catalog)}"
        )

        yield

        logger.info("Shutting down...")
        close = getattr(detector, "close", None)
        if callable(close):
            close()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="PrettyNails",
        description="Nail design try-on processing pipeline",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.started_at = time.time()

    def get_design(design_id: str) -> DesignDescriptor:
        design = catalog.get(design_id)
        if design is None:
            raise HTTPException(status_code=404, detail=f"Unknown design: {design_id}")
        return design

    # =========================================================================
    # HTTP Endpoints
    # =========================================================================

    @app.get("/")
    async def root() -> JSONResponse:
        """Service information endpoint."""
        return JSONResponse({
            "service": "PrettyNails",
            "version": __version__,
            "status": "running",
            "detector_backend": settings.detection.backend,
            "designs": len(catalog),
        })

    @app.get("/health")
    async def health() -> JSONResponse:
        """Liveness probe. Always 200 while the process is up."""
        return JSONResponse({
            "status": "healthy",
            "uptime_seconds": round(time.time() - app.state.started_at, 1),
        })

    @app.get("/metrics")
    async def metrics() -> JSONResponse:
        """Pipeline and client metrics for observability."""
        payload = {
            "uptime_seconds": round(time.time() - app.state.started_at, 1),
            "pipeline": orchestrator.get_metrics(),
            "generation": orchestrator.graph.client.get_metrics(),
        }
        detector_metrics = getattr(detector, "get_metrics", None)
        if callable(detector_metrics):
            payload["detector"] = detector_metrics()
        return JSONResponse(payload)

    @app.get("/designs")
    async def designs(
        category: Optional[str] = Query(default=None),
        tag: Optional[str] = Query(default=None),
        q: Optional[str] = Query(default=None),
    ) -> JSONResponse:
        """List designs, optionally filtered by category, tag and search text."""
        try:
            matches = catalog.filter(category=category, tag=tag, query=q)
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown category: {category}")
        return JSONResponse({"designs": [_design_payload(d) for d in matches]})

    @app.post("/analyze")
    async def analyze(body: AnalyzeRequest) -> JSONResponse:
        """Score a photo's suitability for processing."""
        data = _decode_base64(body.image)
        try:
            image = await asyncio.to_thread(decode_image, data)
        except PipelineError as e:
            return JSONResponse(
                {"error_kind": e.kind.value, "error_message": e.message},
                status_code=400,
            )

        upright = await asyncio.to_thread(orienter.normalize_orientation, image)
        analysis = await asyncio.to_thread(analyzer.analyze, upright)

        payload = analysis.model_dump(mode="json")
        payload["is_acceptable"] = analysis.is_acceptable
        payload["quality_level"] = analysis.quality_level.value
        most_important = analysis.most_important_issue
        payload["most_important_issue"] = most_important.value if most_important else None
        return JSONResponse(payload)

    @app.post("/process")
    async def process(body: ProcessBody) -> JSONResponse:
        """Apply a design to one photo."""
        design = get_design(body.design_id)
        result = await orchestrator.process(_decode_base64(body.image), design)
        return JSONResponse(result.to_wire())

    @app.post("/process/batch")
    async def process_batch(body: BatchBody) -> JSONResponse:
        """Apply a design to many photos; one result per image, in order."""
        design = get_design(body.design_id)
        images = [_decode_base64(image) for image in body.images]
        results = await orchestrator.process_batch(
            images,
            design,
            max_concurrency=body.max_concurrency,
        )
        return JSONResponse({"results": [r.to_wire() for r in results]})

    return app


# =============================================================================
# Main Entry Point
# =============================================================================

def run() -> None:
    """Console entry point: load settings, configure logging, serve."""
    import uvicorn

    settings = load_config()
    setup_logging(settings)

    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
    )


if __name__ == "__main__":
    run()
