"""
Processing Orchestrator
=======================

Entry point of the pipeline: one call per image, one result per call.

This module:
    - Creates the ProcessingResult record (PENDING) for every request
    - Runs the ProcessingGraph and returns its terminal result
    - Turns cancellation and unexpected failures into FAILED results
    - Processes batches with partial-failure semantics; a cancelled batch
      starts no further images

Contract:
    process() and process_batch() never raise for per-image failures.
    Every input produces exactly one terminal result, in input order.

Example:
    orchestrator = build_orchestrator(settings, EnvironmentSecretStore())
    result = await orchestrator.process(jpeg_bytes, design)
    if result.status == ProcessingStatus.COMPLETED:
        save(result.processed_image)
"""

import asyncio
import logging
from collections import Counter
from typing import Any, Dict, List, Optional, Sequence, Union

import httpx

from prettynails.config import Settings
from prettynails.generation.client import GenerationClient
from prettynails.generation.credentials import SecretStore
from prettynails.generation.retry import RetryPolicy
from prettynails.imaging.mask import MaskBuilder
from prettynails.imaging.normalizer import ImageNormalizer
from prettynails.imaging.validator import ImageValidator
from prettynails.models.design import DesignDescriptor
from prettynails.models.errors import ErrorKind
from prettynails.models.image import RawImage
from prettynails.models.result import (
    ProcessingRequest,
    ProcessingResult,
    ProcessingStatus,
)
from prettynails.perception.detector import HandDetector, StaticHandDetector
from prettynails.pipeline.graph import ProcessingGraph


logger = logging.getLogger(__name__)


ImageInput = Union[RawImage, bytes]


class ProcessingOrchestrator:
    """
    Runs images through the processing graph.

    Attributes:
        graph: Compiled per-image workflow
        max_concurrency: Default batch concurrency (1 = sequential)
    """

    def __init__(self, graph: ProcessingGraph, max_concurrency: int = 1) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.graph = graph
        self.max_concurrency = max_concurrency

        self._processed_count = 0
        self._failures: Counter = Counter()

    async def process(self, image: ImageInput, design: DesignDescriptor) -> ProcessingResult:
        """
        Apply a design to one image.

        Args:
            image: Decoded RawImage or encoded JPEG/PNG bytes
            design: Design to apply

        Returns:
            COMPLETED result with the edited image, or FAILED result with
            an error kind and message
        """
        result = self._new_result(image, design)
        logger.info(f"[{result.id}] Processing started: design={design.id}")

        try:
            result = await self.graph.run(image, design, result)
        except asyncio.CancelledError:
            logger.warning(f"[{result.id}] Processing cancelled")
            result = result.fail(ErrorKind.CANCELLED, "Processing was cancelled")
        except Exception as e:
            logger.exception(f"[{result.id}] Pipeline failed unexpectedly")
            result = result.fail(
                ErrorKind.PROCESSING_FAILED,
                f"Failed to process the image: {e}",
            )

        self._record(result)
        return result

    async def process_request(self, request: ProcessingRequest) -> ProcessingResult:
        """Process a ProcessingRequest."""
        return await self.process(request.image, request.design)

    async def process_batch(
        self,
        images: Sequence[ImageInput],
        design: DesignDescriptor,
        max_concurrency: Optional[int] = None,
    ) -> List[ProcessingResult]:
        """
        Apply one design to many images.

        A failure on one image never affects the others. Cancelling the
        batch stops it: no further images are started and every image that
        did not finish gets a CANCELLED result.

        Args:
            images: Images to process
            design: Design to apply to every image
            max_concurrency: Overrides the orchestrator default when given

        Returns:
            One terminal result per input, in input order
        """
        limit = max_concurrency or self.max_concurrency
        logger.info(
            f"Batch started: {len(images)} image(s), design={design.id}, "
            f"concurrency={limit}"
        )

        if limit <= 1:
            results = await self._run_sequential(images, design)
        else:
            results = await self._run_concurrent(images, design, limit)

        completed = sum(1 for r in results if r.status == ProcessingStatus.COMPLETED)
        logger.info(f"Batch finished: {completed}/{len(results)} completed")
        return results

    async def _run_sequential(
        self,
        images: Sequence[ImageInput],
        design: DesignDescriptor,
    ) -> List[ProcessingResult]:
        results: List[ProcessingResult] = []
        for index, image in enumerate(images):
            result = await self.process(image, design)
            results.append(result)
            if result.error_kind is ErrorKind.CANCELLED:
                skipped = images[index + 1:]
                if skipped:
                    logger.warning(f"Batch cancelled: skipping {len(skipped)} image(s)")
                results.extend(self._cancelled(image, design) for image in skipped)
                break
        return results

    async def _run_concurrent(
        self,
        images: Sequence[ImageInput],
        design: DesignDescriptor,
        limit: int,
    ) -> List[ProcessingResult]:
        semaphore = asyncio.Semaphore(limit)

        async def bounded(image: ImageInput) -> ProcessingResult:
            async with semaphore:
                return await self.process(image, design)

        tasks = [asyncio.ensure_future(bounded(image)) for image in images]
        try:
            return list(await asyncio.gather(*tasks))
        except asyncio.CancelledError:
            # gather cancels every child and waits for it before raising
            await asyncio.wait(tasks)
            logger.warning("Batch cancelled")
            return [
                self._cancelled(image, design) if task.cancelled() else task.result()
                for image, task in zip(images, tasks)
            ]

    def _new_result(self, image: ImageInput, design: DesignDescriptor) -> ProcessingResult:
        original = image.data if isinstance(image, RawImage) else bytes(image)
        return ProcessingResult(original_image=original, design_id=design.id)

    def _cancelled(self, image: ImageInput, design: DesignDescriptor) -> ProcessingResult:
        """CANCELLED result for an image that was never started."""
        result = self._new_result(image, design).fail(
            ErrorKind.CANCELLED,
            "Processing was cancelled",
        )
        self._record(result)
        return result

    def _record(self, result: ProcessingResult) -> None:
        self._processed_count += 1
        if result.error_kind is not None:
            self._failures[result.error_kind.value] += 1
            logger.info(
                f"[{result.id}] Processing failed: {result.error_kind.value}"
            )
        else:
            logger.info(f"[{result.id}] Processing completed")

    def get_metrics(self) -> Dict[str, Any]:
        """Get orchestrator metrics for observability."""
        failed = sum(self._failures.values())
        return {
            "processed_count": self._processed_count,
            "completed_count": self._processed_count - failed,
            "failed_count": failed,
            "failures_by_kind": dict(self._failures),
        }


# =============================================================================
# Factories
# =============================================================================

def create_detector(settings: Settings) -> HandDetector:
    """
    Create the hand detector selected by configuration.

    Raises:
        ValueError: Unknown backend name
        ImportError: mediapipe backend selected but not installed
    """
    backend = settings.detection.backend.lower()

    if backend == "mediapipe":
        from prettynails.perception.mediapipe_detector import MediaPipeHandDetector

        return MediaPipeHandDetector(
            max_hands=settings.detection.max_hands,
            min_detection_confidence=settings.detection.min_detection_confidence,
        )
    if backend == "static":
        logger.warning("Using StaticHandDetector: every image reports no hands")
        return StaticHandDetector()

    raise ValueError(f"Unknown detector backend: {settings.detection.backend}")


def build_orchestrator(
    settings: Settings,
    secret_store: SecretStore,
    detector: Optional[HandDetector] = None,
    client: Optional[GenerationClient] = None,
    retry_policy: Optional[RetryPolicy] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ProcessingOrchestrator:
    """
    Wire a ProcessingOrchestrator from settings.

    Args:
        settings: Loaded configuration
        secret_store: Credential source for the generation client
        detector: Hand detector (created from settings when None)
        client: Generation client (created from settings when None)
        retry_policy: Retry policy (created from settings when None)
        transport: httpx transport for a settings-built client

    Returns:
        Ready-to-use orchestrator
    """
    validation = settings.validation
    norm = settings.normalizer
    gen = settings.generation

    validator = ImageValidator(
        min_dimension=validation.min_dimension,
        max_dimension=validation.max_dimension,
        max_bytes=validation.max_bytes,
    )
    normalizer = ImageNormalizer(
        max_dimension=validation.max_dimension,
        exposure_ev=norm.exposure_ev,
        saturation=norm.saturation,
        sharpen_intensity=norm.sharpen_intensity,
        sharpen_radius=norm.sharpen_radius,
        crop_confidence=settings.detection.mask_confidence,
        crop_padding=norm.crop_padding,
        enhance_enabled=norm.enhance,
        crop_enabled=norm.crop_to_hands,
    )
    mask_builder = MaskBuilder(
        min_confidence=settings.detection.mask_confidence,
        radius=settings.mask.disc_radius_px,
    )

    if client is None:
        client = GenerationClient(
            secret_store,
            base_url=gen.base_url,
            endpoint=gen.endpoint,
            credential_key=gen.credential_key,
            timeout=gen.timeout_seconds,
            jpeg_quality=gen.jpeg_quality,
            max_dimension=validation.max_dimension,
            user_agent=gen.user_agent,
            transport=transport,
        )
    if retry_policy is None:
        retry_policy = RetryPolicy(
            max_attempts=settings.retry.max_attempts,
            base_delay=settings.retry.base_delay_seconds,
            max_delay=settings.retry.max_delay_seconds,
        )

    graph = ProcessingGraph(
        validator=validator,
        detector=detector if detector is not None else create_detector(settings),
        normalizer=normalizer,
        client=client,
        retry_policy=retry_policy,
        mask_builder=mask_builder,
        use_mask=gen.use_mask,
        output_quality=gen.jpeg_quality,
    )
    return ProcessingOrchestrator(graph, max_concurrency=settings.batch.max_concurrency)
