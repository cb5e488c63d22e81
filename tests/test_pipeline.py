"""
Pipeline Tests
==============

End-to-end orchestration with a static detector and a scripted
generation service.
"""

import asyncio
import json

import httpx
import pytest

from prettynails.generation.credentials import InMemorySecretStore
from prettynails.generation.retry import RetryPolicy
from prettynails.imaging.codec import decode_image, detect_format
from prettynails.models.errors import ErrorKind
from prettynails.models.image import ImageFormat
from prettynails.models.result import ProcessingRequest, ProcessingStatus
from prettynails.perception.detector import StaticHandDetector
from prettynails.pipeline import build_orchestrator, build_prompt, create_detector


@pytest.fixture
def make_orchestrator(settings, secret_store, hand, sleep_log):
    """Factory wiring an orchestrator around a scripted service."""
    def _make(service, observations=None, store=None, **overrides):
        detector = StaticHandDetector([hand] if observations is None else observations)
        for section, values in overrides.items():
            for key, value in values.items():
                setattr(getattr(settings, section), key, value)
        orchestrator = build_orchestrator(
            settings,
            store or secret_store,
            detector=detector,
            retry_policy=RetryPolicy(sleep=sleep_log),
            transport=service.transport(),
        )
        return orchestrator, detector
    return _make


class TestPrompt:

    def test_prompt_names_design(self, design):
        prompt = build_prompt(design)
        assert prompt.startswith("Apply this nail design to the fingernails in the image.\n")
        assert prompt.endswith("Design style: Classic Red - Timeless red polish for any occasion")
        assert len(prompt.splitlines()) == 4


class TestProcess:

    def test_success(self, make_orchestrator, make_service, success_body, jpeg_bytes, design):
        service = make_service(httpx.Response(200, json=success_body))
        orchestrator, _ = make_orchestrator(service)

        result = asyncio.run(orchestrator.process(jpeg_bytes, design))

        assert result.status == ProcessingStatus.COMPLETED
        assert result.original_image == jpeg_bytes
        assert result.design_id == design.id
        assert detect_format(result.processed_image) == ImageFormat.JPEG
        assert decode_image(result.processed_image).size == (64, 64)
        assert result.error_kind is None
        assert service.call_count == 1

    def test_accepts_decoded_image(self, make_orchestrator, make_service, success_body, jpeg_bytes, design):
        service = make_service(httpx.Response(200, json=success_body))
        orchestrator, _ = make_orchestrator(service)

        result = asyncio.run(orchestrator.process(decode_image(jpeg_bytes), design))

        assert result.status == ProcessingStatus.COMPLETED
        assert result.original_image == jpeg_bytes

    def test_prompt_sent_to_service(self, make_orchestrator, make_service, success_body, jpeg_bytes, design):
        service = make_service(httpx.Response(200, json=success_body))
        orchestrator, _ = make_orchestrator(service)

        asyncio.run(orchestrator.process(jpeg_bytes, design))

        assert json.loads(service.requests[0].content)["prompt"] == build_prompt(design)

    def test_oversized_image_rejected_before_network(
        self, make_orchestrator, make_service, success_body, make_image_bytes, design
    ):
        service = make_service(httpx.Response(200, json=success_body))
        orchestrator, detector = make_orchestrator(service)

        result = asyncio.run(orchestrator.process(make_image_bytes(3000, 3000), design))

        assert result.status == ProcessingStatus.FAILED
        assert result.error_kind == ErrorKind.INVALID_IMAGE
        assert "too large" in result.error_message
        assert detector.call_count == 0
        assert service.call_count == 0

    def test_undecodable_bytes(self, make_orchestrator, make_service, design):
        service = make_service(httpx.Response(200, json={}))
        orchestrator, _ = make_orchestrator(service)

        result = asyncio.run(orchestrator.process(b"not an image", design))

        assert result.error_kind == ErrorKind.INVALID_IMAGE
        assert result.original_image == b"not an image"

    def test_no_hands_never_calls_service(self, make_orchestrator, make_service, success_body, jpeg_bytes, design):
        service = make_service(httpx.Response(200, json=success_body))
        orchestrator, detector = make_orchestrator(service, observations=[])

        result = asyncio.run(orchestrator.process(jpeg_bytes, design))

        assert result.status == ProcessingStatus.FAILED
        assert result.error_kind == ErrorKind.NO_HANDS_DETECTED
        assert detector.call_count == 1
        assert service.call_count == 0

    def test_quota_exhausts_retries(self, make_orchestrator, make_service, jpeg_bytes, design, sleep_log):
        service = make_service(httpx.Response(429))
        orchestrator, _ = make_orchestrator(service)

        result = asyncio.run(orchestrator.process(jpeg_bytes, design))

        assert result.status == ProcessingStatus.FAILED
        assert result.error_kind == ErrorKind.QUOTA_EXCEEDED
        assert result.error_message == "API quota exceeded. Please wait a moment and try again."
        assert service.call_count == 3
        assert sleep_log.delays == [1.0, 2.0]

    def test_server_error_recovers_on_retry(
        self, make_orchestrator, make_service, success_body, jpeg_bytes, design
    ):
        service = make_service(httpx.Response(503), httpx.Response(200, json=success_body))
        orchestrator, _ = make_orchestrator(service)

        result = asyncio.run(orchestrator.process(jpeg_bytes, design))

        assert result.status == ProcessingStatus.COMPLETED
        assert service.call_count == 2

    def test_content_filtered_not_retried(
        self, make_orchestrator, make_service, success_body, jpeg_bytes, design
    ):
        success_body["candidates"][0]["safetyRatings"][0]["probability"] = "HIGH"
        service = make_service(httpx.Response(200, json=success_body))
        orchestrator, _ = make_orchestrator(service)

        result = asyncio.run(orchestrator.process(jpeg_bytes, design))

        assert result.error_kind == ErrorKind.CONTENT_FILTERED
        assert result.processed_image is None
        assert service.call_count == 1

    def test_missing_credential(self, make_orchestrator, make_service, success_body, jpeg_bytes, design):
        service = make_service(httpx.Response(200, json=success_body))
        orchestrator, _ = make_orchestrator(service, store=InMemorySecretStore())

        result = asyncio.run(orchestrator.process(jpeg_bytes, design))

        assert result.error_kind == ErrorKind.MISSING_CREDENTIAL
        assert service.call_count == 0

    def test_mask_sent_when_enabled(self, make_orchestrator, make_service, success_body, jpeg_bytes, design):
        service = make_service(httpx.Response(200, json=success_body))
        orchestrator, _ = make_orchestrator(
            service,
            generation={"use_mask": True},
            normalizer={"crop_to_hands": True},
        )

        result = asyncio.run(orchestrator.process(jpeg_bytes, design))

        body = json.loads(service.requests[0].content)
        assert result.status == ProcessingStatus.COMPLETED
        assert body["mask"]["mimeType"] == "image/jpeg"

    def test_process_request(self, make_orchestrator, make_service, success_body, jpeg_bytes, design):
        service = make_service(httpx.Response(200, json=success_body))
        orchestrator, _ = make_orchestrator(service)

        result = asyncio.run(orchestrator.process_request(ProcessingRequest(jpeg_bytes, design)))

        assert result.status == ProcessingStatus.COMPLETED

    def test_metrics(self, make_orchestrator, make_service, success_body, jpeg_bytes, design):
        service = make_service(httpx.Response(200, json=success_body))
        orchestrator, _ = make_orchestrator(service)

        asyncio.run(orchestrator.process(jpeg_bytes, design))
        asyncio.run(orchestrator.process(b"junk", design))

        metrics = orchestrator.get_metrics()
        assert metrics["processed_count"] == 2
        assert metrics["completed_count"] == 1
        assert metrics["failures_by_kind"] == {"invalid_image": 1}


class TestCancellation:

    def test_cancelled_request_yields_failed_result(
        self, make_orchestrator, make_service, jpeg_bytes, design
    ):
        async def scenario():
            started = asyncio.Event()

            async def hang(request):
                started.set()
                await asyncio.sleep(60)
                return httpx.Response(500)

            service = make_service(hang)
            orchestrator, _ = make_orchestrator(service)

            task = asyncio.create_task(orchestrator.process(jpeg_bytes, design))
            await asyncio.wait_for(started.wait(), timeout=10)
            task.cancel()
            return await task

        result = asyncio.run(scenario())

        assert result.status == ProcessingStatus.FAILED
        assert result.error_kind == ErrorKind.CANCELLED
        assert result.processed_image is None

    def _hanging_service(self, make_service, wait_for: int):
        """Service whose requests never finish; `started` fires at `wait_for` calls."""
        started = asyncio.Event()
        service = None

        async def hang(request):
            if service.call_count >= wait_for:
                started.set()
            await asyncio.sleep(60)
            return httpx.Response(500)

        service = make_service(hang)
        return service, started

    def _batch_images(self, make_image_bytes):
        return [
            make_image_bytes(512, 512),
            make_image_bytes(600, 400),
            make_image_bytes(400, 600),
            make_image_bytes(480, 480),
        ]

    def _cancel_batch(self, make_orchestrator, make_service, images, design, concurrency):
        async def scenario():
            service, started = self._hanging_service(make_service, wait_for=concurrency)
            orchestrator, _ = make_orchestrator(service)

            task = asyncio.create_task(
                orchestrator.process_batch(images, design, max_concurrency=concurrency)
            )
            await asyncio.wait_for(started.wait(), timeout=10)
            task.cancel()
            return service, orchestrator, await task

        return asyncio.run(scenario())

    def test_cancelled_sequential_batch_starts_no_more_images(
        self, make_orchestrator, make_service, make_image_bytes, design
    ):
        images = self._batch_images(make_image_bytes)

        service, orchestrator, results = self._cancel_batch(
            make_orchestrator, make_service, images, design, concurrency=1
        )

        assert service.call_count == 1
        assert [r.original_image for r in results] == images
        assert [r.error_kind for r in results] == [ErrorKind.CANCELLED] * 4
        assert all(r.status == ProcessingStatus.FAILED for r in results)
        assert orchestrator.get_metrics()["failures_by_kind"] == {"cancelled": 4}

    def test_cancelled_concurrent_batch_starts_no_more_images(
        self, make_orchestrator, make_service, make_image_bytes, design
    ):
        images = self._batch_images(make_image_bytes)

        service, orchestrator, results = self._cancel_batch(
            make_orchestrator, make_service, images, design, concurrency=2
        )

        assert service.call_count == 2
        assert [r.original_image for r in results] == images
        assert [r.error_kind for r in results] == [ErrorKind.CANCELLED] * 4
        assert orchestrator.get_metrics()["failed_count"] == 4


class TestBatch:

    def _inputs(self, make_image_bytes):
        return [
            make_image_bytes(512, 512),
            b"corrupt",
            make_image_bytes(100, 100),
            make_image_bytes(600, 400),
            make_image_bytes(3000, 300),
        ]

    def test_one_result_per_input_in_order(
        self, make_orchestrator, make_service, success_body, make_image_bytes, design
    ):
        service = make_service(httpx.Response(200, json=success_body))
        orchestrator, _ = make_orchestrator(service)
        images = self._inputs(make_image_bytes)

        results = asyncio.run(orchestrator.process_batch(images, design))

        assert len(results) == len(images)
        assert [r.original_image for r in results] == images
        assert [r.status for r in results] == [
            ProcessingStatus.COMPLETED,
            ProcessingStatus.FAILED,
            ProcessingStatus.FAILED,
            ProcessingStatus.COMPLETED,
            ProcessingStatus.FAILED,
        ]
        assert all(r.status.is_terminal for r in results)
        assert len({r.id for r in results}) == len(results)
        assert service.call_count == 2

    def test_concurrent_batch_keeps_order(
        self, make_orchestrator, make_service, success_body, make_image_bytes, design
    ):
        service = make_service(httpx.Response(200, json=success_body))
        orchestrator, _ = make_orchestrator(service)
        images = self._inputs(make_image_bytes)

        results = asyncio.run(orchestrator.process_batch(images, design, max_concurrency=3))

        assert [r.original_image for r in results] == images
        assert [r.error_kind for r in results] == [
            None,
            ErrorKind.INVALID_IMAGE,
            ErrorKind.INVALID_IMAGE,
            None,
            ErrorKind.INVALID_IMAGE,
        ]

    def test_configured_concurrency(
        self, make_orchestrator, make_service, success_body, make_image_bytes, design
    ):
        service = make_service(httpx.Response(200, json=success_body))
        orchestrator, _ = make_orchestrator(service, batch={"max_concurrency": 2})

        assert orchestrator.max_concurrency == 2
        results = asyncio.run(
            orchestrator.process_batch([make_image_bytes()] * 4, design)
        )
        assert all(r.status == ProcessingStatus.COMPLETED for r in results)

    def test_empty_batch(self, make_orchestrator, make_service, design):
        service = make_service(httpx.Response(200, json={}))
        orchestrator, _ = make_orchestrator(service)
        assert asyncio.run(orchestrator.process_batch([], design)) == []


class TestCreateDetector:

    def test_static_backend(self, settings):
        assert isinstance(create_detector(settings), StaticHandDetector)

    def test_unknown_backend(self, settings):
        settings.detection.backend = "crystal-ball"
        with pytest.raises(ValueError):
            create_detector(settings)
