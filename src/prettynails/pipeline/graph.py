"""
Processing Graph Definition
===========================

LangGraph state machine for one image's run through the pipeline.

LangGraph is used for CONTROL FLOW only. Every node is a deterministic
stage; the only remote call is the generation request.

Graph Structure:
    START → validate → detect → prepare → generate → complete → END
                │         │        │          │          │
                └─────────┴────────┴──────────┴──────────┴──→ fail → END

    Each stage either writes its output channel or writes `error`.
    A set `error` routes straight to `fail`, which records the failed
    ProcessingResult; later stages never run.

Design Rules:
    - CPU-bound stages (decode, detection, normalization, mask) run in
      worker threads via asyncio.to_thread
    - PipelineErrors keep their kind; anything else becomes processing_failed
    - Cancellation is not caught here; it propagates to the orchestrator
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypedDict, Union

import numpy as np
from langgraph.graph import END, StateGraph

from prettynails.generation.client import GenerationClient
from prettynails.generation.retry import RetryPolicy
from prettynails.imaging.codec import compress_jpeg, decode_image
from prettynails.imaging.mask import MaskBuilder
from prettynails.imaging.normalizer import ImageNormalizer, crop_pixels
from prettynails.imaging.validator import ImageValidator
from prettynails.models.design import DesignDescriptor
from prettynails.models.errors import (
    NoHandsDetectedError,
    PipelineError,
    ProcessingFailedError,
)
from prettynails.models.hand import HandObservation
from prettynails.models.image import RawImage
from prettynails.models.result import ProcessingResult
from prettynails.perception.detector import HandDetector, detect_hands


logger = logging.getLogger(__name__)


PROMPT_TEMPLATE = (
    "Apply this nail design to the fingernails in the image.\n"
    "Keep the hands and fingers exactly as they are, only modify the nail polish/design.\n"
    "Make the nail design look natural and well-applied.\n"
    "Design style: {name} - {description}"
)


def build_prompt(design: DesignDescriptor) -> str:
    """Render the generation prompt for a design."""
    return PROMPT_TEMPLATE.format(name=design.name, description=design.description)


@dataclass(frozen=True)
class GenerationInput:
    """Image (and optional mask of the same size) sent to the service."""

    image: RawImage
    mask: Optional[np.ndarray] = None


class PipelineState(TypedDict):
    """
    State passed through the processing graph.

    Attributes:
        source: Submitted image, decoded or still encoded
        design: Design to apply
        result: Current ProcessingResult (advanced by the graph)
        image: Decoded, validated and upright image
        observations: Detected hands
        prepared: Normalized generation input
        generated: Image returned by the service
        error: First stage failure, if any
    """
    source: Union[RawImage, bytes]
    design: DesignDescriptor
    result: ProcessingResult
    image: Optional[RawImage]
    observations: List[HandObservation]
    prepared: Optional[GenerationInput]
    generated: Optional[RawImage]
    error: Optional[PipelineError]


def create_initial_state(
    source: Union[RawImage, bytes],
    design: DesignDescriptor,
    result: ProcessingResult,
) -> PipelineState:
    """Create the graph input with every channel populated."""
    return {
        "source": source,
        "design": design,
        "result": result,
        "image": None,
        "observations": [],
        "prepared": None,
        "generated": None,
        "error": None,
    }


StageFn = Callable[[PipelineState], Awaitable[Dict[str, Any]]]


class ProcessingGraph:
    """
    LangGraph workflow processing a single image.

    The graph is compiled once and is safe to run concurrently: all
    per-request data lives in the PipelineState.
    """

    def __init__(
        self,
        validator: ImageValidator,
        detector: HandDetector,
        normalizer: ImageNormalizer,
        client: GenerationClient,
        retry_policy: Optional[RetryPolicy] = None,
        mask_builder: Optional[MaskBuilder] = None,
        use_mask: bool = False,
        output_quality: int = 80,
    ) -> None:
        """
        Initialize the processing graph.

        Args:
            validator: Input policy checks
            detector: Hand-pose backend
            normalizer: Orientation, downscale, enhancement and crop
            client: Generation service client
            retry_policy: Caller-level retry (defaults to RetryPolicy())
            mask_builder: Fingertip mask renderer (defaults to MaskBuilder())
            use_mask: Send a fingertip mask with the generation request
            output_quality: JPEG quality of the stored processed image
        """
        self.validator = validator
        self.detector = detector
        self.normalizer = normalizer
        self.client = client
        self.retry_policy = retry_policy or RetryPolicy()
        self.mask_builder = mask_builder or MaskBuilder()
        self.use_mask = use_mask
        self.output_quality = output_quality

        self._graph = self._build_graph()

        logger.info(f"ProcessingGraph initialized: use_mask={use_mask}")

    def _build_graph(self):
        """Build the LangGraph workflow."""
        workflow = StateGraph(PipelineState)

        workflow.add_node("validate", self._validate_node)
        workflow.add_node("detect", self._detect_node)
        workflow.add_node("prepare", self._prepare_node)
        workflow.add_node("generate", self._generate_node)
        workflow.add_node("complete", self._complete_node)
        workflow.add_node("fail", self._fail_node)

        workflow.set_entry_point("validate")

        stages = ["validate", "detect", "prepare", "generate", "complete"]
        for stage, following in zip(stages, stages[1:] + [END]):
            workflow.add_conditional_edges(
                stage,
                self._route,
                {"continue": following, "fail": "fail"},
            )
        workflow.add_edge("fail", END)

        return workflow.compile()

    @staticmethod
    def _route(state: PipelineState) -> str:
        return "fail" if state.get("error") is not None else "continue"

    async def _guarded(self, stage: str, step: StageFn, state: PipelineState) -> Dict[str, Any]:
        """Run a stage, converting failures into the `error` channel."""
        try:
            return await step(state)
        except PipelineError as e:
            logger.warning(
                f"[{state['result'].id}] {stage} failed: {e.kind.value}: {e.message}"
            )
            return {"error": e}
        except Exception as e:
            logger.exception(f"[{state['result'].id}] {stage} raised unexpectedly")
            return {"error": ProcessingFailedError(f"Failed to process the image: {e}")}

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    async def _validate(self, state: PipelineState) -> Dict[str, Any]:
        source = state["source"]
        if isinstance(source, RawImage):
            image = source
        else:
            image = await asyncio.to_thread(decode_image, bytes(source))

        self.validator.validate(image).raise_for_invalid()

        result = state["result"].start()
        logger.info(f"[{result.id}] Image accepted: {image.width}x{image.height}")
        return {"image": image, "result": result}

    async def _detect(self, state: PipelineState) -> Dict[str, Any]:
        upright = await asyncio.to_thread(self.normalizer.normalize_orientation, state["image"])
        observations = await asyncio.to_thread(detect_hands, self.detector, upright)

        if not observations:
            raise NoHandsDetectedError()

        logger.info(f"[{state['result'].id}] Detected {len(observations)} hand(s)")
        return {"image": upright, "observations": observations}

    async def _prepare(self, state: PipelineState) -> Dict[str, Any]:
        observations = state["observations"]
        prepared = await asyncio.to_thread(
            self.normalizer.prepare_for_generation,
            state["image"],
            observations,
        )

        mask = None
        if self.use_mask:
            width, height = prepared.source_size or prepared.image.size
            mask = await asyncio.to_thread(
                self.mask_builder.build_for_size, width, height, observations
            )
            if prepared.crop_box is not None:
                mask = crop_pixels(mask, prepared.crop_box)

        return {"prepared": GenerationInput(image=prepared.image, mask=mask)}

    async def _generate(self, state: PipelineState) -> Dict[str, Any]:
        prepared = state["prepared"]
        prompt = build_prompt(state["design"])

        generated = await self.retry_policy.run(
            lambda: self.client.generate(prompt, prepared.image, prepared.mask)
        )

        logger.info(
            f"[{state['result'].id}] Generated image: {generated.width}x{generated.height}"
        )
        return {"generated": generated}

    async def _complete(self, state: PipelineState) -> Dict[str, Any]:
        processed = await asyncio.to_thread(
            compress_jpeg, state["generated"], self.output_quality
        )
        return {"result": state["result"].complete(processed)}

    # -------------------------------------------------------------------------
    # Nodes
    # -------------------------------------------------------------------------

    async def _validate_node(self, state: PipelineState) -> Dict[str, Any]:
        return await self._guarded("validate", self._validate, state)

    async def _detect_node(self, state: PipelineState) -> Dict[str, Any]:
        return await self._guarded("detect", self._detect, state)

    async def _prepare_node(self, state: PipelineState) -> Dict[str, Any]:
        return await self._guarded("prepare", self._prepare, state)

    async def _generate_node(self, state: PipelineState) -> Dict[str, Any]:
        return await self._guarded("generate", self._generate, state)

    async def _complete_node(self, state: PipelineState) -> Dict[str, Any]:
        return await self._guarded("complete", self._complete, state)

    async def _fail_node(self, state: PipelineState) -> Dict[str, Any]:
        error = state["error"]
        result = state["result"].fail(error.kind, error.message)
        return {"result": result}

    # -------------------------------------------------------------------------
    # Entry
    # -------------------------------------------------------------------------

    async def run(
        self,
        source: Union[RawImage, bytes],
        design: DesignDescriptor,
        result: ProcessingResult,
    ) -> ProcessingResult:
        """
        Run the graph for one image.

        Args:
            source: Submitted image
            design: Design to apply
            result: PENDING result record for this request

        Returns:
            Terminal ProcessingResult (COMPLETED or FAILED)
        """
        final = await self._graph.ainvoke(create_initial_state(source, design, result))
        return final["result"]
