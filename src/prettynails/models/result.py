"""
Processing Result Model
=======================

Terminal record of one image's run through the pipeline.

State Machine:
    PENDING → PROCESSING → {COMPLETED | FAILED}
    PENDING → FAILED (rejected before processing starts)

    Transitions only move forward. Each transition returns a NEW
    ProcessingResult with the same id; instances are never mutated.

Invariants:
    - processed_image is set if and only if status == COMPLETED
    - error_message and error_kind are set if and only if status == FAILED

Wire Form:
    {
        "id": "6f1c...",
        "design_id": "classic-red",
        "timestamp": "2026-10-19T10:00:00+00:00",
        "status": "completed",
        "original_image": "<base64>",
        "processed_image": "<base64>",
        "error_kind": null,
        "error_message": null
    }
"""

import base64
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from prettynails.models.design import DesignDescriptor
from prettynails.models.errors import ErrorKind
from prettynails.models.image import RawImage


class ProcessingStatus(str, Enum):
    """Lifecycle states of a processing request."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessingStatus.COMPLETED, ProcessingStatus.FAILED)

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    ProcessingStatus.PENDING: "Waiting",
    ProcessingStatus.PROCESSING: "Processing",
    ProcessingStatus.COMPLETED: "Complete",
    ProcessingStatus.FAILED: "Failed",
}

_ALLOWED_TRANSITIONS = {
    ProcessingStatus.PENDING: {ProcessingStatus.PROCESSING, ProcessingStatus.FAILED},
    ProcessingStatus.PROCESSING: {ProcessingStatus.COMPLETED, ProcessingStatus.FAILED},
    ProcessingStatus.COMPLETED: set(),
    ProcessingStatus.FAILED: set(),
}


class InvalidTransitionError(ValueError):
    """Raised when a status transition would move backwards or out of a terminal state."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ProcessingResult(BaseModel):
    """
    Immutable processing record.

    Attributes:
        id: Stable identifier for the lifetime of the request
        original_image: Encoded bytes of the submitted photo
        processed_image: Encoded bytes of the edited photo (COMPLETED only)
        design_id: Identifier of the applied design
        timestamp: Creation time of the request (UTC)
        status: Current lifecycle state
        error_kind: Machine-readable failure code (FAILED only)
        error_message: Human-readable failure description (FAILED only)
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    original_image: bytes = b""
    processed_image: Optional[bytes] = None
    design_id: str
    timestamp: datetime = Field(default_factory=_now)
    status: ProcessingStatus = ProcessingStatus.PENDING
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None

    @model_validator(mode="after")
    def _check_invariants(self) -> "ProcessingResult":
        completed = self.status == ProcessingStatus.COMPLETED
        failed = self.status == ProcessingStatus.FAILED
        if completed != (self.processed_image is not None):
            raise ValueError("processed_image must be set exactly when status is completed")
        if failed != (self.error_message is not None):
            raise ValueError("error_message must be set exactly when status is failed")
        if failed != (self.error_kind is not None):
            raise ValueError("error_kind must be set exactly when status is failed")
        return self

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def _transition(self, status: ProcessingStatus, **changes: Any) -> "ProcessingResult":
        if status not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Cannot move result {self.id} from {self.status.value} to {status.value}"
            )
        data = self.model_dump()
        data.update(changes, status=status)
        return ProcessingResult.model_validate(data)

    def start(self) -> "ProcessingResult":
        """PENDING → PROCESSING."""
        return self._transition(ProcessingStatus.PROCESSING)

    def complete(self, processed_image: bytes) -> "ProcessingResult":
        """PROCESSING → COMPLETED with the edited image."""
        return self._transition(ProcessingStatus.COMPLETED, processed_image=processed_image)

    def fail(self, kind: ErrorKind, message: str) -> "ProcessingResult":
        """PENDING/PROCESSING → FAILED with a description."""
        return self._transition(
            ProcessingStatus.FAILED,
            error_kind=kind,
            error_message=message,
        )

    # -------------------------------------------------------------------------
    # Wire form
    # -------------------------------------------------------------------------

    def to_wire(self) -> Dict[str, Any]:
        """Encode as a JSON-compatible dict with base64 image payloads."""
        return {
            "id": self.id,
            "design_id": self.design_id,
            "timestamp": self.timestamp.isoformat(),
            "status": self.status.value,
            "original_image": base64.b64encode(self.original_image).decode("ascii"),
            "processed_image": (
                base64.b64encode(self.processed_image).decode("ascii")
                if self.processed_image is not None
                else None
            ),
            "error_kind": self.error_kind.value if self.error_kind else None,
            "error_message": self.error_message,
        }

    @classmethod
    def from_wire(cls, payload: Dict[str, Any]) -> "ProcessingResult":
        """Decode the dict produced by `to_wire`."""
        processed = payload.get("processed_image")
        return cls.model_validate({
            "id": payload["id"],
            "design_id": payload["design_id"],
            "timestamp": payload["timestamp"],
            "status": payload["status"],
            "original_image": base64.b64decode(payload.get("original_image") or ""),
            "processed_image": base64.b64decode(processed) if processed is not None else None,
            "error_kind": payload.get("error_kind"),
            "error_message": payload.get("error_message"),
        })

    def __repr__(self) -> str:
        return (
            f"ProcessingResult(id={self.id}, design={self.design_id}, "
            f"status={self.status.value}, error={self.error_kind})"
        )


@dataclass(frozen=True)
class ProcessingRequest:
    """Unit of work submitted to the orchestrator."""

    image: Union[RawImage, bytes]
    design: DesignDescriptor
