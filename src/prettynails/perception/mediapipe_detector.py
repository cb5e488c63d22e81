"""
MediaPipe Hand Detector
=======================

Production hand-pose backend using MediaPipe Hands.

This detector:
    - Runs MediaPipe Hands in static-image mode
    - Maps the 21 landmarks onto JointName in landmark order
    - Uses the hand's handedness score as each keypoint's confidence
      (MediaPipe reports no per-landmark confidence for hands)
    - Serializes calls; the MediaPipe graph is not thread-safe

Design Rules:
    - Fail fast on missing dependency at construction
    - Never raise from detect(); errors become "no hands"
"""

import logging
import threading
from typing import List

import cv2

from prettynails.models.hand import HandObservation, JointName, Keypoint
from prettynails.models.image import RawImage


logger = logging.getLogger(__name__)


JOINT_ORDER = list(JointName)


def _clamp_unit(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


class MediaPipeHandDetector:
    """
    Hand detector backed by MediaPipe Hands.

    Attributes:
        max_hands: Maximum hands reported per image
        min_detection_confidence: MediaPipe detection threshold
    """

    def __init__(
        self,
        max_hands: int = 2,
        min_detection_confidence: float = 0.5,
    ) -> None:
        """
        Initialize the MediaPipe graph.

        Raises:
            ImportError: If mediapipe is not installed
        """
        self.max_hands = max_hands
        self.min_detection_confidence = min_detection_confidence
        self._lock = threading.Lock()
        self._detection_count = 0
        self._error_count = 0

        try:
            import mediapipe as mp
        except ImportError:
            raise ImportError(
                "mediapipe is required for MediaPipeHandDetector. "
                "Install with: pip install 'prettynails[hands]'"
            )

        self._hands = mp.solutions.hands.Hands(
            static_image_mode=True,
            max_num_hands=max_hands,
            min_detection_confidence=min_detection_confidence,
        )

        logger.info(
            f"MediaPipeHandDetector initialized: max_hands={max_hands}, "
            f"min_detection_confidence={min_detection_confidence}"
        )

    def detect(self, image: RawImage) -> List[HandObservation]:
        """
        Detect hands in an upright image.

        Args:
            image: Image with BGR pixels

        Returns:
            One HandObservation per detected hand (possibly empty)
        """
        if image.width == 0 or image.height == 0:
            return []

        try:
            rgb = cv2.cvtColor(image.pixels, cv2.COLOR_BGR2RGB)
            with self._lock:
                results = self._hands.process(rgb)
                self._detection_count += 1
        except Exception as e:
            self._error_count += 1
            logger.error(f"MediaPipe hand detection failed: {e}")
            return []

        hands = results.multi_hand_landmarks or []
        handedness = results.multi_handedness or []

        observations = []
        for index, landmarks in enumerate(hands):
            score = 1.0
            label = None
            if index < len(handedness) and handedness[index].classification:
                classification = handedness[index].classification[0]
                score = _clamp_unit(classification.score)
                label = classification.label

            keypoints = tuple(
                Keypoint(
                    joint=JOINT_ORDER[i],
                    x=_clamp_unit(lm.x),
                    y=_clamp_unit(lm.y),
                    confidence=score,
                )
                for i, lm in enumerate(landmarks.landmark[:len(JOINT_ORDER)])
            )
            observations.append(HandObservation(keypoints=keypoints, handedness=label))

        logger.debug(f"MediaPipe detected {len(observations)} hand(s)")
        return observations

    def close(self) -> None:
        """Release the MediaPipe graph."""
        self._hands.close()

    def get_metrics(self) -> dict:
        """Get detector metrics for observability."""
        return {
            "detection_count": self._detection_count,
            "error_count": self._error_count,
        }
