import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Optional, Sequence

import numpy as np

from .adapter import InferenceFailure
from .confirmation import (
    Confirmation,
    ConfirmationState,
    advance,
    on_no_hand,
    remaining_seconds,
)
from .errors import GestureError
from .labels import LabelResolver
from .preprocess import landmarks_to_xy, normalize_landmarks

logger = logging.getLogger("gesture_ml")


@dataclass(frozen=True)
class Prediction:
    class_index: int
    score: float
    label: str
    scores: list[float]


@dataclass
class SessionContext:
    """Per-connection state: counter, cached labels and captured text."""

    labels: LabelResolver
    confirmation: ConfirmationState = field(default_factory=ConfirmationState)
    running: bool = True
    captured: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(self.captured)


@dataclass
class FrameResult:
    type: str  # prediction | no_hand | error
    class_index: Optional[int] = None
    score: Optional[float] = None
    label: Optional[str] = None
    frames: int = 0
    required_frames: int = 0
    remaining_seconds: int = 0
    captured: Optional[Confirmation] = None
    error: Optional[str] = None
    message: Optional[str] = None
    landmarks: Optional[list[list[float]]] = None

    def to_dict(self) -> dict:
        out = asdict(self)
        if self.captured is not None:
            out["captured"] = {"label": self.captured.label, "index": self.captured.class_index}
        return out


class GesturePipeline:
    """
    normalize -> classify -> argmax -> label -> confirmation, for one frame.

    Nothing raised inside `process` escapes it: every failure becomes an
    "error" FrameResult and the session keeps its state for the next frame.
    """

    def __init__(self, runtime, settings):
        self.runtime = runtime
        self.settings = settings

    def new_session(self) -> SessionContext:
        return SessionContext(labels=LabelResolver(self.settings.labels_path))

    def predict(self, session: SessionContext, landmarks: Sequence[Any]) -> Optional[Prediction]:
        features = normalize_landmarks(landmarks)
        if features is None:
            return None

        result = self.runtime.classify(features)
        if isinstance(result, InferenceFailure):
            raise result.error

        scores = result.scores
        idx = int(np.argmax(scores))
        return Prediction(
            class_index=idx,
            score=float(scores[idx]),
            label=session.labels.resolve(idx),
            scores=[float(v) for v in scores],
        )

    def process(self, session: SessionContext, hands: Optional[Sequence[Sequence[Any]]]) -> FrameResult:
        """hands: detected hands for this frame (only the first one is used) or None."""
        required = self.settings.required_frames
        rate = self.settings.frame_rate

        try:
            hand = _first_hand(hands)
            if hand is None:
                session.confirmation = on_no_hand(session.confirmation, self.settings.no_hand_policy)
                return FrameResult(
                    type="no_hand",
                    frames=session.confirmation.count,
                    required_frames=required,
                    remaining_seconds=remaining_seconds(session.confirmation.count, required, rate),
                )

            pred = self.predict(session, hand)
            xy = landmarks_to_xy(hand).tolist()
        except GestureError as e:
            logger.error("Prediction error: %s", e)
            return FrameResult(type="error", error=e.code, message=str(e), required_frames=required)
        except (ValueError, TypeError, KeyError, IndexError) as e:
            logger.warning("bad landmarks: %s", e)
            return FrameResult(type="error", error="bad_landmarks", message=str(e), required_frames=required)

        session.confirmation, confirmed = advance(
            session.confirmation, pred.label, pred.class_index, required
        )
        count = confirmed.frames if confirmed else session.confirmation.count

        if confirmed:
            session.captured.append(confirmed.label)
            logger.info("Captured letter %s (index %d)", confirmed.label, confirmed.class_index)

        return FrameResult(
            type="prediction",
            class_index=pred.class_index,
            score=pred.score,
            label=pred.label,
            frames=count,
            required_frames=required,
            remaining_seconds=remaining_seconds(count, required, rate),
            captured=confirmed,
            landmarks=xy,
        )



def _first_hand(hands: Optional[Sequence[Sequence[Any]]]) -> Optional[Sequence[Any]]:
    """First hand of the frame, or None when nothing was detected. Raises TypeError for non-sequences."""
    if hands is None or len(hands) == 0:
        return None
    hand = hands[0]
    if hand is None or len(hand) == 0:
        return None
    return hand
