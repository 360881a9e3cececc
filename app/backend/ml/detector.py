from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Optional

import numpy as np
import mediapipe as mp


def lms_to_xyz(hand_landmarks):
    """hand_landmarks: список из 21 landmark -> [(x,y,z), ...]"""
    return [(lm.x, lm.y, lm.z) for lm in hand_landmarks]


class HandDetector:
    """
    MediaPipe Tasks hand landmarker in VIDEO mode.
    Stateful: timestamps have to grow monotonically, so one instance per stream.
    """
    def __init__(
        self,
        model_path: Optional[str] = None,
        num_hands: int = 1,
        min_hand_detection_confidence: float = 0.6,
        min_hand_presence_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
    ):
        self.model_path = self._resolve_model_path(model_path)
        self.num_hands = num_hands

        BaseOptions = mp.tasks.BaseOptions
        HandLandmarker = mp.tasks.vision.HandLandmarker
        HandLandmarkerOptions = mp.tasks.vision.HandLandmarkerOptions
        RunningMode = mp.tasks.vision.RunningMode

        options = HandLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=str(self.model_path)),
            running_mode=RunningMode.VIDEO,
            num_hands=num_hands,
            min_hand_detection_confidence=min_hand_detection_confidence,
            min_hand_presence_confidence=min_hand_presence_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )

        self._landmarker = HandLandmarker.create_from_options(options)
        self._last_ts_ms = 0

    @classmethod
    def from_settings(cls, settings) -> "HandDetector":
        return cls(
            model_path=str(settings.hand_task_path) if settings.hand_task_path else None,
            num_hands=settings.max_num_hands,
            min_hand_detection_confidence=settings.min_detection_confidence,
            min_hand_presence_confidence=settings.min_presence_confidence,
            min_tracking_confidence=settings.min_tracking_confidence,
        )

    def close(self) -> None:
        self._landmarker.close()

    @staticmethod
    def _resolve_model_path(model_path: Optional[str]) -> Path:
        """hands.task from config, otherwise env GESTU_HAND_TASK_PATH."""
        raw = model_path or os.getenv("GESTU_HAND_TASK_PATH", "").strip()
        if not raw:
            raise FileNotFoundError(
                "hand_landmarker.task is not configured: set hands.task in config.yml or GESTU_HAND_TASK_PATH"
            )
        p = Path(raw).expanduser().resolve()
        if not p.exists():
            raise FileNotFoundError(f"hand_landmarker.task not found: {p}")
        return p

    def _ensure_ts(self, ts_ms: int) -> int:
        # MediaPipe требует монотонно возрастающий timestamp_ms.
        if ts_ms <= self._last_ts_ms:
            ts_ms = self._last_ts_ms + 1
        self._last_ts_ms = ts_ms
        return ts_ms

    def detect_bgr(self, frame_bgr: np.ndarray, ts_ms: Optional[int] = None) -> list:
        """
        frame_bgr: np.ndarray (H,W,3), uint8
        Returns the detected hands, each a list of 21 (x, y, z) tuples in
        image-fraction coordinates; an empty list when there is no hand.
        """
        if ts_ms is None:
            ts_ms = int(time.monotonic() * 1000)
        ts_ms = self._ensure_ts(int(ts_ms))

        if frame_bgr is None or frame_bgr.ndim != 3 or frame_bgr.shape[2] != 3:
            return []

        # BGR -> RGB
        frame_rgb = frame_bgr[:, :, ::-1].copy()

        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=frame_rgb)
        result = self._landmarker.detect_for_video(mp_image, ts_ms)

        return [lms_to_xyz(hand) for hand in (result.hand_landmarks or [])]
