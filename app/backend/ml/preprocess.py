from typing import Any, Optional, Sequence

import numpy as np

NUM_LANDMARKS = 21
FEATURE_SIZE = NUM_LANDMARKS * 2
MIN_SCALE = 1e-6


def _point_xy(p: Any) -> tuple[float, float]:
    if isinstance(p, dict):
        return float(p["x"]), float(p["y"])
    if hasattr(p, "x") and hasattr(p, "y"):
        # NormalizedLandmark из MediaPipe
        return float(p.x), float(p.y)
    return float(p[0]), float(p[1])


def landmarks_to_xy(landmarks: Sequence[Any]) -> np.ndarray:
    """
    landmarks: 21 точка в любом виде -> np.ndarray (21, 2)
    z, если есть, отбрасывается.
    """
    pts = np.asarray([_point_xy(p) for p in landmarks], dtype=np.float64)
    if pts.shape != (NUM_LANDMARKS, 2):
        raise ValueError(
            f"expected {NUM_LANDMARKS} landmarks, got {len(landmarks)}"
        )
    return pts


def normalize_landmarks(landmarks: Optional[Sequence[Any]]) -> Optional[np.ndarray]:
    """
    Translation- and scale-invariant feature vector for one hand.

    Landmarks are shifted so the wrist (index 0) is the origin, flattened as
    x0, y0, x1, y1, ... and divided by the largest absolute value. Returns
    None when there is no hand.
    """
    if landmarks is None or len(landmarks) == 0:
        return None

    pts = landmarks_to_xy(landmarks)
    flat = (pts - pts[0]).reshape(-1)

    scale = max(float(np.max(np.abs(flat))), MIN_SCALE)
    return flat / scale
