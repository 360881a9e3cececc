import numpy as np
import pytest
from fastapi.testclient import TestClient

from app.backend.api.app import app
from app.backend.api.deps import get_runtime, get_settings
from app.backend.config import Settings
from app.backend.ml.pipeline import GesturePipeline
from app.backend.ml.runtime import ClassifierRuntime


def make_hand(offset=(0.0, 0.0), scale=1.0, seed=0):
    """21 landmarks shaped roughly like an open hand, wrist first."""
    rng = np.random.default_rng(seed)
    base = np.array([0.5, 0.8])
    pts = [base]
    for finger in range(5):
        angle = np.pi * (0.15 + 0.175 * finger)
        direction = np.array([np.cos(angle), -np.sin(angle)])
        for joint in range(1, 5):
            pts.append(base + direction * 0.06 * joint + rng.normal(0, 0.005, 2))
    pts = np.array(pts)
    pts = (pts - pts[0]) * scale + pts[0] + np.array(offset)
    return [[float(x), float(y), 0.0] for x, y in pts]


class PredictModel:
    """Tensor-in / tensor-out classifier with fixed scores."""

    def __init__(self, scores):
        self.scores = np.asarray(scores, dtype=np.float32)
        self.calls = 0

    def predict(self, batch):
        self.calls += 1
        assert batch.shape == (1, 42)
        return self.scores.reshape(1, -1)


class _Input:
    name = "input_1"


class OrtLikeModel:
    """Mimics onnxruntime.InferenceSession.run()."""

    def __init__(self, scores):
        self.scores = np.asarray(scores, dtype=np.float32)
        self.feeds = []

    def get_inputs(self):
        return [_Input()]

    def run(self, output_names, input_feed):
        self.feeds.append(input_feed)
        return [self.scores.reshape(1, -1)]


class BrokenModel:
    def predict(self, batch):
        raise RuntimeError("predict is broken")

    def run(self, batch):
        raise RuntimeError("run is broken")


class SwitchableModel(PredictModel):
    """Works during warm-up, then can be broken on demand."""

    broken = False

    def predict(self, batch):
        if self.broken:
            raise RuntimeError("predict is broken")
        return super().predict(batch)


@pytest.fixture
def labels_file(tmp_path):
    path = tmp_path / "labels.csv"
    path.write_text("V\nA\n", encoding="utf-8")
    return path


@pytest.fixture
def settings(labels_file):
    return Settings(
        model_path=None,
        labels_path=labels_file,
        required_frames=150,
        frame_rate=30,
        ping_interval_s=60.0,
    )


@pytest.fixture
def runtime():
    return ClassifierRuntime.from_model(PredictModel([0.9, 0.1]))


@pytest.fixture
def pipeline(runtime, settings):
    return GesturePipeline(runtime, settings)


@pytest.fixture
def client(settings, runtime):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_runtime] = lambda: runtime
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
