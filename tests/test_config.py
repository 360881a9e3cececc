import pytest

from app.backend.config import load_settings
from app.backend.ml.confirmation import NoHandPolicy
from app.backend.ml.errors import ConfigError

CONFIG = """
model:
  weights: models/kp.onnx
  labels: models/kp_label.csv
confirmation:
  required_frames: 90
  frame_rate: 15
  no_hand: reset
hands:
  max_num_hands: 2
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "GESTU_CONFIG", "GESTU_MODEL_PATH", "GESTU_LABELS_PATH",
        "GESTU_REQUIRED_FRAMES", "GESTU_FRAME_RATE", "GESTU_NO_HAND_POLICY",
        "GESTU_WS_INFER_EVERY_MS", "GESTU_WS_DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)


def test_bundled_defaults():
    s = load_settings()

    assert s.required_frames == 150
    assert s.frame_rate == 30
    assert s.no_hand_policy is NoHandPolicy.FREEZE
    assert s.model_path.name == "keypoint_classifier.onnx"
    assert s.labels_path.exists()
    assert s.min_detection_confidence == 0.6


def test_file_values_and_relative_paths(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text(CONFIG, encoding="utf-8")
    s = load_settings(str(path))

    assert s.required_frames == 90
    assert s.frame_rate == 15
    assert s.no_hand_policy is NoHandPolicy.RESET
    assert s.max_num_hands == 2
    assert s.model_path == (tmp_path / "models" / "kp.onnx").resolve()


def test_env_overrides(tmp_path, monkeypatch):
    path = tmp_path / "config.yml"
    path.write_text(CONFIG, encoding="utf-8")
    monkeypatch.setenv("GESTU_CONFIG", str(path))
    monkeypatch.setenv("GESTU_REQUIRED_FRAMES", "30")
    monkeypatch.setenv("GESTU_NO_HAND_POLICY", "freeze")
    monkeypatch.setenv("GESTU_MODEL_PATH", str(tmp_path / "other.onnx"))

    s = load_settings()
    assert s.required_frames == 30
    assert s.no_hand_policy is NoHandPolicy.FREEZE
    assert s.model_path == tmp_path / "other.onnx"


@pytest.mark.parametrize("text", [
    "confirmation: {required_frames: 0}",
    "confirmation: {frame_rate: -1}",
    "confirmation: {no_hand: decay}",
    "confirmation: {required_frames: lots}",
])
def test_invalid_values(tmp_path, text):
    path = tmp_path / "config.yml"
    path.write_text(text, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_settings(str(path))


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigError):
        load_settings(str(tmp_path / "nope.yml"))
