import pytest

pytest.importorskip("mediapipe")

from app.backend.ml.detector import HandDetector  # noqa: E402


def test_task_path_must_be_configured(monkeypatch):
    monkeypatch.delenv("GESTU_HAND_TASK_PATH", raising=False)
    with pytest.raises(FileNotFoundError, match="not configured"):
        HandDetector._resolve_model_path(None)


def test_explicit_task_path_must_exist(tmp_path):
    with pytest.raises(FileNotFoundError, match="not found"):
        HandDetector._resolve_model_path(str(tmp_path / "hand_landmarker.task"))


def test_task_path_from_env(tmp_path, monkeypatch):
    task = tmp_path / "hand_landmarker.task"
    task.write_bytes(b"")
    monkeypatch.setenv("GESTU_HAND_TASK_PATH", str(task))

    assert HandDetector._resolve_model_path(None) == task.resolve()


def test_explicit_path_wins_over_env(tmp_path, monkeypatch):
    task = tmp_path / "explicit.task"
    task.write_bytes(b"")
    monkeypatch.setenv("GESTU_HAND_TASK_PATH", str(tmp_path / "missing.task"))

    assert HandDetector._resolve_model_path(str(task)) == task.resolve()
