import logging
from pathlib import Path
from typing import Any, Optional, Sequence

import numpy as np
import onnxruntime as ort

from .adapter import InferenceAdapter, InferenceFailure, ScoreResult
from .errors import ModelLoadError, ModelNotLoaded
from .preprocess import FEATURE_SIZE

logger = logging.getLogger("gesture_ml")


class ClassifierRuntime:
    """
    Holds the keypoint classifier for the whole process.

    A failed load leaves the runtime in an error state instead of raising, so
    the service keeps running and reports the failure until `reload()` works.
    """

    def __init__(
        self,
        model_path: Optional[Path] = None,
        providers: Optional[Sequence[str]] = None,
        adapter: Optional[InferenceAdapter] = None,
    ):
        self.model_path = Path(model_path) if model_path else None
        self.providers = list(providers or ["CPUExecutionProvider"])
        self.adapter = adapter or InferenceAdapter()

        self.model: Any = None
        self.error: Optional[str] = None
        self.num_classes: Optional[int] = None

    @classmethod
    def from_settings(cls, settings) -> "ClassifierRuntime":
        runtime = cls(settings.model_path, providers=settings.providers)
        runtime.try_load()
        return runtime

    @classmethod
    def from_model(cls, model: Any, adapter: Optional[InferenceAdapter] = None) -> "ClassifierRuntime":
        runtime = cls(adapter=adapter)
        runtime._attach(model)
        return runtime

    @property
    def loaded(self) -> bool:
        return self.model is not None

    def load(self) -> None:
        if self.model_path is None:
            raise ModelLoadError("model path is not configured")
        if not self.model_path.exists():
            raise ModelLoadError(f"model not found: {self.model_path}")

        try:
            session = ort.InferenceSession(str(self.model_path), providers=self.providers)
        except Exception as e:
            raise ModelLoadError(f"cannot load {self.model_path}: {e}") from e

        self._attach(session)
        logger.info("classifier loaded: %s (%s classes)", self.model_path, self.num_classes)

    def try_load(self) -> bool:
        try:
            self.load()
        except ModelLoadError as e:
            self.model = None
            self.num_classes = None
            self.error = str(e)
            logger.error("model load failed: %s", e)
            return False
        return True

    def reload(self) -> bool:
        self.model = None
        self.num_classes = None
        self.error = None
        return self.try_load()

    def _attach(self, model: Any) -> None:
        warm = self._warmup(model)
        self.model = model
        self.num_classes = int(warm.size)
        self.error = None

    def _warmup(self, model: Any) -> np.ndarray:
        result = self.adapter.classify(model, np.zeros(FEATURE_SIZE, dtype=np.float32))
        if isinstance(result, InferenceFailure):
            raise ModelLoadError(f"model rejected a {FEATURE_SIZE}-feature input") from result.error
        return result.scores

    def classify(self, features: Sequence[float]) -> ScoreResult:
        if self.model is None:
            raise ModelNotLoaded(self.error or "no model loaded")
        return self.adapter.classify(self.model, features)

    def status(self) -> dict:
        return {
            "loaded": self.loaded,
            "path": str(self.model_path) if self.model_path else None,
            "error": self.error,
            "num_classes": self.num_classes,
        }
