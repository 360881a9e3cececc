import logging
from collections.abc import Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, Sequence, Union

import numpy as np

from .errors import InferenceError

logger = logging.getLogger("gesture_ml")


@dataclass(frozen=True)
class NumericSequence:
    """Scores returned by the vector-in / vector-out convention."""

    values: tuple[float, ...]

    @property
    def scores(self) -> np.ndarray:
        return np.asarray(self.values, dtype=np.float32)

    def unwrap(self) -> np.ndarray:
        return self.scores


@dataclass(frozen=True)
class TypedBuffer:
    """Scores returned by the typed-buffer convention."""

    buffer: np.ndarray

    @property
    def scores(self) -> np.ndarray:
        return self.buffer

    def unwrap(self) -> np.ndarray:
        return self.buffer


@dataclass(frozen=True)
class InferenceFailure:
    error: InferenceError

    @property
    def scores(self) -> None:
        return None

    def unwrap(self) -> np.ndarray:
        raise self.error


ScoreResult = Union[NumericSequence, TypedBuffer, InferenceFailure]


@contextmanager
def input_buffer(features: Sequence[float]) -> Iterator[np.ndarray]:
    """float32 [1, N] buffer that lives only for the duration of one call."""
    buf = np.ascontiguousarray(np.asarray(features, dtype=np.float32).reshape(1, -1))
    try:
        yield buf
    finally:
        buf.fill(0.0)
        del buf


def _as_scores(out: Any) -> np.ndarray:
    # outputs must not alias the input buffer, it is wiped on exit
    if hasattr(out, "numpy") and callable(out.numpy):
        out = out.numpy()
    scores = np.array(out, dtype=np.float32, copy=True).reshape(-1)
    if scores.size == 0:
        raise ValueError("model returned an empty score vector")
    return scores


class PredictStrategy:
    """model.predict(tensor[1, 42]) -> tensor / array."""

    name = "predict"

    def supports(self, model: Any) -> bool:
        return callable(getattr(model, "predict", None))

    def __call__(self, model: Any, features: Sequence[float]) -> ScoreResult:
        with input_buffer(features) as batch:
            scores = _as_scores(model.predict(batch))
        return NumericSequence(tuple(float(v) for v in scores))


class RunStrategy:
    """
    model.run(...) с типизированным буфером.

    ONNX Runtime sessions get the buffer under their first input name and
    answer with a list of outputs; other runtimes take the buffer directly and
    may answer with a buffer or a mapping of named outputs. Either way the
    first output is the score vector.
    """

    name = "run"

    def supports(self, model: Any) -> bool:
        return callable(getattr(model, "run", None))

    def __call__(self, model: Any, features: Sequence[float]) -> ScoreResult:
        with input_buffer(features) as batch:
            if callable(getattr(model, "get_inputs", None)):
                input_name = model.get_inputs()[0].name
                out = model.run(None, {input_name: batch})
            else:
                out = model.run(batch)
            scores = _as_scores(self._first_output(out))
        return TypedBuffer(scores)

    @staticmethod
    def _first_output(out: Any) -> Any:
        if isinstance(out, Mapping):
            if not out:
                raise ValueError("model returned an empty output mapping")
            return next(iter(out.values()))
        if isinstance(out, (list, tuple)) and out and np.ndim(out[0]) >= 1:
            return out[0]
        return out


@dataclass
class InferenceAdapter:
    strategies: list = field(default_factory=lambda: [PredictStrategy(), RunStrategy()])

    def classify(self, model: Any, features: Sequence[float]) -> ScoreResult:
        attempts: list[tuple[str, str]] = []

        for strategy in self.strategies:
            if not strategy.supports(model):
                attempts.append((strategy.name, "not supported"))
                continue
            try:
                return strategy(model, features)
            except Exception as e:
                logger.warning("%s() failed, trying next: %s", strategy.name, e)
                attempts.append((strategy.name, str(e)))

        err = InferenceError("Prediction failed: model API mismatch", attempts=attempts)
        logger.error("%s (%s)", err, "; ".join(f"{n}: {m}" for n, m in attempts))
        return InferenceFailure(err)
