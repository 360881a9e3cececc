class GestureError(Exception):
    """Base class for everything the recognition pipeline reports."""

    code = "gesture_error"


class ConfigError(GestureError, ValueError):
    code = "config_error"


class ModelLoadError(GestureError):
    """Classifier asset is missing, unreadable or does not accept 42 features."""

    code = "model_load_error"


class ModelNotLoaded(GestureError):
    code = "model_not_loaded"


class InferenceError(GestureError):
    """Every calling convention of the classifier failed."""

    code = "inference_error"

    def __init__(self, message: str, attempts: list[tuple[str, str]] | None = None):
        super().__init__(message)
        self.attempts = attempts or []


class LabelResourceMissing(GestureError):
    code = "label_resource_missing"
