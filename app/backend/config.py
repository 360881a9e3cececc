import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from app.backend.ml.confirmation import NoHandPolicy
from app.backend.ml.errors import ConfigError

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "ml" / "keypoint" / "config.yml"


@dataclass
class Settings:
    model_path: Optional[Path] = None
    labels_path: Optional[Path] = None
    providers: list[str] = field(default_factory=lambda: ["CPUExecutionProvider"])

    required_frames: int = 150
    frame_rate: int = 30
    no_hand_policy: NoHandPolicy = NoHandPolicy.FREEZE

    hand_task_path: Optional[Path] = None
    max_num_hands: int = 1
    min_detection_confidence: float = 0.6
    min_presence_confidence: float = 0.5
    min_tracking_confidence: float = 0.5

    infer_every_ms: int = 0
    ping_interval_s: float = 10.0
    debug_ws: bool = False

    def validate(self) -> "Settings":
        if self.required_frames < 1:
            raise ConfigError(f"required_frames must be >= 1, got {self.required_frames}")
        if self.frame_rate < 1:
            raise ConfigError(f"frame_rate must be >= 1, got {self.frame_rate}")
        if self.max_num_hands < 1:
            raise ConfigError(f"max_num_hands must be >= 1, got {self.max_num_hands}")
        if self.infer_every_ms < 0:
            raise ConfigError(f"infer_every_ms must be >= 0, got {self.infer_every_ms}")
        return self


def _resolve(base_dir: Path, value: Optional[str]) -> Optional[Path]:
    if not value:
        return None
    p = Path(value).expanduser()
    return p if p.is_absolute() else (base_dir / p).resolve()


def _policy(value: str) -> NoHandPolicy:
    try:
        return NoHandPolicy(str(value).strip().lower())
    except ValueError:
        raise ConfigError(f"unknown no_hand policy: {value!r}") from None


def _load_yaml(path: Path) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"cannot read config {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"bad config {path}: {e}") from e


def load_settings(path: Optional[str] = None) -> Settings:
    """
    Settings from config.yml with GESTU_* environment overrides.

    Priority for the config file itself:
      1) explicit argument
      2) env GESTU_CONFIG
      3) ml/keypoint/config.yml
    Relative paths inside the file are taken relative to the file.
    """
    config_path = Path(path or os.getenv("GESTU_CONFIG", "") or DEFAULT_CONFIG_PATH).expanduser()
    cfg = _load_yaml(config_path)
    base_dir = config_path.resolve().parent

    model = cfg.get("model") or {}
    conf = cfg.get("confirmation") or {}
    hands = cfg.get("hands") or {}
    stream = cfg.get("stream") or {}

    try:
        settings = Settings(
            model_path=_resolve(base_dir, os.getenv("GESTU_MODEL_PATH") or model.get("weights")),
            labels_path=_resolve(base_dir, os.getenv("GESTU_LABELS_PATH") or model.get("labels")),
            providers=list(model.get("providers") or ["CPUExecutionProvider"]),
            required_frames=int(os.getenv("GESTU_REQUIRED_FRAMES") or conf.get("required_frames", 150)),
            frame_rate=int(os.getenv("GESTU_FRAME_RATE") or conf.get("frame_rate", 30)),
            no_hand_policy=_policy(os.getenv("GESTU_NO_HAND_POLICY") or conf.get("no_hand", "freeze")),
            hand_task_path=_resolve(base_dir, hands.get("task")),
            max_num_hands=int(hands.get("max_num_hands", 1)),
            min_detection_confidence=float(hands.get("min_detection_confidence", 0.6)),
            min_presence_confidence=float(hands.get("min_presence_confidence", 0.5)),
            min_tracking_confidence=float(hands.get("min_tracking_confidence", 0.5)),
            infer_every_ms=int(os.getenv("GESTU_WS_INFER_EVERY_MS") or stream.get("infer_every_ms", 0)),
            ping_interval_s=float(stream.get("ping_interval_s", 10.0)),
            debug_ws=os.getenv("GESTU_WS_DEBUG", "0") == "1",
        )
    except (TypeError, ValueError) as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(f"bad value in {config_path}: {e}") from e

    return settings.validate()
