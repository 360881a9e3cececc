import csv
import logging
from pathlib import Path
from typing import Optional, Sequence

from .errors import LabelResourceMissing

logger = logging.getLogger("gesture_ml")

# латинские коды классов -> буквы украинского алфавита
TRANSLITERATION = {
    "V": "В", "Y": "У", "R": "Р", "A": "А", "YA": "Я", "N": "Н",
    "I": "І", "T": "Т", "U": "И", "P": "П", "G": "Г", "E": "Е",
    "Z": "Ж", "L": "Л", "M": "М", "O": "О", "C": "С", "F": "Ф",
    "SH": "Ш", "YU": "Ю", "X": "Х", "CH": "Ч", "B": "Б",
}


def load_label_table(path: Optional[Path]) -> list[str]:
    """One label per line; only the first CSV column counts, blank lines are skipped."""
    if path is None:
        raise LabelResourceMissing("labels path is not configured")

    try:
        with open(path, "r", encoding="utf-8-sig", newline="") as f:
            rows = list(csv.reader(f))
    except (OSError, UnicodeDecodeError) as e:
        raise LabelResourceMissing(f"cannot read labels {path}: {e}") from e

    return [row[0].strip() for row in rows if row and row[0].strip()]


def resolve_label(labels: Optional[Sequence[str]], class_index: int) -> str:
    if not labels or not 0 <= class_index < len(labels):
        return str(class_index)

    raw = labels[class_index]
    return TRANSLITERATION.get(raw.upper(), raw)


class LabelResolver:
    """Lazily loads the label table once and keeps it (or the failure) cached."""

    def __init__(self, path: Optional[Path]):
        self.path = Path(path) if path else None
        self._labels: Optional[list[str]] = None
        self._loaded = False

    @property
    def labels(self) -> Optional[list[str]]:
        if not self._loaded:
            self._loaded = True
            try:
                self._labels = load_label_table(self.path)
                logger.info("labels loaded: %d from %s", len(self._labels), self.path)
            except LabelResourceMissing as e:
                logger.warning("No labels file found, using class indices: %s", e)
                self._labels = None
        return self._labels

    def resolve(self, class_index: int) -> str:
        return resolve_label(self.labels, class_index)
