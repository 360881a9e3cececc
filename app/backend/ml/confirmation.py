from dataclasses import dataclass
from enum import Enum
from typing import Optional


class NoHandPolicy(str, Enum):
    FREEZE = "freeze"  # счётчик не трогаем
    RESET = "reset"


@dataclass(frozen=True)
class ConfirmationState:
    last_label: str = ""
    count: int = 0


@dataclass(frozen=True)
class Confirmation:
    label: str
    class_index: int
    frames: int


def advance(
    state: ConfirmationState,
    label: str,
    class_index: int,
    required_frames: int,
) -> tuple[ConfirmationState, Optional[Confirmation]]:
    """
    Feeds one resolved label into the counter.

    Repeating the previous label increments the count, a new label restarts
    it at 0. Reaching `required_frames` yields a Confirmation and a state whose
    count is back to 0; the same label keeps accumulating from there.
    """
    count = state.count + 1 if label == state.last_label else 0

    if count >= required_frames:
        return ConfirmationState(label, 0), Confirmation(label, class_index, count)
    return ConfirmationState(label, count), None


def on_no_hand(state: ConfirmationState, policy: NoHandPolicy) -> ConfirmationState:
    if policy == NoHandPolicy.RESET:
        return ConfirmationState()
    return state


def remaining_seconds(count: int, required_frames: int, frame_rate: int) -> int:
    return max(0, required_frames // frame_rate - count // frame_rate)
