from pydantic import BaseModel, Field
from typing import List, Optional


class ModelStatusOut(BaseModel):
    loaded: bool
    path: Optional[str] = None
    error: Optional[str] = None
    num_classes: Optional[int] = None


class LabelOut(BaseModel):
    index: int
    raw: str
    display: str


class LabelsOut(BaseModel):
    available: bool
    labels: List[LabelOut]


class PredictIn(BaseModel):
    # 21 точка: [x, y] или [x, y, z]
    landmarks: List[List[float]] = Field(..., min_length=21, max_length=21)


class PredictOut(BaseModel):
    class_index: int
    score: float
    label: str
    scores: List[float]
