from fastapi import APIRouter, Depends

from app.backend.api.deps import get_runtime, get_settings
from app.backend.api.schemas import LabelOut, LabelsOut, ModelStatusOut
from app.backend.ml.labels import LabelResolver, resolve_label

router = APIRouter(prefix="/api/v1", tags=["model"])


@router.get("/model", response_model=ModelStatusOut)
def model_status(runtime=Depends(get_runtime)):
    return runtime.status()


@router.post("/model/reload", response_model=ModelStatusOut)
def reload_model(runtime=Depends(get_runtime)):
    runtime.reload()
    return runtime.status()


@router.get("/labels", response_model=LabelsOut)
def list_labels(settings=Depends(get_settings)):
    labels = LabelResolver(settings.labels_path).labels
    if labels is None:
        return {"available": False, "labels": []}
    return {
        "available": True,
        "labels": [
            LabelOut(index=i, raw=raw, display=resolve_label(labels, i))
            for i, raw in enumerate(labels)
        ],
    }
