from fastapi import APIRouter, Depends, HTTPException

from app.backend.api.deps import get_pipeline
from app.backend.api.schemas import PredictIn, PredictOut
from app.backend.ml.errors import InferenceError, ModelNotLoaded

router = APIRouter(prefix="/api/v1", tags=["predict"])


@router.post("/predict", response_model=PredictOut)
def predict(payload: PredictIn, pipeline=Depends(get_pipeline)):
    session = pipeline.new_session()
    try:
        pred = pipeline.predict(session, payload.landmarks)
    except ModelNotLoaded as e:
        raise HTTPException(503, f"Model not loaded: {e}")
    except InferenceError as e:
        raise HTTPException(502, str(e))
    except (ValueError, IndexError) as e:
        raise HTTPException(422, str(e))

    return {
        "class_index": pred.class_index,
        "score": pred.score,
        "label": pred.label,
        "scores": pred.scores,
    }
