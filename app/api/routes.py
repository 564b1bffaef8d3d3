import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import Response

from app.core.errors import (
    InferenceBusy,
    InferenceError,
    InferenceTimeout,
    InvalidImage,
    ScoringUnavailable,
)
from app.core.security import require_grader
from app.core.config import settings
from app.schemas import PredictResponse, StageInfo, StageListResponse
from app.services.annotate import draw_heatmap_grid, pil_to_png_bytes
from app.services.catalog import all_stages, lookup
from app.services.classifier import WEIGHTS
from app.services.features import decode_rgb
from app.services.postprocess import decision_factors, make_reason, weighted_total_from_percent

router = APIRouter()

ERROR_STATUS = {
    InvalidImage: 400,
    InferenceBusy: 409,
    ScoringUnavailable: 503,
    InferenceTimeout: 504,
}


def _http_error(e: InferenceError) -> HTTPException:
    code = ERROR_STATUS.get(type(e), 500)
    if isinstance(e, InvalidImage):
        return HTTPException(code, InvalidImage.message)
    return HTTPException(code, e.detail)


async def _infer(request: Request, image: UploadFile, slot: Optional[str]):
    img_bytes = await image.read()
    if not img_bytes:
        raise HTTPException(400, "Empty image")

    orchestrator = request.app.state.orchestrator
    # the busy guard only matters while a slot is pending; answered slots are released
    slot = slot or uuid.uuid4().hex
    try:
        prediction = await orchestrator.infer(img_bytes, slot=slot)
    except InferenceError as e:
        raise _http_error(e)
    finally:
        orchestrator.forget(slot)
    return img_bytes, prediction


@router.get("/health")
def health():
    return {"status": "ok", "service": settings.PROJECT_NAME}


@router.post("/maturity/predict", response_model=PredictResponse)
async def maturity_predict(
    request: Request,
    user=Depends(require_grader),
    image: UploadFile = File(...),
    slot: Optional[str] = Form(None),
):
    _, prediction = await _infer(request, image, slot)
    info = lookup(prediction.stage)

    return PredictResponse(
        prediction=prediction,
        stage_info=info,
        weighted_total=weighted_total_from_percent(prediction),
        reason=make_reason(prediction, info),
        decision_factors=decision_factors(prediction),
    )


@router.post("/maturity/predict-annotated")
async def maturity_predict_annotated(
    request: Request,
    user=Depends(require_grader),
    image: UploadFile = File(...),
    slot: Optional[str] = Form(None),
):
    img_bytes, prediction = await _infer(request, image, slot)
    annotated = draw_heatmap_grid(decode_rgb(img_bytes), prediction.heatmap)
    return Response(
        content=pil_to_png_bytes(annotated),
        media_type="image/png",
        headers={
            "X-Maturity-Stage": prediction.stage.value,
            "X-Maturity-Confidence": f"{prediction.confidence:.1f}",
        },
    )


@router.get("/maturity/stages", response_model=StageListResponse)
def maturity_stages():
    return StageListResponse(stages=all_stages(), weights=WEIGHTS)


@router.get("/maturity/stages/{stage}", response_model=StageInfo)
def maturity_stage(stage: str):
    try:
        return lookup(stage)
    except KeyError:
        raise HTTPException(404, f"Unknown stage: {stage}")
