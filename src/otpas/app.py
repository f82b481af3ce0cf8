from typing import Any, Dict, List, Union

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from otpas.config.settings import settings
from otpas.core.components import calculate_cumulative, validate_score_for_evaluation_type
from otpas.core.evaluations import StudentCourseGroup, aggregate_evaluations, parse_evaluations
from otpas.core.grades import format_score, get_grade_info, get_grade_scale
from otpas.logging_config import get_logger
from otpas.services.evaluation_service import EvaluationService, EvaluationServiceError


log = get_logger(__name__)

app = FastAPI(title="OTPAS-HU Evaluations API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allowed_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


ScoreValue = Union[float, str, None]


class ScorePayload(BaseModel):
    score: ScoreValue = None


class ComponentScorePayload(BaseModel):
    evaluation_type: str
    score: ScoreValue = None


class CumulativePayload(BaseModel):
    evaluations: List[ComponentScorePayload] = Field(default_factory=list)


class EvaluationListPayload(BaseModel):
    evaluations: List[Dict[str, Any]] = Field(default_factory=list)


def _grouped_response(groups: Dict[str, StudentCourseGroup]) -> Dict[str, Any]:
    return {
        "count": len(groups),
        "groups": [group.to_dict() for group in groups.values()],
    }


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/grades/scale")
def grade_scale() -> List[Dict[str, str]]:
    return get_grade_scale()


@app.post("/grades/calculate")
def calculate(payload: ScorePayload) -> Dict[str, Any]:
    info = get_grade_info(payload.score)
    return {
        "score": format_score(payload.score),
        "grade": info.grade,
        "color": info.color,
        "description": info.description,
        "grade_point": info.grade_point,
    }


@app.post("/evaluations/validate")
def validate_evaluation(payload: ComponentScorePayload) -> Dict[str, Any]:
    result = validate_score_for_evaluation_type(payload.score, payload.evaluation_type)
    if not result.is_valid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.errors)
    return {"evaluation_type": payload.evaluation_type, "score": result.score, "is_valid": True}


@app.post("/evaluations/cumulative")
def cumulative(payload: CumulativePayload) -> Dict[str, Any]:
    result = calculate_cumulative((entry.evaluation_type, entry.score) for entry in payload.evaluations)
    response = result.to_dict()
    response["grade"] = get_grade_info(result.total_score).grade
    return response


@app.post("/evaluations/grouped")
def grouped_evaluations(payload: EvaluationListPayload) -> Dict[str, Any]:
    groups = aggregate_evaluations(parse_evaluations(payload.evaluations))
    return _grouped_response(groups)


@app.get("/instructor/evaluations/grouped")
def instructor_grouped_evaluations() -> Dict[str, Any]:
    try:
        service = EvaluationService.from_settings()
        groups = service.grouped_evaluations()
    except EvaluationServiceError as exc:
        log.error("Could not load instructor evaluations: %s", exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return _grouped_response(groups)
