import math
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Dict, Iterable, List, Optional


@dataclass(frozen=True)
class GradeBand:
    letter: str
    min_score: float
    color: str
    bg_color: str
    description: str
    grade_point: float


GRADE_BANDS: List[GradeBand] = [
    GradeBand("A", 90, "text-green-600", "bg-green-100 text-green-800", "Excellent", 4.0),
    GradeBand("B", 80, "text-blue-600", "bg-blue-100 text-blue-800", "Good", 3.0),
    GradeBand("C", 70, "text-yellow-600", "bg-yellow-100 text-yellow-800", "Satisfactory", 2.0),
    GradeBand("D", 60, "text-orange-600", "bg-orange-100 text-orange-800", "Needs Improvement", 1.0),
    GradeBand("F", -math.inf, "text-red-600", "bg-red-100 text-red-800", "Fail", 0.0),
]

BANDS_BY_LETTER: Dict[str, GradeBand] = {band.letter: band for band in GRADE_BANDS}

UNKNOWN_COLOR = "text-gray-600"
UNKNOWN_BG_COLOR = "bg-gray-100 text-gray-800"
UNKNOWN_DESCRIPTION = "Unknown"
SCORE_PLACEHOLDER = "0.0"


@dataclass(frozen=True)
class GradeInfo:
    grade: str
    color: str
    description: str
    grade_point: float


@dataclass
class ScoreValidation:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    score: Optional[float] = None


@dataclass
class GradeStatistics:
    total: int = 0
    average: float = 0.0
    highest: float = 0.0
    lowest: float = 0.0
    distribution: Dict[str, int] = field(default_factory=dict)


def to_number(value: Any) -> Optional[float]:
    """
    Normalize a score that may arrive as a number or a numeric string.
    Returns None for anything that is not a finite number.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def grade_band_for(score: Any) -> GradeBand:
    numeric = to_number(score)
    if numeric is None:
        return BANDS_BY_LETTER["F"]
    for band in GRADE_BANDS:
        if numeric >= band.min_score:
            return band
    return BANDS_BY_LETTER["F"]


def calculate_grade(score: Any) -> str:
    return grade_band_for(score).letter


def get_grade_info(score: Any) -> GradeInfo:
    band = grade_band_for(score)
    return GradeInfo(
        grade=band.letter,
        color=band.color,
        description=band.description,
        grade_point=band.grade_point,
    )


def _band_for_letter(grade: Any) -> Optional[GradeBand]:
    if not isinstance(grade, str):
        return None
    return BANDS_BY_LETTER.get(grade.strip().upper())


def get_grade_color(grade: Any) -> str:
    band = _band_for_letter(grade)
    return band.color if band else UNKNOWN_COLOR


def get_grade_bg_color(grade: Any) -> str:
    band = _band_for_letter(grade)
    return band.bg_color if band else UNKNOWN_BG_COLOR


def get_grade_description(grade: Any) -> str:
    band = _band_for_letter(grade)
    return band.description if band else UNKNOWN_DESCRIPTION


def get_grade_points(grade: Any) -> float:
    band = _band_for_letter(grade)
    return band.grade_point if band else 0.0


def format_score(score: Any) -> str:
    numeric = to_number(score)
    if numeric is None:
        return SCORE_PLACEHOLDER
    # Exact binary value rounded half up, as toFixed(1) does in the web client.
    # Precision covers every finite float (up to 309 integer digits).
    with localcontext() as ctx:
        ctx.prec = 400
        return str(Decimal(numeric).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def validate_score(score: Any) -> ScoreValidation:
    if score is None or (isinstance(score, str) and not score.strip()):
        return ScoreValidation(is_valid=False, errors=["Score is required"])

    numeric = to_number(score)
    if numeric is None:
        return ScoreValidation(is_valid=False, errors=["Score must be a valid number"])

    errors: List[str] = []
    if numeric < 0:
        errors.append("Score cannot be negative")
    if numeric > 100:
        errors.append("Score cannot exceed 100")
    return ScoreValidation(is_valid=not errors, errors=errors, score=numeric)


def get_grade_scale() -> List[Dict[str, str]]:
    scale: List[Dict[str, str]] = []
    upper = 100.0
    for band in GRADE_BANDS:
        low = max(band.min_score, 0.0)
        high = "100" if upper == 100.0 else f"{upper - 0.01:.2f}"
        scale.append(
            {
                "grade": band.letter,
                "range": f"{low:g} - {high}",
                "color": band.color,
                "description": band.description,
            }
        )
        upper = low
    return scale


def get_grade_statistics(scores: Iterable[Any]) -> GradeStatistics:
    valid = [n for n in (to_number(s) for s in scores) if n is not None]
    if not valid:
        return GradeStatistics()

    distribution: Dict[str, int] = {}
    for value in valid:
        letter = calculate_grade(value)
        distribution[letter] = distribution.get(letter, 0) + 1

    return GradeStatistics(
        total=len(valid),
        average=sum(valid) / len(valid),
        highest=max(valid),
        lowest=min(valid),
        distribution=distribution,
    )
