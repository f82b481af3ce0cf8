from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from otpas.core.grades import ScoreValidation, to_number


@dataclass(frozen=True)
class ComponentRule:
    label: str
    max_score: float


COMPONENT_RULES: Dict[str, ComponentRule] = {
    "mid_exam": ComponentRule("Mid Exam", 30),
    "final_exam": ComponentRule("Final Exam", 50),
    "project": ComponentRule("Project", 15),
    "quiz": ComponentRule("Quiz", 5),
}

EVALUATION_TYPES: Tuple[str, ...] = tuple(COMPONENT_RULES)
MAX_TOTAL = 100.0


@dataclass(frozen=True)
class ScoreBreakdown:
    mid_exam: float = 0.0
    final_exam: float = 0.0
    project: float = 0.0
    quiz: float = 0.0

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Optional["ScoreBreakdown"]:
        if not isinstance(data, Mapping):
            return None
        values = {}
        for name in EVALUATION_TYPES:
            number = to_number(data.get(name))
            values[name] = number if number is not None else 0.0
        return cls(**values)

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in EVALUATION_TYPES}

    @property
    def total(self) -> float:
        return min(sum(self.as_dict().values()), MAX_TOTAL)

    def component_rows(self) -> List[Tuple[str, str, float, float]]:
        """(evaluation_type, label, value, max_score) in display order."""
        return [
            (name, rule.label, getattr(self, name), rule.max_score)
            for name, rule in COMPONENT_RULES.items()
        ]


@dataclass
class CumulativeScore:
    breakdown: ScoreBreakdown = field(default_factory=ScoreBreakdown)
    total_score: float = 0.0
    max_possible: float = MAX_TOTAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "breakdown": self.breakdown.as_dict(),
            "total_score": self.total_score,
            "max_possible": self.max_possible,
        }


def validate_score_for_evaluation_type(score: Any, evaluation_type: str) -> ScoreValidation:
    rule = COMPONENT_RULES.get(evaluation_type)
    if rule is None:
        return ScoreValidation(
            is_valid=False,
            errors=[f"Unsupported evaluation type: {evaluation_type}. Use {', '.join(EVALUATION_TYPES)}."],
        )

    numeric = to_number(score)
    if numeric is None:
        return ScoreValidation(is_valid=False, errors=["Score must be a valid number"])

    errors: List[str] = []
    if numeric < 0:
        errors.append("Score cannot be negative")
    if numeric > rule.max_score:
        errors.append(f"Score cannot exceed {rule.max_score:g} for {evaluation_type.replace('_', ' ')}")
    return ScoreValidation(is_valid=not errors, errors=errors, score=numeric)


def calculate_cumulative(entries: Iterable[Tuple[str, Any]]) -> CumulativeScore:
    """
    entries: iterable of (evaluation_type, score)
    Scores are summed per evaluation type; the total is capped at MAX_TOTAL.
    """
    sums = {name: 0.0 for name in EVALUATION_TYPES}
    for evaluation_type, score in entries:
        if evaluation_type not in sums:
            continue
        numeric = to_number(score)
        sums[evaluation_type] += numeric if numeric is not None else 0.0

    breakdown = ScoreBreakdown(**sums)
    return CumulativeScore(breakdown=breakdown, total_score=breakdown.total)
