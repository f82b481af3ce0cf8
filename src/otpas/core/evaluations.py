"""Grouping of instructor evaluation records by (student, course).

The evaluation list endpoint can return the same logical evaluation more
than once. Records are reduced in two passes: first by primary key, then by
content within each student-course group. Groups are built fresh on every
call and nothing here mutates its input.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from otpas.core.components import ScoreBreakdown
from otpas.core.grades import calculate_grade, to_number
from otpas.logging_config import get_logger


log = get_logger(__name__)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class EvaluationRecord:
    id: int
    student_name: str
    course_code: str
    course_title: str = ""
    evaluation_type: str = ""
    score: Optional[float] = None
    grade: str = ""
    feedback: str = ""
    created_at: Optional[datetime] = None
    cumulative_total: Optional[float] = None
    breakdown: Optional[ScoreBreakdown] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EvaluationRecord":
        raw_id = data.get("id")
        if isinstance(raw_id, bool):
            raise ValueError("Evaluation record id must be an integer")
        # JSON decoders hand back floats for 1e400 (inf) and 1.5; neither is an id.
        if isinstance(raw_id, float) and not raw_id.is_integer():
            raise ValueError(f"Evaluation record id must be an integer, got {raw_id!r}")
        try:
            record_id = int(raw_id)
        except (TypeError, ValueError, OverflowError) as exc:
            raise ValueError(f"Evaluation record id must be an integer, got {raw_id!r}") from exc

        return cls(
            id=record_id,
            student_name=str(data.get("student_name") or ""),
            course_code=str(data.get("course_code") or ""),
            course_title=str(data.get("course_title") or ""),
            evaluation_type=str(data.get("evaluation_type") or ""),
            score=to_number(data.get("score")),
            grade=str(data.get("grade") or ""),
            feedback=str(data.get("feedback") or ""),
            created_at=_parse_timestamp(data.get("created_at")),
            cumulative_total=to_number(data.get("cumulative_total")),
            breakdown=ScoreBreakdown.from_dict(data.get("breakdown")),
        )

    @property
    def content_key(self) -> Tuple[str, str, str, Optional[float]]:
        return (self.student_name, self.course_code, self.evaluation_type, self.score)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "student_name": self.student_name,
            "course_code": self.course_code,
            "course_title": self.course_title,
            "evaluation_type": self.evaluation_type,
            "score": self.score,
            "grade": self.grade,
            "feedback": self.feedback,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if self.cumulative_total is not None:
            payload["cumulative_total"] = self.cumulative_total
        if self.breakdown is not None:
            payload["breakdown"] = self.breakdown.as_dict()
        return payload


@dataclass
class StudentCourseGroup:
    student_name: str
    course_title: str
    course_code: str
    all_evaluations: List[EvaluationRecord] = field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.student_name}|{self.course_code}"

    @property
    def latest_evaluation(self) -> Optional[EvaluationRecord]:
        return self.all_evaluations[0] if self.all_evaluations else None

    # The most recent record carries the authoritative running total.
    @property
    def cumulative_total(self) -> Optional[float]:
        latest = self.latest_evaluation
        return latest.cumulative_total if latest else None

    @property
    def breakdown(self) -> Optional[ScoreBreakdown]:
        latest = self.latest_evaluation
        return latest.breakdown if latest else None

    @property
    def cumulative_grade(self) -> Optional[str]:
        total = self.cumulative_total
        return calculate_grade(total) if total is not None else None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "key": self.key,
            "student_name": self.student_name,
            "course_title": self.course_title,
            "course_code": self.course_code,
            "all_evaluations": [record.to_dict() for record in self.all_evaluations],
        }
        if self.cumulative_total is not None:
            payload["cumulative_total"] = self.cumulative_total
            payload["cumulative_grade"] = self.cumulative_grade
        if self.breakdown is not None:
            payload["breakdown"] = self.breakdown.as_dict()
        return payload


def parse_evaluations(payloads: Iterable[Mapping[str, Any]]) -> List[EvaluationRecord]:
    records: List[EvaluationRecord] = []
    for index, payload in enumerate(payloads or []):
        if not isinstance(payload, Mapping):
            log.warning("Skipping evaluation #%d: expected an object, got %s", index, type(payload).__name__)
            continue
        try:
            records.append(EvaluationRecord.from_dict(payload))
        except ValueError as exc:
            log.warning("Skipping evaluation #%d: %s", index, exc)
    return records


def group_key(record: EvaluationRecord) -> str:
    return f"{record.student_name}|{record.course_code}"


def sort_by_recency(records: Iterable[EvaluationRecord]) -> List[EvaluationRecord]:
    # sorted() keeps input order for ties, also with reverse=True.
    return sorted(
        records,
        key=lambda r: r.created_at.timestamp() if r.created_at else float("-inf"),
        reverse=True,
    )


def dedupe_by_id(records: Iterable[EvaluationRecord]) -> List[EvaluationRecord]:
    seen = set()
    unique: List[EvaluationRecord] = []
    for record in records:
        if record.id in seen:
            log.debug("Removing duplicate evaluation by id: %s", record.id)
            continue
        seen.add(record.id)
        unique.append(record)
    return unique


def dedupe_by_content(records: Iterable[EvaluationRecord]) -> List[EvaluationRecord]:
    """Drop records repeating an earlier (student, course, type, score)."""
    seen = set()
    unique: List[EvaluationRecord] = []
    for record in records:
        if record.content_key in seen:
            log.debug(
                "Removing duplicate evaluation by content: %s-%s-%s-%s",
                *record.content_key,
            )
            continue
        seen.add(record.content_key)
        unique.append(record)
    return unique


def group_evaluations(records: Iterable[EvaluationRecord]) -> Dict[str, StudentCourseGroup]:
    groups: Dict[str, StudentCourseGroup] = {}
    for record in records:
        key = group_key(record)
        group = groups.get(key)
        if group is None:
            group = StudentCourseGroup(
                student_name=record.student_name,
                course_title=record.course_title,
                course_code=record.course_code,
            )
            groups[key] = group
        group.all_evaluations.append(record)
    return groups


def aggregate_evaluations(records: Iterable[EvaluationRecord]) -> Dict[str, StudentCourseGroup]:
    records = list(records or [])
    unique = dedupe_by_id(records)
    ordered = dedupe_by_content(sort_by_recency(unique))
    groups = group_evaluations(ordered)
    log.info(
        "Grouped %d evaluations into %d student-course groups (%d duplicates suppressed)",
        len(records),
        len(groups),
        len(records) - len(ordered),
    )
    return groups
