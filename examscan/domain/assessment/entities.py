"""
평가 도메인 엔티티 - 순수 파이썬 (Django/ORM 미사용)

Course → LearningOutcome(→ ProgramOutcome 코드) / Exam → ExamQuestion / StudentExamResult.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from examscan.domain.errors import ValidationError

DEFAULT_MAX_SCORE = 100.0
DEFAULT_PASSING_SCORE = 60.0


class ExamKind(str, Enum):
    MIDTERM = "midterm"
    FINAL = "final"


class ResultSource(str, Enum):
    PIPELINE = "pipeline"
    MANUAL = "manual"


@dataclass(frozen=True)
class LearningOutcome:
    code: str
    description: str = ""
    program_outcomes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Course:
    id: str
    code: str
    name: str = ""
    learning_outcomes: Tuple[LearningOutcome, ...] = ()

    def outcome(self, code: str) -> Optional[LearningOutcome]:
        for lo in self.learning_outcomes:
            if lo.code == code:
                return lo
        return None

    def outcome_codes(self) -> List[str]:
        return [lo.code for lo in self.learning_outcomes]


@dataclass(frozen=True)
class ExamQuestion:
    number: int
    learning_outcome_codes: Tuple[str, ...]
    max_score: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.learning_outcome_codes:
            raise ValidationError(
                f"Question {self.number} must map to at least one learning outcome"
            )


@dataclass(frozen=True)
class Exam:
    """
    시험 정의. 문항/LO 매핑은 명시적 수정으로만 변경 (불변 객체).
    learning_outcome_codes: 시험이 명시적으로 매핑한 LO 목록 (선택).
    """
    id: str
    course_id: str
    kind: ExamKind
    code: str
    max_score: float = DEFAULT_MAX_SCORE
    questions: Tuple[ExamQuestion, ...] = ()
    learning_outcome_codes: Tuple[str, ...] = ()
    passing_score: float = DEFAULT_PASSING_SCORE

    def __post_init__(self) -> None:
        if self.max_score < 0:
            raise ValidationError(f"max_score must be >= 0 (got {self.max_score})")
        if not 0 <= self.passing_score <= 100:
            raise ValidationError(
                f"passing_score must be within 0..100 (got {self.passing_score})"
            )

    def question_outcome_codes(self) -> List[str]:
        """문항 정의에서 LO 코드 수집 (첫 등장 순서, 중복 제거)."""
        seen: List[str] = []
        for q in self.questions:
            for code in q.learning_outcome_codes:
                if code not in seen:
                    seen.append(code)
        return seen


def percentage_of(total_score: float, max_score: float) -> float:
    """total/max × 100, 소수 둘째 자리 반올림. max 0 이면 0."""
    if not max_score:
        return 0.0
    return round(total_score / max_score * 100.0, 2)


@dataclass(frozen=True)
class StudentExamResult:
    """
    (student_number, exam_id) 당 하나. 생성 시점에 유일성 검사 (저장소 책임).
    부분 저장 없음: 파이프라인이 끝나지 못하면 레코드도 없다.
    """
    student_number: str
    exam_id: str
    course_id: str
    total_score: float
    max_score: float
    percentage: float
    outcome_performance: Dict[str, float] = field(default_factory=dict)
    program_outcome_performance: Dict[str, float] = field(default_factory=dict)
    source: ResultSource = ResultSource.PIPELINE
    created_at: Optional[datetime] = None

    @classmethod
    def create(
        cls,
        *,
        student_number: str,
        exam: Exam,
        total_score: float,
        outcome_performance: Optional[Dict[str, float]] = None,
        program_outcome_performance: Optional[Dict[str, float]] = None,
        source: ResultSource = ResultSource.PIPELINE,
        created_at: Optional[datetime] = None,
    ) -> "StudentExamResult":
        if not student_number:
            raise ValidationError("student_number is required")
        return cls(
            student_number=student_number,
            exam_id=exam.id,
            course_id=exam.course_id,
            total_score=float(total_score),
            max_score=float(exam.max_score),
            percentage=percentage_of(total_score, exam.max_score),
            outcome_performance=dict(outcome_performance or {}),
            program_outcome_performance=dict(program_outcome_performance or {}),
            source=source,
            created_at=created_at,
        )

    def to_dict(self) -> dict:
        return {
            "studentNumber": self.student_number,
            "examId": self.exam_id,
            "courseId": self.course_id,
            "totalScore": self.total_score,
            "maxScore": self.max_score,
            "percentage": self.percentage,
            "outcomePerformance": dict(self.outcome_performance),
            "programOutcomePerformance": dict(self.program_outcome_performance),
            "source": self.source.value,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
