"""
평가 집계 - 순수 함수 (저장소/ORM 접근 없음)

입력이 같으면 출력도 같다 (frozen dataclass + tuple, 입력 순서 유지).

- 총점 통계: 인원/평균 총점/평균 백분율/최소/최대 (+ 통과 인원)
- 학습성과(LO) 성공률: 시험 단위 평균 백분율을 해당 시험의 모든 LO에 동일 적용
  (학생당 시험 점수는 하나뿐이므로 문항별 재구성은 하지 않는다)
- 프로그램성과(PO) 성공률: LO → PO 로 펼친 뒤 기여 LO 성공률의 산술평균
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from examscan.domain.assessment.entities import (
    Course,
    Exam,
    LearningOutcome,
    StudentExamResult,
)

BELOW_TARGET_THRESHOLD = 60.0
GOOD_THRESHOLD = 70.0


@dataclass(frozen=True)
class TotalScoreAnalysis:
    student_count: int
    average_total_score: float
    average_percentage: float
    min_score: float
    max_score: float
    max_total_score: float
    pass_count: int = 0
    pass_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "studentCount": self.student_count,
            "averageTotalScore": self.average_total_score,
            "averagePercentage": self.average_percentage,
            "minScore": self.min_score,
            "maxScore": self.max_score,
            "maxTotalScore": self.max_total_score,
            "passCount": self.pass_count,
            "passRate": self.pass_rate,
        }


@dataclass(frozen=True)
class OutcomeSuccess:
    code: str
    description: str
    success: float
    student_count: int
    program_outcomes: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "description": self.description,
            "success": self.success,
            "studentCount": self.student_count,
            "programOutcomes": list(self.program_outcomes),
        }


@dataclass(frozen=True)
class ProgramOutcomeSuccess:
    code: str
    success: float
    contribution_count: int
    contributing_outcomes: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "success": self.success,
            "contributionCount": self.contribution_count,
            "contributingOutcomes": list(self.contributing_outcomes),
        }


@dataclass(frozen=True)
class Recommendation:
    level: str  # no_data | below_target | acceptable | good
    text: str


@dataclass(frozen=True)
class AssessmentReport:
    exam_id: str
    course_id: str
    total: TotalScoreAnalysis
    learning_outcomes: Tuple[OutcomeSuccess, ...]
    program_outcomes: Tuple[ProgramOutcomeSuccess, ...]
    recommendation: Recommendation

    def to_dict(self) -> Dict[str, Any]:
        return {
            "examId": self.exam_id,
            "courseId": self.course_id,
            "totalScoreAnalysis": self.total.to_dict(),
            "learningOutcomePerformance": [lo.to_dict() for lo in self.learning_outcomes],
            "programOutcomePerformance": [po.to_dict() for po in self.program_outcomes],
            "recommendation": {
                "level": self.recommendation.level,
                "text": self.recommendation.text,
            },
        }


def _round2(v: float) -> float:
    return round(float(v), 2)


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def analyze_total_scores(
    results: Sequence[StudentExamResult],
    exam: Exam,
) -> TotalScoreAnalysis:
    """결과가 없으면 0 통계 (오류 아님). max_total_score 는 항상 시험 만점."""
    if not results:
        return TotalScoreAnalysis(
            student_count=0,
            average_total_score=0.0,
            average_percentage=0.0,
            min_score=0.0,
            max_score=0.0,
            max_total_score=float(exam.max_score),
        )

    totals = [float(r.total_score) for r in results]
    percentages = [float(r.percentage) for r in results]
    pass_count = sum(1 for p in percentages if p >= exam.passing_score)

    return TotalScoreAnalysis(
        student_count=len(results),
        average_total_score=_round2(_mean(totals)),
        average_percentage=_round2(_mean(percentages)),
        min_score=_round2(min(totals)),
        max_score=_round2(max(totals)),
        max_total_score=float(exam.max_score),
        pass_count=pass_count,
        pass_rate=_round2(pass_count / len(results) * 100.0),
    )


def resolve_exam_outcomes(exam: Exam, course: Course) -> List[LearningOutcome]:
    """
    집계 대상 LO.
    시험의 명시적 LO 목록이 있으면 (과목 LO와 일치하는 것만, 시험 순서대로) 사용,
    비어 있거나 하나도 일치하지 않으면 과목의 전체 LO.
    """
    explicit = [course.outcome(code) for code in exam.learning_outcome_codes]
    resolved = [lo for lo in explicit if lo is not None]
    if resolved:
        return resolved
    return list(course.learning_outcomes)


def resolve_question_outcomes(exam: Exam, course: Course) -> List[LearningOutcome]:
    """
    채점 파이프라인용: 문항 정의에 매핑된 LO (과목 LO로 해석되는 것만).
    문항 매핑이 없으면 과목 전체 LO.
    """
    resolved: List[LearningOutcome] = []
    for code in exam.question_outcome_codes():
        lo = course.outcome(code)
        if lo is not None:
            resolved.append(lo)
    if resolved:
        return resolved
    return list(course.learning_outcomes)


def outcome_performance_map(
    outcomes: Sequence[LearningOutcome],
    percentage: float,
) -> Dict[str, float]:
    return {lo.code: _round2(percentage) for lo in outcomes}


def program_outcome_map(
    outcomes: Sequence[LearningOutcome],
    outcome_performance: Mapping[str, float],
) -> Dict[str, float]:
    """{LO: %} → {PO: 기여 LO 평균}. 결과 레코드 저장용."""
    perf = [
        OutcomeSuccess(
            code=lo.code,
            description=lo.description,
            success=float(outcome_performance.get(lo.code, 0.0)),
            student_count=0,
            program_outcomes=lo.program_outcomes,
        )
        for lo in outcomes
        if lo.code in outcome_performance
    ]
    return {po.code: po.success for po in program_outcome_performance(perf)}


def learning_outcome_performance(
    results: Sequence[StudentExamResult],
    exam: Exam,
    course: Course,
) -> Tuple[OutcomeSuccess, ...]:
    average = _round2(_mean([float(r.percentage) for r in results]))
    return tuple(
        OutcomeSuccess(
            code=lo.code,
            description=lo.description,
            success=average,
            student_count=len(results),
            program_outcomes=tuple(lo.program_outcomes),
        )
        for lo in resolve_exam_outcomes(exam, course)
    )


def program_outcome_performance(
    outcome_successes: Sequence[OutcomeSuccess],
) -> Tuple[ProgramOutcomeSuccess, ...]:
    """PO 코드는 처음 등장한 순서 유지. 한 LO가 같은 PO를 두 번 나열해도 한 번만 기여."""
    contributions: Dict[str, List[Tuple[str, float]]] = {}
    for lo in outcome_successes:
        for po_code in lo.program_outcomes:
            bucket = contributions.setdefault(po_code, [])
            if any(code == lo.code for code, _ in bucket):
                continue
            bucket.append((lo.code, lo.success))

    return tuple(
        ProgramOutcomeSuccess(
            code=po_code,
            success=_round2(_mean([s for _, s in items])),
            contribution_count=len(items),
            contributing_outcomes=tuple(code for code, _ in items),
        )
        for po_code, items in contributions.items()
    )


def recommend(
    average_percentage: float,
    outcome_successes: Sequence[OutcomeSuccess] = (),
    student_count: int = 0,
) -> Recommendation:
    """표시용 한 줄 평가. 이후 로직에서 소비하지 않는다."""
    if student_count <= 0:
        return Recommendation(
            level="no_data",
            text="No results yet. Scan answer sheets to evaluate outcome success.",
        )

    weakest: Optional[OutcomeSuccess] = None
    if outcome_successes:
        weakest = min(outcome_successes, key=lambda lo: lo.success)

    if average_percentage < BELOW_TARGET_THRESHOLD:
        level = "below_target"
        text = (
            f"Average success {average_percentage:.2f}% is below the "
            f"{BELOW_TARGET_THRESHOLD:.0f}% target. Review teaching of the assessed outcomes."
        )
    elif average_percentage < GOOD_THRESHOLD:
        level = "acceptable"
        text = (
            f"Average success {average_percentage:.2f}% is acceptable "
            f"but below {GOOD_THRESHOLD:.0f}%."
        )
    else:
        level = "good"
        text = f"Average success {average_percentage:.2f}% meets the target."

    if weakest is not None and weakest.success < BELOW_TARGET_THRESHOLD:
        text += f" Weakest outcome: {weakest.code} ({weakest.success:.2f}%)."
    return Recommendation(level=level, text=text)


def build_assessment_report(
    results: Sequence[StudentExamResult],
    exam: Exam,
    course: Course,
) -> AssessmentReport:
    total = analyze_total_scores(results, exam)
    los = learning_outcome_performance(results, exam, course)
    pos = program_outcome_performance(los)
    return AssessmentReport(
        exam_id=exam.id,
        course_id=course.id,
        total=total,
        learning_outcomes=los,
        program_outcomes=pos,
        recommendation=recommend(total.average_percentage, los, total.student_count),
    )
