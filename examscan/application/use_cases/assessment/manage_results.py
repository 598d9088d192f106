"""
시험/결과 관리 Use Case - 조회 검증, 수동 입력, 시험 삭제 가드
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

from examscan.application.ports.repositories import ExamRepository, StudentResultRepository
from examscan.domain.assessment.calculator import (
    outcome_performance_map,
    program_outcome_map,
    resolve_question_outcomes,
)
from examscan.domain.assessment.entities import (
    Course,
    Exam,
    ResultSource,
    StudentExamResult,
    percentage_of,
)
from examscan.domain.errors import (
    CourseNotFoundError,
    ExamHasResultsError,
    ExamNotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def load_exam_and_course(exams: ExamRepository, exam_id: str) -> Tuple[Exam, Course]:
    exam = exams.get_exam(exam_id)
    if exam is None:
        raise ExamNotFoundError(exam_id)
    course = exams.get_course(exam.course_id)
    if course is None:
        raise CourseNotFoundError(exam.course_id)
    return exam, course


def build_result(
    *,
    exam: Exam,
    course: Course,
    student_number: str,
    total_score: float,
    source: ResultSource,
    now: datetime,
) -> StudentExamResult:
    """백분율 → 문항 매핑 LO 맵 → PO 맵까지 채운 결과 (저장 전)."""
    percentage = percentage_of(total_score, exam.max_score)
    outcomes = resolve_question_outcomes(exam, course)
    lo_map = outcome_performance_map(outcomes, percentage)
    po_map = program_outcome_map(outcomes, lo_map)
    return StudentExamResult.create(
        student_number=student_number,
        exam=exam,
        total_score=total_score,
        outcome_performance=lo_map,
        program_outcome_performance=po_map,
        source=source,
        created_at=now,
    )


def record_manual_result(
    *,
    exams: ExamRepository,
    results: StudentResultRepository,
    exam_id: str,
    student_number: str,
    total_score: float,
    now: Optional[datetime] = None,
) -> StudentExamResult:
    """수동 입력 경로. 파이프라인과 같은 유일성 규칙 (중복 → DuplicateResultError)."""
    now = now or datetime.now(timezone.utc)
    exam, course = load_exam_and_course(exams, exam_id)

    student_number = (student_number or "").strip()
    if not student_number:
        raise ValidationError("student_number is required")
    if total_score < 0 or total_score > exam.max_score:
        raise ValidationError(
            f"total_score must be within 0..{exam.max_score} (got {total_score})"
        )

    result = build_result(
        exam=exam,
        course=course,
        student_number=student_number,
        total_score=total_score,
        source=ResultSource.MANUAL,
        now=now,
    )
    saved = results.add(result)
    logger.info(
        "MANUAL_RESULT_RECORDED | exam_id=%s | student=%s | total=%s",
        exam_id, student_number, total_score,
    )
    return saved


def delete_exam(
    *,
    exams: ExamRepository,
    results: StudentResultRepository,
    exam_id: str,
) -> None:
    if exams.get_exam(exam_id) is None:
        raise ExamNotFoundError(exam_id)
    count = results.count_for_exam(exam_id)
    if count:
        raise ExamHasResultsError(exam_id, count)
    exams.delete_exam(exam_id)
    logger.info("EXAM_DELETED | exam_id=%s", exam_id)
