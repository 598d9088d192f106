"""
Exam/Result Repository - Django ORM 구현 (메서드 내부에서만 모델 import)

유일성: DB UniqueConstraint(student_number, exam) → IntegrityError → DuplicateResultError.
여러 프로세스가 동시에 저장해도 DB 가 최종 판정.
"""
from __future__ import annotations

from typing import Any, List, Optional

from examscan.domain.assessment.entities import (
    Course,
    Exam,
    ExamKind,
    ExamQuestion,
    LearningOutcome,
    ResultSource,
    StudentExamResult,
)
from examscan.domain.errors import DuplicateResultError, ExamHasResultsError


def _safe_int(v: Any) -> Optional[int]:
    try:
        return int(v)
    except (TypeError, ValueError):
        return None


def _course_to_entity(m) -> Optional[Course]:
    if m is None:
        return None
    return Course(
        id=str(m.pk),
        code=m.code,
        name=m.name or "",
        learning_outcomes=tuple(
            LearningOutcome(
                code=str(lo.get("code")),
                description=str(lo.get("description") or ""),
                program_outcomes=tuple(lo.get("programOutcomes") or ()),
            )
            for lo in (m.learning_outcomes or [])
        ),
    )


def _question_codes(q: dict) -> tuple:
    codes = q.get("learningOutcomeCodes")
    if not codes and q.get("learningOutcomeCode"):
        codes = [q["learningOutcomeCode"]]
    return tuple(codes or ())


def _exam_to_entity(m) -> Optional[Exam]:
    if m is None:
        return None
    return Exam(
        id=str(m.pk),
        course_id=str(m.course_id),
        kind=ExamKind(m.kind),
        code=m.code,
        max_score=float(m.max_score),
        questions=tuple(
            ExamQuestion(
                number=int(q.get("questionNumber") or 0),
                learning_outcome_codes=_question_codes(q),
                max_score=q.get("maxScore"),
            )
            for q in (m.questions or [])
        ),
        learning_outcome_codes=tuple(m.learning_outcome_codes or ()),
        passing_score=float(m.passing_score),
    )


def _result_to_entity(m) -> Optional[StudentExamResult]:
    if m is None:
        return None
    return StudentExamResult(
        student_number=m.student_number,
        exam_id=str(m.exam_id),
        course_id=str(m.course_id),
        total_score=float(m.total_score),
        max_score=float(m.max_score),
        percentage=float(m.percentage),
        outcome_performance=dict(m.outcome_performance or {}),
        program_outcome_performance=dict(m.program_outcome_performance or {}),
        source=ResultSource(m.source),
        created_at=m.created_at,
    )


class DjangoExamRepository:
    """ExamRepository 구현. 정의 저장(save_*)은 관리 스크립트/테스트용."""

    def get_exam(self, exam_id: str) -> Optional[Exam]:
        from examscan.adapters.db.django.models import ExamModel
        pk = _safe_int(exam_id)
        if pk is None:
            return None
        return _exam_to_entity(ExamModel.objects.filter(pk=pk).first())

    def get_course(self, course_id: str) -> Optional[Course]:
        from examscan.adapters.db.django.models import CourseModel
        pk = _safe_int(course_id)
        if pk is None:
            return None
        return _course_to_entity(CourseModel.objects.filter(pk=pk).first())

    def delete_exam(self, exam_id: str) -> None:
        from django.db.models import ProtectedError
        from examscan.adapters.db.django.models import ExamModel
        pk = _safe_int(exam_id)
        if pk is None:
            return
        m = ExamModel.objects.filter(pk=pk).first()
        if m is None:
            return
        try:
            m.delete()
        except ProtectedError as e:
            raise ExamHasResultsError(str(exam_id), len(e.protected_objects)) from e

    def save_course(self, course: Course) -> Course:
        from examscan.adapters.db.django.models import CourseModel
        m, _ = CourseModel.objects.update_or_create(
            code=course.code,
            defaults={
                "name": course.name,
                "learning_outcomes": [
                    {
                        "code": lo.code,
                        "description": lo.description,
                        "programOutcomes": list(lo.program_outcomes),
                    }
                    for lo in course.learning_outcomes
                ],
            },
        )
        return _course_to_entity(m)

    def save_exam(self, exam: Exam) -> Exam:
        from examscan.adapters.db.django.models import ExamModel
        m, _ = ExamModel.objects.update_or_create(
            course_id=int(exam.course_id),
            code=exam.code,
            defaults={
                "kind": exam.kind.value,
                "max_score": exam.max_score,
                "questions": [
                    {
                        "questionNumber": q.number,
                        "learningOutcomeCodes": list(q.learning_outcome_codes),
                        "maxScore": q.max_score,
                    }
                    for q in exam.questions
                ],
                "learning_outcome_codes": list(exam.learning_outcome_codes),
                "passing_score": exam.passing_score,
            },
        )
        return _exam_to_entity(m)


class DjangoStudentResultRepository:

    def add(self, result: StudentExamResult) -> StudentExamResult:
        from django.db import IntegrityError, transaction
        from django.utils import timezone
        from examscan.adapters.db.django.models import StudentExamResultModel

        try:
            with transaction.atomic():
                m = StudentExamResultModel.objects.create(
                    student_number=result.student_number,
                    exam_id=int(result.exam_id),
                    course_id=int(result.course_id),
                    total_score=result.total_score,
                    max_score=result.max_score,
                    percentage=result.percentage,
                    outcome_performance=dict(result.outcome_performance),
                    program_outcome_performance=dict(result.program_outcome_performance),
                    source=result.source.value,
                    created_at=result.created_at or timezone.now(),
                )
        except IntegrityError as e:
            exists = StudentExamResultModel.objects.filter(
                student_number=result.student_number, exam_id=int(result.exam_id)
            ).exists()
            if exists:
                raise DuplicateResultError(result.student_number, result.exam_id) from e
            raise
        return _result_to_entity(m)

    def get(self, student_number: str, exam_id: str) -> Optional[StudentExamResult]:
        from examscan.adapters.db.django.models import StudentExamResultModel
        pk = _safe_int(exam_id)
        if pk is None:
            return None
        m = StudentExamResultModel.objects.filter(student_number=student_number, exam_id=pk).first()
        return _result_to_entity(m)

    def list_for_exam(self, exam_id: str) -> List[StudentExamResult]:
        from examscan.adapters.db.django.models import StudentExamResultModel
        pk = _safe_int(exam_id)
        if pk is None:
            return []
        return [
            _result_to_entity(m)
            for m in StudentExamResultModel.objects.filter(exam_id=pk).order_by("id")
        ]

    def count_for_exam(self, exam_id: str) -> int:
        from examscan.adapters.db.django.models import StudentExamResultModel
        pk = _safe_int(exam_id)
        if pk is None:
            return 0
        return StudentExamResultModel.objects.filter(exam_id=pk).count()
