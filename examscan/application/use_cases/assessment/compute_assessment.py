from __future__ import annotations

from examscan.application.ports.repositories import ExamRepository, StudentResultRepository
from examscan.application.use_cases.assessment.manage_results import load_exam_and_course
from examscan.domain.assessment.calculator import AssessmentReport, build_assessment_report


def compute_assessment(
    *,
    exams: ExamRepository,
    results: StudentResultRepository,
    exam_id: str,
) -> AssessmentReport:
    """저장된 결과 위에서 필요할 때 계산. 부작용 없음."""
    exam, course = load_exam_and_course(exams, exam_id)
    return build_assessment_report(results.list_for_exam(exam.id), exam, course)
