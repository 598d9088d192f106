from datetime import datetime, timezone

import pytest

from examscan.application.use_cases.assessment.compute_assessment import compute_assessment
from examscan.application.use_cases.assessment.manage_results import (
    delete_exam,
    load_exam_and_course,
    record_manual_result,
)
from examscan.domain.assessment.entities import Exam, ExamKind, ResultSource
from examscan.domain.errors import (
    CourseNotFoundError,
    DuplicateResultError,
    ExamHasResultsError,
    ExamNotFoundError,
    ValidationError,
)

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class TestLoadExamAndCourse:
    def test_found(self, repos):
        exams, _ = repos
        exam, course = load_exam_and_course(exams, "e1")
        assert (exam.id, course.id) == ("e1", "c1")

    def test_unknown_exam(self, repos):
        exams, _ = repos
        with pytest.raises(ExamNotFoundError):
            load_exam_and_course(exams, "missing")

    def test_missing_course(self, repos):
        exams, _ = repos
        exams.save_exam(Exam(id="orphan", course_id="ghost", kind=ExamKind.MIDTERM, code="X"))
        with pytest.raises(CourseNotFoundError):
            load_exam_and_course(exams, "orphan")


class TestRecordManualResult:
    def test_records_with_outcome_maps(self, repos):
        exams, results = repos
        saved = record_manual_result(
            exams=exams, results=results, exam_id="e1", student_number=" 2021001 ", total_score=55, now=NOW
        )

        assert saved.student_number == "2021001"
        assert saved.source == ResultSource.MANUAL
        assert saved.percentage == 55.0
        assert saved.outcome_performance == {"ÖÇ1": 55.0, "ÖÇ2": 55.0}
        assert saved.program_outcome_performance == {"PÇ1": 55.0, "PÇ2": 55.0}
        assert saved.created_at == NOW

    @pytest.mark.parametrize("score", [-1, 100.5])
    def test_score_out_of_range(self, repos, score):
        exams, results = repos
        with pytest.raises(ValidationError):
            record_manual_result(exams=exams, results=results, exam_id="e1", student_number="2021001", total_score=score)
        assert results.count_for_exam("e1") == 0

    def test_blank_student_number(self, repos):
        exams, results = repos
        with pytest.raises(ValidationError):
            record_manual_result(exams=exams, results=results, exam_id="e1", student_number="  ", total_score=10)

    def test_duplicate_keeps_first(self, repos):
        exams, results = repos
        record_manual_result(exams=exams, results=results, exam_id="e1", student_number="2021001", total_score=70)

        with pytest.raises(DuplicateResultError):
            record_manual_result(exams=exams, results=results, exam_id="e1", student_number="2021001", total_score=20)
        assert results.get("2021001", "e1").total_score == 70


class TestDeleteExam:
    def test_delete_without_results(self, repos):
        exams, results = repos
        delete_exam(exams=exams, results=results, exam_id="e1")
        assert exams.get_exam("e1") is None

    def test_delete_blocked_by_results(self, repos):
        exams, results = repos
        record_manual_result(exams=exams, results=results, exam_id="e1", student_number="2021001", total_score=70)

        with pytest.raises(ExamHasResultsError) as exc:
            delete_exam(exams=exams, results=results, exam_id="e1")
        assert exc.value.code == "conflict"
        assert exams.get_exam("e1") is not None

    def test_delete_unknown(self, repos):
        exams, results = repos
        with pytest.raises(ExamNotFoundError):
            delete_exam(exams=exams, results=results, exam_id="missing")


class TestComputeAssessment:
    def test_report_over_stored_results(self, repos):
        exams, results = repos
        for number, total in (("2021001", 80), ("2021002", 60), ("2021003", 40)):
            record_manual_result(exams=exams, results=results, exam_id="e1", student_number=number, total_score=total)

        report = compute_assessment(exams=exams, results=results, exam_id="e1")

        assert report.total.student_count == 3
        assert report.total.average_percentage == 60
        assert [lo.code for lo in report.learning_outcomes] == ["ÖÇ1", "ÖÇ2", "ÖÇ3"]
        assert all(lo.success == 60 for lo in report.learning_outcomes)
        assert [po.code for po in report.program_outcomes] == ["PÇ1", "PÇ2"]
        assert report.recommendation.level == "acceptable"

    def test_no_results(self, repos):
        exams, results = repos
        report = compute_assessment(exams=exams, results=results, exam_id="e1")

        assert report.total.student_count == 0
        assert report.total.max_total_score == 100
        assert report.recommendation.level == "no_data"

    def test_does_not_mutate_results(self, repos):
        exams, results = repos
        record_manual_result(exams=exams, results=results, exam_id="e1", student_number="2021001", total_score=80)
        before = results.list_for_exam("e1")

        compute_assessment(exams=exams, results=results, exam_id="e1")
        compute_assessment(exams=exams, results=results, exam_id="e1")

        assert results.list_for_exam("e1") == before
