import pytest

from examscan.application.use_cases.scoring.score_document import (
    DocumentScorer,
    score_single_document,
)
from examscan.domain.assessment.entities import Exam, ExamKind, ExamQuestion
from examscan.domain.errors import (
    DocumentScoringError,
    DuplicateResultError,
    ExamNotFoundError,
    MissingCredentialsError,
    RasterizationError,
    VisionServiceError,
)
from examscan.domain.scanning.regions import RegionBox, RegionSet, SheetLayout
from examscan.domain.scanning.results import MarkerDetection

from fakes import FakeDetector, FakeRasterizer, FakeStudentReader, FakeVision, FakeWarper

CORNERS = ((10.0, 10.0), (390.0, 10.0), (10.0, 550.0), (390.0, 550.0))


def _scorer(results, **overrides):
    kwargs = dict(
        results=results,
        rasterizer=FakeRasterizer(),
        marker_detector=FakeDetector(),
        warper=FakeWarper(),
        vision=FakeVision("80"),
        layout=SheetLayout.default(canonical_size=(620, 877)),
    )
    kwargs.update(overrides)
    return DocumentScorer(**kwargs)


def _question_layout():
    boxes = (
        RegionBox(x_percent=10, y_percent=60, w_percent=10, h_percent=5),
        RegionBox(x_percent=30, y_percent=60, w_percent=10, h_percent=5),
    )
    default = SheetLayout.default(canonical_size=(620, 877))
    return SheetLayout(
        canonical_size=default.canonical_size,
        canonical=RegionSet(total_score=default.canonical.total_score, question_scores=boxes),
        template=RegionSet(total_score=default.template.total_score, question_scores=boxes),
    )


class TestDocumentScorer:
    def test_template_path_persists_result(self, repos, exam, course):
        _, results = repos
        scored = _scorer(results).score(exam=exam, course=course, file_name="2021001_mt.pdf", content=b"200")

        assert scored.student_number == "2021001"
        assert scored.calibration == "template"
        assert scored.total_score == 80
        assert scored.region_errors == ()

        stored = results.get("2021001", "e1")
        assert stored.percentage == 80.0
        assert stored.outcome_performance == {"ÖÇ1": 80.0, "ÖÇ2": 80.0}
        assert stored.program_outcome_performance == {"PÇ1": 80.0, "PÇ2": 80.0}
        assert stored.source.value == "pipeline"

    def test_marker_path(self, repos, exam, course):
        _, results = repos
        warper = FakeWarper()
        scorer = _scorer(results, marker_detector=FakeDetector(MarkerDetection.found(CORNERS)), warper=warper)

        scored = scorer.score(exam=exam, course=course, file_name="2021002.pdf", content=b"200")

        assert scored.calibration == "markers"
        assert len(warper.calls) == 1

    def test_warp_failure_still_scores(self, repos, exam, course):
        _, results = repos
        scorer = _scorer(
            results,
            marker_detector=FakeDetector(MarkerDetection.found(CORNERS)),
            warper=FakeWarper(error=RuntimeError("singular matrix")),
        )
        scored = scorer.score(exam=exam, course=course, file_name="2021003.pdf", content=b"200")

        assert scored.calibration == "template"
        assert results.count_for_exam("e1") == 1

    def test_detector_exception_still_scores(self, repos, exam, course):
        _, results = repos
        scorer = _scorer(results, marker_detector=FakeDetector(error=ValueError("contours")))
        scored = scorer.score(exam=exam, course=course, file_name="2021004.pdf", content=b"200")
        assert scored.calibration == "template"

    def test_question_boxes_summed_and_bounded(self, repos, course):
        exams, results = repos
        exam = Exam(
            id="e2", course_id="c1", kind=ExamKind.FINAL, code="F1",
            questions=(
                ExamQuestion(number=1, learning_outcome_codes=("ÖÇ1",), max_score=6),
                ExamQuestion(number=2, learning_outcome_codes=("ÖÇ2",)),
            ),
        )
        vision = FakeVision("7")
        scorer = _scorer(results, layout=_question_layout(), vision=vision)

        scored = scorer.score(exam=exam, course=course, file_name="2021005.pdf", content=b"200")

        assert scored.question_scores == (6, 7)
        assert scored.total_score == 13
        assert vision.hints == ["question_score", "question_score"]

    def test_region_failure_is_not_document_failure(self, repos, exam, course):
        _, results = repos
        scorer = _scorer(results, vision=FakeVision(VisionServiceError("quota")))

        scored = scorer.score(exam=exam, course=course, file_name="2021006.pdf", content=b"200")

        assert scored.total_score == 0
        assert len(scored.region_errors) == 1
        assert "quota" in scored.region_errors[0]
        assert results.get("2021006", "e1").total_score == 0

    def test_missing_credentials_fails_document(self, repos, exam, course):
        _, results = repos
        scorer = _scorer(results, vision=FakeVision(MissingCredentialsError("GEMINI_API_KEY")))

        with pytest.raises(MissingCredentialsError):
            scorer.score(exam=exam, course=course, file_name="2021007.pdf", content=b"200")
        assert results.count_for_exam("e1") == 0

    def test_student_number_from_page_ocr(self, repos, exam, course):
        _, results = repos
        reader = FakeStudentReader("Student: 2021888")
        scored = _scorer(results, student_reader=reader).score(
            exam=exam, course=course, file_name="scan.pdf", content=b"200"
        )

        assert scored.student_number == "2021888"
        assert reader.scopes == ["page"]

    def test_student_number_box_read_first(self, repos, exam, course):
        _, results = repos
        default = SheetLayout.default(canonical_size=(620, 877))
        layout = SheetLayout(
            canonical_size=default.canonical_size,
            canonical=default.canonical,
            template=RegionSet(
                total_score=default.template.total_score,
                student_number=RegionBox(x_percent=5, y_percent=5, w_percent=40, h_percent=5),
            ),
        )
        reader = FakeStudentReader("2021777")
        scored = _scorer(results, student_reader=reader, layout=layout).score(
            exam=exam, course=course, file_name="scan.pdf", content=b"200"
        )

        assert scored.student_number == "2021777"
        assert reader.scopes == ["region"]

    def test_no_student_number_fails_without_result(self, repos, exam, course):
        _, results = repos
        vision = FakeVision("80")
        scorer = _scorer(results, vision=vision, student_reader=FakeStudentReader("EMPTY"))

        with pytest.raises(DocumentScoringError) as exc:
            scorer.score(exam=exam, course=course, file_name="scan.pdf", content=b"200")

        assert exc.value.code == "student_number_missing"
        assert results.count_for_exam("e1") == 0
        assert vision.hints == []

    def test_ocr_service_error_counts_as_missing_student_number(self, repos, exam, course):
        _, results = repos
        scorer = _scorer(results, student_reader=FakeStudentReader(error=VisionServiceError("down")))

        with pytest.raises(DocumentScoringError):
            scorer.score(exam=exam, course=course, file_name="scan.pdf", content=b"200")

    def test_multi_page_reads_student_number_by_ocr(self, repos, exam, course):
        _, results = repos
        reader = FakeStudentReader("2021555")
        scored = _scorer(results, student_reader=reader).score(
            exam=exam, course=course, file_name="2021001.pdf", content=b"200,201",
            page_index=1, page_count=2,
        )

        assert scored.student_number == "2021555"
        assert reader.scopes == ["page"]
        assert results.get("2021001", "e1") is None

    def test_multi_page_without_reader_fails(self, repos, exam, course):
        _, results = repos
        with pytest.raises(DocumentScoringError) as exc:
            _scorer(results).score(
                exam=exam, course=course, file_name="2021001.pdf", content=b"200,201",
                page_index=0, page_count=2,
            )
        assert exc.value.code == "student_number_missing"

    def test_raster_failure_propagates(self, repos, exam, course):
        _, results = repos
        with pytest.raises(RasterizationError):
            _scorer(results).score(exam=exam, course=course, file_name="2021009.pdf", content=b"corrupt")

    def test_empty_raster_is_unrecoverable(self, repos, exam, course):
        _, results = repos
        with pytest.raises(DocumentScoringError) as exc:
            _scorer(results).score(exam=exam, course=course, file_name="2021009.pdf", content=b"empty")
        assert exc.value.code == "unrecoverable_image"

    def test_duplicate_rejected_and_first_kept(self, repos, exam, course):
        _, results = repos
        _scorer(results, vision=FakeVision("80")).score(
            exam=exam, course=course, file_name="2021010.pdf", content=b"200"
        )

        with pytest.raises(DuplicateResultError):
            _scorer(results, vision=FakeVision("10")).score(
                exam=exam, course=course, file_name="2021010.pdf", content=b"200"
            )
        assert results.get("2021010", "e1").total_score == 80

    def test_debug_writer_called_and_failures_ignored(self, repos, exam, course):
        _, results = repos
        calls = []

        class BrokenWriter:
            def write(self, document_key, crops, grid=None):
                calls.append((document_key, len(crops), grid is not None))
                raise OSError("disk full")

        scored = _scorer(results, debug_writer=BrokenWriter()).score(
            exam=exam, course=course, file_name="2021011.pdf", content=b"200"
        )

        assert scored.total_score == 80
        assert calls == [("e1/2021011.pdf", 1, True)]


class TestScoreSingleDocument:
    def test_unknown_exam(self, repos):
        exams, results = repos
        with pytest.raises(ExamNotFoundError):
            score_single_document(
                exams=exams, scorer=_scorer(results), exam_id="missing",
                file_name="2021001.pdf", content=b"200",
            )

    def test_scores(self, repos):
        exams, results = repos
        scored = score_single_document(
            exams=exams, scorer=_scorer(results), exam_id="e1",
            file_name="2021001.pdf", content=b"200",
        )
        assert scored.result.exam_id == "e1"
        assert scored.result.course_id == "c1"

    def test_selected_page_of_multi_page_document(self, repos):
        exams, results = repos
        reader = FakeStudentReader("2021444")
        scored = score_single_document(
            exams=exams, scorer=_scorer(results, student_reader=reader), exam_id="e1",
            file_name="2021001.pdf", content=b"200,210", page_index=1,
        )
        assert scored.student_number == "2021444"

    def test_page_out_of_range(self, repos):
        exams, results = repos
        with pytest.raises(RasterizationError):
            score_single_document(
                exams=exams, scorer=_scorer(results), exam_id="e1",
                file_name="2021001.pdf", content=b"200,210", page_index=2,
            )
