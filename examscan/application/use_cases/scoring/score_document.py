"""
문서 1건 채점 파이프라인

래스터 → 학번(파일명) → 마커 검출 → 정규화 → 학번(박스 OCR → 전체 페이지 OCR)
→ 영역 추출 → 영역별 점수 판독 → 총점/백분율 → LO/PO 맵 → 결과 1건 저장

문서 단위 실패는 예외로 올라가고, 배치 오케스트레이터가 perFileStatus 로 기록한다.
영역 단위 실패는 여기서 0점 + 사유로 흡수된다.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

from examscan.application.ports.repositories import ExamRepository, StudentResultRepository
from examscan.application.ports.vision import (
    HINT_QUESTION_SCORE,
    HINT_TOTAL_SCORE,
    SCOPE_PAGE,
    SCOPE_REGION,
    DebugCropWriter,
    MarkerDetector,
    PerspectiveWarper,
    Rasterizer,
    StudentNumberReader,
    VisionInference,
)
from examscan.application.use_cases.assessment.manage_results import (
    build_result,
    load_exam_and_course,
)
from examscan.application.use_cases.scoring.extract_regions import (
    build_debug_sheet,
    extract,
    extract_many,
)
from examscan.application.use_cases.scoring.normalize_page import detect_markers_safely, normalize
from examscan.application.use_cases.scoring.read_score import read_region
from examscan.domain.assessment.entities import Course, Exam, ResultSource, StudentExamResult
from examscan.domain.errors import DocumentScoringError, ExternalServiceError, MissingCredentialsError
from examscan.domain.scanning import student_number as sn
from examscan.domain.scanning.regions import SheetLayout
from examscan.domain.scanning.results import (
    ExtractionResult,
    RegionRead,
    TemplateFallback,
    Unrecoverable,
)
from examscan.domain.shared.ids import region_name

logger = logging.getLogger(__name__)

DEFAULT_MAX_REGION_SCORE = 100


@dataclass(frozen=True)
class DocumentScore:
    file_name: str
    student_number: str
    calibration: str  # markers | template
    total_score: float
    question_scores: Tuple[int, ...]
    region_errors: Tuple[str, ...]
    result: StudentExamResult


class DocumentScorer:
    """포트만 의존. 조립은 framework.container 에서."""

    def __init__(
        self,
        *,
        results: StudentResultRepository,
        rasterizer: Rasterizer,
        marker_detector: MarkerDetector,
        warper: PerspectiveWarper,
        vision: VisionInference,
        student_reader: Optional[StudentNumberReader] = None,
        layout: Optional[SheetLayout] = None,
        warp_enabled: bool = True,
        max_region_score: int = DEFAULT_MAX_REGION_SCORE,
        debug_writer: Optional[DebugCropWriter] = None,
    ) -> None:
        self._results = results
        self._rasterizer = rasterizer
        self._detector = marker_detector
        self._warper = warper
        self._vision = vision
        self._student_reader = student_reader
        self._layout = layout or SheetLayout.default()
        self._warp_enabled = warp_enabled
        self._max_region_score = max_region_score
        self._debug_writer = debug_writer

    def score(
        self,
        *,
        exam: Exam,
        course: Course,
        file_name: str,
        content: bytes,
        now: Optional[datetime] = None,
        page_index: int = 0,
        page_count: int = 1,
    ) -> DocumentScore:
        """
        page_count > 1: 페이지마다 학생이 다르므로 학번은 OCR 로만 (파일명 무시).
        """
        now = now or datetime.now(timezone.utc)
        document_key = f"{exam.id}/{file_name}"
        if page_count > 1:
            document_key = f"{document_key}#p{page_index + 1}"

        image = self._rasterizer.rasterize(content, file_name, page_index)
        if image is None or getattr(image, "size", 0) == 0:
            raise DocumentScoringError("rasterized page is empty", code="unrecoverable_image")

        student_number = sn.from_filename(file_name) if page_count <= 1 else None

        detection = detect_markers_safely(self._detector, image)
        normalized = normalize(
            image, detection, self._layout, self._warper, warp_enabled=self._warp_enabled
        )
        if isinstance(normalized, Unrecoverable):
            raise DocumentScoringError(normalized.reason, code="unrecoverable_image")

        if student_number is None:
            student_number = self._read_student_number(document_key, normalized.image, normalized.regions, image)
        if student_number is None:
            raise DocumentScoringError(
                "Student number could not be derived from filename or page OCR",
                code="student_number_missing",
            )

        if isinstance(normalized, TemplateFallback):
            logger.info(
                "TEMPLATE_PATH | document=%s | reason=%s", document_key, normalized.reason
            )

        crops, reads, question_scores = self._read_scores(exam, document_key, normalized.image, normalized.regions)
        self._dump_debug(document_key, crops)

        total_score = float(sum(r.score for r in reads))
        if exam.max_score:
            total_score = min(total_score, float(exam.max_score))
        region_errors = tuple(f"{r.name}: {r.error}" for r in reads if r.error)

        result = build_result(
            exam=exam,
            course=course,
            student_number=student_number,
            total_score=total_score,
            source=ResultSource.PIPELINE,
            now=now,
        )
        saved = self._results.add(result)

        logger.info(
            "DOCUMENT_SCORED | document=%s | student=%s | calibration=%s | total=%s | region_errors=%s",
            document_key, student_number, normalized.calibration, total_score, len(region_errors),
        )
        return DocumentScore(
            file_name=file_name,
            student_number=student_number,
            calibration=normalized.calibration,
            total_score=total_score,
            question_scores=question_scores,
            region_errors=region_errors,
            result=saved,
        )

    def count_pages(self, file_name: str, content: bytes) -> int:
        return self._rasterizer.page_count(content, file_name)

    def _read_scores(
        self,
        exam: Exam,
        document_key: str,
        image: Any,
        regions,
    ) -> Tuple[List[ExtractionResult], List[RegionRead], Tuple[int, ...]]:
        """문항 박스가 있으면 문항 수만큼 읽어 합산, 없으면 총점 박스 하나."""
        question_boxes = list(regions.question_scores)[: len(exam.questions)] if exam.questions else []

        if question_boxes:
            crops = extract_many(image, question_boxes, document_key=document_key, label="q")
            reads = []
            for question, crop in zip(exam.questions, crops):
                limit = question.max_score if question.max_score is not None else self._max_region_score
                reads.append(read_region(self._vision, crop, HINT_QUESTION_SCORE, limit))
            return crops, reads, tuple(r.score for r in reads)

        limit = exam.max_score if exam.max_score else self._max_region_score
        crop = extract(image, regions.total_score, region_name(document_key, "total", 0))
        read = read_region(self._vision, crop, HINT_TOTAL_SCORE, limit)
        return [crop], [read], ()

    def _read_student_number(
        self,
        document_key: str,
        normalized_image: Any,
        regions,
        page_image: Any,
    ) -> Optional[str]:
        if self._student_reader is None:
            return None

        if regions.student_number is not None:
            crop = extract(normalized_image, regions.student_number, region_name(document_key, "student", 0))
            found = self._ocr_student_number(document_key, crop.image, SCOPE_REGION)
            if found:
                return found

        return self._ocr_student_number(document_key, page_image, SCOPE_PAGE)

    def _ocr_student_number(self, document_key: str, image: Any, scope: str) -> Optional[str]:
        try:
            raw = self._student_reader.read_student_number(image, scope)
        except MissingCredentialsError:
            raise
        except ExternalServiceError as e:
            logger.warning(
                "STUDENT_NUMBER_OCR_FAILED | document=%s | scope=%s | error=%s",
                document_key, scope, e,
            )
            return None
        found = sn.from_ocr_reply(raw)
        if found:
            logger.info("STUDENT_NUMBER_FROM_OCR | document=%s | scope=%s", document_key, scope)
        return found

    def _dump_debug(self, document_key: str, crops: List[ExtractionResult]) -> None:
        if self._debug_writer is None:
            return
        sheet = build_debug_sheet(crops)
        try:
            self._debug_writer.write(document_key, sheet.crops, sheet.grid)
        except Exception as e:
            logger.warning("DEBUG_DUMP_FAILED | document=%s | error=%s", document_key, e)


def score_single_document(
    *,
    exams: ExamRepository,
    scorer: DocumentScorer,
    exam_id: str,
    file_name: str,
    content: bytes,
    now: Optional[datetime] = None,
    page_index: int = 0,
) -> DocumentScore:
    """동기 단건 채점 (기본: 첫 페이지). 검증/문서 오류가 그대로 호출자에게 전파된다."""
    exam, course = load_exam_and_course(exams, exam_id)
    page_count = scorer.count_pages(file_name, content)
    return scorer.score(
        exam=exam,
        course=course,
        file_name=file_name,
        content=content,
        now=now,
        page_index=page_index,
        page_count=page_count,
    )
