"""
채점/평가 도메인 오류 - 순수 파이썬

code 는 배치 상태(perFileStatus)와 Err 결과에 그대로 실린다.
"""
from __future__ import annotations


class ScoringError(Exception):
    """examscan 도메인 오류 최상위."""
    code = "error"


class ValidationError(ScoringError):
    """입력 검증 실패 (시험/과목 누락, 빈 파일 목록 등). Job 생성 전 동기 반환."""
    code = "validation_error"


class NotFoundError(ScoringError):
    code = "not_found"


class ExamNotFoundError(NotFoundError):
    def __init__(self, exam_id: str) -> None:
        super().__init__(f"Exam not found: {exam_id}")
        self.exam_id = exam_id


class CourseNotFoundError(NotFoundError):
    def __init__(self, course_id: str) -> None:
        super().__init__(f"Course not found: {course_id}")
        self.course_id = course_id


class BatchNotFoundError(NotFoundError):
    def __init__(self, batch_id: str) -> None:
        super().__init__(f"Batch not found: {batch_id}")
        self.batch_id = batch_id


class ConflictError(ScoringError):
    code = "conflict"


class DuplicateResultError(ConflictError):
    """(student_number, exam_id) 결과가 이미 존재. 재시도하지 않음."""

    def __init__(self, student_number: str, exam_id: str) -> None:
        super().__init__(
            f"Result already exists for student {student_number} on exam {exam_id}"
        )
        self.student_number = student_number
        self.exam_id = exam_id


class ExamHasResultsError(ConflictError):
    def __init__(self, exam_id: str, result_count: int) -> None:
        super().__init__(f"Exam {exam_id} still owns {result_count} student result(s)")
        self.exam_id = exam_id
        self.result_count = result_count


class ExternalServiceError(ScoringError):
    """비전/OCR/래스터 등 외부 협력자 실패."""
    code = "external_service_error"


class VisionServiceError(ExternalServiceError):
    code = "vision_service_error"


class MissingCredentialsError(ExternalServiceError):
    """자격 증명 누락. 영역 단위로 복구하지 않고 문서 실패로 전파."""
    code = "missing_credentials"


class RasterizationError(ExternalServiceError):
    code = "rasterization_error"


class ScoreParseError(ScoringError):
    """비전 응답에서 정수를 읽을 수 없음."""
    code = "score_parse_error"


class DocumentScoringError(ScoringError):
    """문서 단위 실패 (학번 미검출, 이미지 없음 등)."""

    def __init__(self, message: str, code: str = "document_failed") -> None:
        super().__init__(message)
        self.code = code
