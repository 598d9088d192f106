"""
비전/래스터 포트 - 외부 협력자 계약

이미지 = numpy BGR 배열. 인코딩(PNG 등)은 어댑터 책임.
"""
from __future__ import annotations

from abc import abstractmethod
from typing import Any, Optional, Protocol, Sequence, Tuple

from examscan.domain.scanning.results import ExtractionResult, MarkerDetection, Point

# 비전 호출 문맥 힌트
HINT_TOTAL_SCORE = "total_score"
HINT_QUESTION_SCORE = "question_score"
HINT_GENERIC = "generic"

# 학번 OCR 범위
SCOPE_REGION = "region"
SCOPE_PAGE = "page"


class Rasterizer(Protocol):

    @abstractmethod
    def page_count(self, content: bytes, file_name: str = "") -> int:
        """문서의 페이지 수 (이미지 업로드는 1). 실패 시 RasterizationError."""
        ...

    @abstractmethod
    def rasterize(self, content: bytes, file_name: str = "", page_index: int = 0) -> Any:
        """문서 bytes → page_index(0부터) 페이지 이미지. 실패 시 RasterizationError (해당 페이지만 실패)."""
        ...


class MarkerDetector(Protocol):

    @abstractmethod
    def detect(self, image: Any) -> MarkerDetection:
        """마커 4개 미검출은 success=False (예외 아님)."""
        ...


class PerspectiveWarper(Protocol):

    @abstractmethod
    def warp(
        self,
        image: Any,
        src: Sequence[Point],
        dst: Sequence[Point],
        canvas_size: Tuple[int, int],
    ) -> Any:
        """예외 가능 → 호출자가 템플릿 경로로 폴백."""
        ...


class VisionInference(Protocol):

    @abstractmethod
    def read_text(self, image: Any, context_hint: str) -> str:
        """영역 이미지 → 자유 형식 응답 텍스트."""
        ...


class StudentNumberReader(Protocol):

    @abstractmethod
    def read_student_number(self, image: Any, scope: str = SCOPE_PAGE) -> Optional[str]:
        """숫자 문자열 또는 None."""
        ...


class DebugCropWriter(Protocol):

    @abstractmethod
    def write(self, document_key: str, crops: Sequence[ExtractionResult], grid: Any = None) -> None:
        """best-effort 디버그 덤프."""
        ...
