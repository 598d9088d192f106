"""
정규화/추출 결과 - 태그드 유니온 (예외 흐름 대신 isinstance 분기)

NormalizationResult = WarpedCanonical | TemplateFallback | Unrecoverable
ExtractionResult    = Cropped | BlankPlaceholder

image 필드는 numpy 배열 (H, W[, C]); 도메인은 배열 내용에 관여하지 않는다.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

from examscan.domain.scanning.regions import PixelRect, RegionSet

Point = Tuple[float, float]

CALIBRATION_MARKERS = "markers"
CALIBRATION_TEMPLATE = "template"


@dataclass(frozen=True)
class MarkerDetection:
    """success=False 는 정상 결과 (예외 아님). corners 순서: TL, TR, BL, BR."""
    success: bool
    corners: Optional[Tuple[Point, Point, Point, Point]] = None
    reason: str = ""

    @classmethod
    def found(cls, corners: Tuple[Point, Point, Point, Point]) -> "MarkerDetection":
        return cls(success=True, corners=corners)

    @classmethod
    def failed(cls, reason: str) -> "MarkerDetection":
        return cls(success=False, corners=None, reason=reason)


@dataclass(frozen=True)
class WarpedCanonical:
    image: Any
    regions: RegionSet
    calibration: str = CALIBRATION_MARKERS


@dataclass(frozen=True)
class TemplateFallback:
    """원본(비정렬) 이미지 + 템플릿 박스. 워프 재시도가 아닌 별도 종료 경로."""
    image: Any
    regions: RegionSet
    reason: str = ""
    calibration: str = CALIBRATION_TEMPLATE


@dataclass(frozen=True)
class Unrecoverable:
    reason: str


NormalizationResult = Union[WarpedCanonical, TemplateFallback, Unrecoverable]


@dataclass(frozen=True)
class Cropped:
    name: str
    image: Any
    rect: PixelRect


@dataclass(frozen=True)
class BlankPlaceholder:
    """이미지 밖 박스 → 의도한 크기의 흰 이미지. reason 은 로그/감사용."""
    name: str
    image: Any
    rect: PixelRect
    reason: str = ""


ExtractionResult = Union[Cropped, BlankPlaceholder]


@dataclass(frozen=True)
class RegionRead:
    name: str
    score: int
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
