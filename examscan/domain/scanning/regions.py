"""
답안지 영역(RegionBox)과 레이아웃(SheetLayout).

박스 정의 두 가지:
- 절대좌표 {x, y, w, h}: reference_size(기본 레거시 1654×2339) 기준 px → 실제 이미지 크기 비율로 스케일
- 백분율 {xPercent, yPercent, wPercent, hPercent}: 실제 이미지 크기 기준 (둘 다 있으면 백분율 우선)

픽셀 변환은 클램프 전 값(PixelRect)을 돌려주고, 클램프는 추출기가 한다.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from examscan.domain.errors import ValidationError

# 마커 정렬 후 캔버스 (A4 300dpi)
CANONICAL_SIZE: Tuple[int, int] = (2480, 3508)
# 구버전 템플릿이 그려진 기준 크기
LEGACY_REFERENCE_SIZE: Tuple[int, int] = (1654, 2339)

# 정렬 캔버스 기준 총점 박스
CANONICAL_TOTAL_SCORE_BOX = {"x": 1500, "y": 1650, "w": 350, "h": 120}
# 마커 실패 시 총점 박스 (이미지 대비 %)
TEMPLATE_TOTAL_SCORE_BOX = {"xPercent": 60.0, "yPercent": 47.0, "wPercent": 14.0, "hPercent": 3.4}


def _clamp(v: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, v))


def _float_or_none(v: Any) -> Optional[float]:
    if v is None or v == "":
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        raise ValidationError(f"invalid box coordinate: {v!r}")


@dataclass(frozen=True)
class PixelRect:
    left: int
    top: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.left + self.width

    @property
    def bottom(self) -> int:
        return self.top + self.height

    def clamp(self, image_width: int, image_height: int) -> "PixelRect":
        """left/top ≥ 0, right/bottom ≤ 이미지 크기. 결과 폭/높이는 0 이하가 될 수 있다."""
        left = _clamp(self.left, 0, max(0, image_width))
        top = _clamp(self.top, 0, max(0, image_height))
        right = _clamp(self.right, 0, max(0, image_width))
        bottom = _clamp(self.bottom, 0, max(0, image_height))
        return PixelRect(left=left, top=top, width=right - left, height=bottom - top)

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def to_dict(self) -> Dict[str, int]:
        return {"x": self.left, "y": self.top, "w": self.width, "h": self.height}


@dataclass(frozen=True)
class RegionBox:
    x: Optional[float] = None
    y: Optional[float] = None
    w: Optional[float] = None
    h: Optional[float] = None
    x_percent: Optional[float] = None
    y_percent: Optional[float] = None
    w_percent: Optional[float] = None
    h_percent: Optional[float] = None
    reference_size: Tuple[int, int] = LEGACY_REFERENCE_SIZE

    def __post_init__(self) -> None:
        if not self.is_percentage() and not self.is_absolute():
            raise ValidationError("RegionBox needs either x/y/w/h or xPercent/yPercent/wPercent/hPercent")
        ref_w, ref_h = self.reference_size
        if ref_w <= 0 or ref_h <= 0:
            raise ValidationError(f"invalid reference size: {self.reference_size}")

    def is_percentage(self) -> bool:
        return None not in (self.x_percent, self.y_percent, self.w_percent, self.h_percent)

    def is_absolute(self) -> bool:
        return None not in (self.x, self.y, self.w, self.h)

    def to_pixel_rect(self, image_size: Tuple[int, int]) -> PixelRect:
        img_w, img_h = image_size
        if self.is_percentage():
            return PixelRect(
                left=int(round(img_w * self.x_percent / 100.0)),
                top=int(round(img_h * self.y_percent / 100.0)),
                width=int(round(img_w * self.w_percent / 100.0)),
                height=int(round(img_h * self.h_percent / 100.0)),
            )

        ref_w, ref_h = self.reference_size
        sx = img_w / ref_w
        sy = img_h / ref_h
        return PixelRect(
            left=int(round(self.x * sx)),
            top=int(round(self.y * sy)),
            width=int(round(self.w * sx)),
            height=int(round(self.h * sy)),
        )

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        reference_size: Tuple[int, int] = LEGACY_REFERENCE_SIZE,
    ) -> "RegionBox":
        ref_w = data.get("referenceWidth")
        ref_h = data.get("referenceHeight")
        if ref_w and ref_h:
            reference_size = (int(ref_w), int(ref_h))
        return cls(
            x=_float_or_none(data.get("x")),
            y=_float_or_none(data.get("y")),
            w=_float_or_none(data.get("w", data.get("width"))),
            h=_float_or_none(data.get("h", data.get("height"))),
            x_percent=_float_or_none(data.get("xPercent")),
            y_percent=_float_or_none(data.get("yPercent")),
            w_percent=_float_or_none(data.get("wPercent")),
            h_percent=_float_or_none(data.get("hPercent")),
            reference_size=reference_size,
        )


@dataclass(frozen=True)
class RegionSet:
    """한 좌표계(정렬 캔버스 or 원본 이미지)에서 쓰는 박스 묶음."""
    total_score: RegionBox
    question_scores: Tuple[RegionBox, ...] = ()
    student_number: Optional[RegionBox] = None


@dataclass(frozen=True)
class SheetLayout:
    """
    canonical: 마커 정렬 성공 시 (정렬 캔버스 좌표)
    template:  마커 실패/워프 실패 시 (원본 이미지 대비 %, 또는 레거시 절대좌표)
    """
    canonical_size: Tuple[int, int]
    canonical: RegionSet
    template: RegionSet

    @classmethod
    def default(cls, canonical_size: Tuple[int, int] = CANONICAL_SIZE) -> "SheetLayout":
        return cls(
            canonical_size=canonical_size,
            canonical=RegionSet(
                total_score=RegionBox.from_dict(CANONICAL_TOTAL_SCORE_BOX, reference_size=CANONICAL_SIZE),
            ),
            template=RegionSet(
                total_score=RegionBox.from_dict(TEMPLATE_TOTAL_SCORE_BOX),
            ),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SheetLayout":
        """
        템플릿 JSON:
        {
          "canonicalSize": {"width": 2480, "height": 3508},
          "templateSize": {"width": 1654, "height": 2339},   # 레거시 절대좌표 기준
          "canonical": {"totalScoreBox": {...}, "questionBoxes": [...], "studentNumberBox": {...}},
          "template":  {"totalScoreBox": {...}, "questionBoxes": [...], "studentNumberBox": {...}}
        }
        누락된 섹션은 기본값.
        """
        default = cls.default()

        size = data.get("canonicalSize") or {}
        canonical_size = (
            int(size.get("width") or default.canonical_size[0]),
            int(size.get("height") or default.canonical_size[1]),
        )
        tsize = data.get("templateSize") or {}
        template_ref = (
            int(tsize.get("width") or LEGACY_REFERENCE_SIZE[0]),
            int(tsize.get("height") or LEGACY_REFERENCE_SIZE[1]),
        )

        canonical = _region_set_from_dict(
            data.get("canonical") or {}, canonical_size, default.canonical
        )
        template = _region_set_from_dict(
            data.get("template") or {}, template_ref, default.template
        )
        return cls(canonical_size=canonical_size, canonical=canonical, template=template)

    @classmethod
    def load(cls, path: str) -> "SheetLayout":
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))


def _region_set_from_dict(
    data: Mapping[str, Any],
    reference_size: Tuple[int, int],
    fallback: RegionSet,
) -> RegionSet:
    total_raw = data.get("totalScoreBox")
    total = (
        RegionBox.from_dict(total_raw, reference_size=reference_size)
        if total_raw
        else fallback.total_score
    )
    questions: List[RegionBox] = [
        RegionBox.from_dict(q, reference_size=reference_size)
        for q in (data.get("questionBoxes") or [])
    ]
    sn_raw = data.get("studentNumberBox")
    student_number = (
        RegionBox.from_dict(sn_raw, reference_size=reference_size) if sn_raw else None
    )
    return RegionSet(
        total_score=total,
        question_scores=tuple(questions),
        student_number=student_number,
    )
