"""
기하 정규화: 원본 페이지 → 정렬 캔버스 (마커) 또는 원본 + 템플릿 박스 (폴백)

Start → MarkersFound → AttemptWarp → WarpOK            → WarpedCanonical
                                   → WarpFailed        → TemplateFallback
      → MarkersMissing                                 → TemplateFallback
이미지 자체가 없을 때만 Unrecoverable.
"""
from __future__ import annotations

import logging
from typing import Any, List, Tuple

from examscan.application.ports.vision import MarkerDetector, PerspectiveWarper
from examscan.domain.scanning.regions import SheetLayout
from examscan.domain.scanning.results import (
    MarkerDetection,
    NormalizationResult,
    Point,
    TemplateFallback,
    Unrecoverable,
    WarpedCanonical,
)

logger = logging.getLogger(__name__)


def _is_empty_image(image: Any) -> bool:
    return image is None or getattr(image, "size", 0) == 0


def canvas_corners(canvas_size: Tuple[int, int]) -> List[Point]:
    """TL, TR, BL, BR (마커 중심이 매핑될 캔버스 모서리)."""
    w, h = canvas_size
    return [(0.0, 0.0), (float(w - 1), 0.0), (0.0, float(h - 1)), (float(w - 1), float(h - 1))]


def detect_markers_safely(detector: MarkerDetector, image: Any) -> MarkerDetection:
    """검출기 예외도 success=False 로 취급."""
    try:
        return detector.detect(image)
    except Exception as e:
        logger.warning("MARKER_DETECTION_ERROR | error=%s", e)
        return MarkerDetection.failed(f"marker detection error: {e}")


def normalize(
    image: Any,
    detection: MarkerDetection,
    layout: SheetLayout,
    warper: PerspectiveWarper,
    *,
    warp_enabled: bool = True,
) -> NormalizationResult:
    if _is_empty_image(image):
        return Unrecoverable(reason="page image is empty")

    if not warp_enabled:
        return TemplateFallback(image=image, regions=layout.template, reason="warp disabled")

    if not detection.success or not detection.corners:
        reason = detection.reason or "markers missing"
        logger.info("CALIBRATION_FALLBACK | reason=%s", reason)
        return TemplateFallback(image=image, regions=layout.template, reason=reason)

    try:
        warped = warper.warp(
            image,
            list(detection.corners),
            canvas_corners(layout.canonical_size),
            layout.canonical_size,
        )
    except Exception as e:
        logger.warning("CALIBRATION_FALLBACK | reason=warp failed | error=%s", e)
        return TemplateFallback(image=image, regions=layout.template, reason=f"warp failed: {e}")

    if _is_empty_image(warped):
        logger.warning("CALIBRATION_FALLBACK | reason=warp returned empty image")
        return TemplateFallback(image=image, regions=layout.template, reason="warp returned empty image")

    return WarpedCanonical(image=warped, regions=layout.canonical)
