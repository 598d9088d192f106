"""
보정 마커 검출 (OpenCV)

답안지 네 모서리의 검은 정사각형 마커를 찾는다.
- 이진화(OTSU, 반전) → 외곽 윤곽
- 후보: 면적 비율 범위 안, 가로세로 비 ~1, 채움률 높음
- 각 페이지 모서리에서 가장 가까운 후보 (대각선 길이 × max_corner_distance 이내)
4개를 못 찾으면 success=False (예외 아님).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import cv2  # type: ignore
import numpy as np  # type: ignore

from examscan.domain.scanning.results import MarkerDetection, Point

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarkerDetectorConfig:
    # 마커 1개 면적 / 페이지 면적
    min_area_ratio: float = 0.00005
    max_area_ratio: float = 0.01
    # 정사각형 판정 (w/h)
    min_aspect: float = 0.7
    max_aspect: float = 1.3
    # 윤곽 면적 / bbox 면적
    min_fill_ratio: float = 0.75
    # 모서리 ~ 마커 중심 최대 거리 (대각선 대비)
    max_corner_distance: float = 0.25


def _to_gray(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


class OpenCVMarkerDetector:

    def __init__(self, config: Optional[MarkerDetectorConfig] = None) -> None:
        self._cfg = config or MarkerDetectorConfig()

    def _candidates(self, image: np.ndarray) -> List[Point]:
        h, w = image.shape[:2]
        page_area = float(w * h)

        gray = _to_gray(image)
        blur = cv2.GaussianBlur(gray, (5, 5), 0)
        _, binary = cv2.threshold(blur, 0, 255, cv2.THRESH_BINARY_INV + cv2.THRESH_OTSU)
        contours, _ = cv2.findContours(binary, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

        out: List[Point] = []
        for cnt in contours:
            area = cv2.contourArea(cnt)
            ratio = area / page_area
            if ratio < self._cfg.min_area_ratio or ratio > self._cfg.max_area_ratio:
                continue
            x, y, bw, bh = cv2.boundingRect(cnt)
            if bh == 0 or bw == 0:
                continue
            aspect = bw / float(bh)
            if aspect < self._cfg.min_aspect or aspect > self._cfg.max_aspect:
                continue
            if area / float(bw * bh) < self._cfg.min_fill_ratio:
                continue
            out.append((x + bw / 2.0, y + bh / 2.0))
        return out

    def detect(self, image: np.ndarray) -> MarkerDetection:
        if image is None or image.size == 0:
            return MarkerDetection.failed("empty image")

        h, w = image.shape[:2]
        candidates = self._candidates(image)
        if len(candidates) < 4:
            return MarkerDetection.failed(f"markers missing: found {len(candidates)} candidate(s)")

        limit = float(np.hypot(w, h)) * self._cfg.max_corner_distance
        page_corners = [(0.0, 0.0), (float(w), 0.0), (0.0, float(h)), (float(w), float(h))]

        chosen: List[Point] = []
        remaining = list(candidates)
        for cx, cy in page_corners:
            best = min(remaining, key=lambda p: np.hypot(p[0] - cx, p[1] - cy))
            if np.hypot(best[0] - cx, best[1] - cy) > limit:
                return MarkerDetection.failed("markers missing: no marker near a page corner")
            chosen.append(best)
            remaining.remove(best)
            if not remaining and len(chosen) < 4:
                return MarkerDetection.failed("markers missing: not enough distinct markers")

        corners: Tuple[Point, Point, Point, Point] = (chosen[0], chosen[1], chosen[2], chosen[3])
        logger.debug("MARKERS_FOUND | corners=%s", corners)
        return MarkerDetection.found(corners)
