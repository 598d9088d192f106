# examscan/adapters/vision/opencv/warp.py
from __future__ import annotations

from typing import Sequence, Tuple

import cv2  # type: ignore
import numpy as np  # type: ignore

from examscan.domain.scanning.results import Point


def _order_points(pts: np.ndarray) -> np.ndarray:
    """(4,2) 임의 순서 → TL, TR, BL, BR."""
    rect = np.zeros((4, 2), dtype=np.float32)
    s = pts.sum(axis=1)
    rect[0] = pts[np.argmin(s)]  # top-left
    rect[3] = pts[np.argmax(s)]  # bottom-right

    diff = np.diff(pts, axis=1)
    rect[1] = pts[np.argmin(diff)]  # top-right
    rect[2] = pts[np.argmax(diff)]  # bottom-left
    return rect


class OpenCVPerspectiveWarper:
    """
    4점 투시 변환. src/dst 는 TL, TR, BL, BR 순서.
    cv2 오류는 그대로 올린다 (호출자가 템플릿 경로로 폴백).
    """

    def __init__(self, reorder_source: bool = False) -> None:
        self._reorder_source = reorder_source

    def warp(
        self,
        image: np.ndarray,
        src: Sequence[Point],
        dst: Sequence[Point],
        canvas_size: Tuple[int, int],
    ) -> np.ndarray:
        if len(src) != 4 or len(dst) != 4:
            raise ValueError(f"perspective transform needs 4 points (got {len(src)}/{len(dst)})")

        src_pts = np.array(src, dtype=np.float32).reshape(4, 2)
        if self._reorder_source:
            src_pts = _order_points(src_pts)
        dst_pts = np.array(dst, dtype=np.float32).reshape(4, 2)

        out_w, out_h = canvas_size
        M = cv2.getPerspectiveTransform(src_pts, dst_pts)
        return cv2.warpPerspective(
            image, M, (int(out_w), int(out_h)), borderValue=(255, 255, 255)
        )
