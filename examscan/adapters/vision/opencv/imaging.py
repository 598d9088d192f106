"""
이미지 유틸리티 (OpenCV)

- bytes ↔ BGR ndarray
- 큰 이미지 축소 (비전 API 전송 전 페이로드/메모리 절감)
- 디버그 크롭 덤프
"""

from __future__ import annotations

import logging
import os
import re
from typing import Optional, Sequence, Tuple

import cv2  # type: ignore
import numpy as np  # type: ignore

from examscan.domain.scanning.results import ExtractionResult

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^0-9A-Za-z._-]+")


def decode_image(content: bytes) -> Optional[np.ndarray]:
    """PNG/JPEG 등 → BGR. 디코딩 불가면 None."""
    if not content:
        return None
    buf = np.frombuffer(content, dtype=np.uint8)
    img = cv2.imdecode(buf, cv2.IMREAD_COLOR)
    if img is None or img.size == 0:
        return None
    return img


def encode_png(image: np.ndarray) -> bytes:
    ok, buf = cv2.imencode(".png", image)
    if not ok:
        raise ValueError("PNG encode failed")
    return buf.tobytes()


def resize_if_large(
    image: np.ndarray,
    max_width: int = 1920,
    max_height: int = 1920,
    max_megapixels: float = 4.0,
) -> Tuple[np.ndarray, bool]:
    """
    이미지가 크면 비율 유지 축소.

    Returns:
        tuple: (리사이징된 이미지, 리사이징 여부)
    """
    h, w = image.shape[:2]
    current_mp = (w * h) / 1_000_000

    if current_mp <= max_megapixels and w <= max_width and h <= max_height:
        return image, False

    scale_w = max_width / w if w > max_width else 1.0
    scale_h = max_height / h if h > max_height else 1.0
    scale_mp = np.sqrt(max_megapixels / current_mp) if current_mp > max_megapixels else 1.0
    scale = min(scale_w, scale_h, scale_mp)

    new_w = max(1, int(w * scale))
    new_h = max(1, int(h * scale))
    logger.debug("Resizing image: %dx%d -> %dx%d (scale=%.2f)", w, h, new_w, new_h, scale)
    return cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_AREA), True


def _safe_file_part(name: str) -> str:
    return _UNSAFE_CHARS.sub("_", name).strip("_") or "region"


class OpenCVDebugCropWriter:
    """DEBUG_CROP_DIR 아래 {document}/{region}.png + grid.png"""

    def __init__(self, directory: str) -> None:
        self._directory = directory

    def write(
        self,
        document_key: str,
        crops: Sequence[ExtractionResult],
        grid: Optional[np.ndarray] = None,
    ) -> None:
        out_dir = os.path.join(self._directory, _safe_file_part(document_key))
        os.makedirs(out_dir, exist_ok=True)
        for crop in crops:
            path = os.path.join(out_dir, f"{_safe_file_part(crop.name)}.png")
            cv2.imwrite(path, crop.image)
        if grid is not None:
            cv2.imwrite(os.path.join(out_dir, "grid.png"), grid)
        logger.debug("DEBUG_CROPS_WRITTEN | dir=%s | crops=%s", out_dir, len(crops))
