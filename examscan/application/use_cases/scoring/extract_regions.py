"""
영역 추출: 박스 → 클램프된 크롭, 배치 불가 박스는 같은 크기의 흰 플레이스홀더.
절대 예외를 올리지 않는다 (다음 영역 처리가 계속되어야 함).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np  # type: ignore

from examscan.domain.scanning.regions import RegionBox
from examscan.domain.scanning.results import BlankPlaceholder, Cropped, ExtractionResult
from examscan.domain.shared.ids import region_name

logger = logging.getLogger(__name__)

BLANK_VALUE = 255


def _image_size(image: Any) -> Tuple[int, int]:
    if image is None or getattr(image, "ndim", 0) < 2:
        return 0, 0
    h, w = image.shape[:2]
    return int(w), int(h)


def _blank_like(image: Any, width: int, height: int) -> np.ndarray:
    w = max(1, int(width))
    h = max(1, int(height))
    channels = image.shape[2] if image is not None and getattr(image, "ndim", 0) == 3 else None
    shape = (h, w, channels) if channels else (h, w)
    return np.full(shape, BLANK_VALUE, dtype=np.uint8)


def extract(image: Any, box: RegionBox, name: str) -> ExtractionResult:
    img_w, img_h = _image_size(image)
    intended = box.to_pixel_rect((img_w, img_h))
    rect = intended.clamp(img_w, img_h)

    if rect.is_empty():
        logger.warning(
            "REGION_OUT_OF_BOUNDS | region=%s | intended=%s | image=%sx%s",
            name, intended.to_dict(), img_w, img_h,
        )
        return BlankPlaceholder(
            name=name,
            image=_blank_like(image, intended.width, intended.height),
            rect=intended,
            reason=f"region {intended.to_dict()} outside image {img_w}x{img_h}",
        )

    crop = image[rect.top:rect.bottom, rect.left:rect.right].copy()
    return Cropped(name=name, image=crop, rect=rect)


def extract_many(
    image: Any,
    boxes: Sequence[RegionBox],
    *,
    document_key: str,
    label: str,
) -> List[ExtractionResult]:
    return [
        extract(image, box, region_name(document_key, label, i))
        for i, box in enumerate(boxes)
    ]


@dataclass(frozen=True)
class DebugSheet:
    crops: Tuple[ExtractionResult, ...]
    grid: Optional[np.ndarray] = None


def _as_bgr(img: np.ndarray) -> np.ndarray:
    if img.ndim == 2:
        return np.stack([img, img, img], axis=-1)
    if img.shape[2] == 4:
        return img[:, :, :3]
    return img


def compose_grid(images: Sequence[np.ndarray], columns: int = 4, pad: int = 8) -> np.ndarray:
    """크롭들을 셀 크기를 맞춰 격자로 합성 (흰 배경)."""
    if not images:
        raise ValueError("no crops to compose")
    tiles = [_as_bgr(np.asarray(img, dtype=np.uint8)) for img in images]
    cell_h = max(t.shape[0] for t in tiles) + pad
    cell_w = max(t.shape[1] for t in tiles) + pad
    cols = max(1, min(columns, len(tiles)))
    rows = (len(tiles) + cols - 1) // cols

    grid = np.full((rows * cell_h, cols * cell_w, 3), BLANK_VALUE, dtype=np.uint8)
    for i, tile in enumerate(tiles):
        r, c = divmod(i, cols)
        y = r * cell_h
        x = c * cell_w
        grid[y:y + tile.shape[0], x:x + tile.shape[1]] = tile
    return grid


def build_debug_sheet(crops: Sequence[ExtractionResult], columns: int = 4) -> DebugSheet:
    """best-effort: 합성 실패해도 개별 크롭은 그대로 반환."""
    try:
        grid = compose_grid([c.image for c in crops], columns=columns)
    except Exception as e:
        logger.warning("DEBUG_GRID_FAILED | crops=%s | error=%s", len(crops), e)
        grid = None
    return DebugSheet(crops=tuple(crops), grid=grid)
