"""
문서 → 페이지 래스터 (PyMuPDF)

PDF 는 페이지마다 RASTER_DPI 로 렌더링 (한 페이지 = 학생 한 명), 이미지 업로드(PNG/JPEG)는 1페이지로 디코딩.
실패는 RasterizationError (해당 페이지만 실패).
"""

from __future__ import annotations

import logging
import os

import fitz  # PyMuPDF
import numpy as np  # type: ignore
import cv2  # type: ignore

from examscan.adapters.vision.opencv.imaging import decode_image
from examscan.domain.errors import RasterizationError

logger = logging.getLogger(__name__)

DEFAULT_DPI = 200

_IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp", ".webp")
_PDF_MAGIC = b"%PDF"


def _is_pdf(content: bytes, file_name: str) -> bool:
    if content[:1024].lstrip().startswith(_PDF_MAGIC):
        return True
    return os.path.splitext(file_name or "")[1].lower() == ".pdf"


def _open_pdf(content: bytes, file_name: str) -> fitz.Document:
    try:
        return fitz.open(stream=content, filetype="pdf")
    except Exception as e:
        raise RasterizationError(f"PDF open failed: {file_name}: {e}") from e


class PyMuPdfRasterizer:

    def __init__(self, dpi: int = DEFAULT_DPI) -> None:
        self._dpi = dpi

    def page_count(self, content: bytes, file_name: str = "") -> int:
        if not content:
            raise RasterizationError(f"empty document: {file_name}")
        if not _is_pdf(content, file_name):
            return 1

        doc = _open_pdf(content, file_name)
        try:
            count = doc.page_count
        finally:
            doc.close()
        if count == 0:
            raise RasterizationError(f"PDF has no pages: {file_name}")
        return count

    def rasterize(self, content: bytes, file_name: str = "", page_index: int = 0) -> np.ndarray:
        if not content:
            raise RasterizationError(f"empty document: {file_name}")

        if not _is_pdf(content, file_name):
            if page_index != 0:
                raise RasterizationError(f"image upload has a single page: {file_name} (page {page_index + 1})")
            ext = os.path.splitext(file_name or "")[1].lower()
            img = decode_image(content)
            if img is None:
                kind = "image" if ext in _IMAGE_EXTENSIONS else "document"
                raise RasterizationError(f"unsupported or corrupt {kind}: {file_name}")
            return img

        doc = _open_pdf(content, file_name)
        try:
            if not 0 <= page_index < doc.page_count:
                raise RasterizationError(
                    f"PDF page {page_index + 1} out of range (pages={doc.page_count}): {file_name}"
                )
            page = doc.load_page(page_index)
            mat = fitz.Matrix(self._dpi / 72, self._dpi / 72)
            pix = page.get_pixmap(matrix=mat, alpha=False)
            arr = np.frombuffer(pix.samples, dtype=np.uint8).reshape(pix.height, pix.width, pix.n)
        except RasterizationError:
            raise
        except Exception as e:
            raise RasterizationError(f"PDF render failed: {file_name} (page {page_index + 1}): {e}") from e
        finally:
            doc.close()

        if pix.n == 1:
            img = cv2.cvtColor(arr, cv2.COLOR_GRAY2BGR)
        else:
            img = cv2.cvtColor(arr, cv2.COLOR_RGB2BGR)
        logger.debug(
            "PDF_RASTERIZED | file=%s | page=%s | size=%sx%s | dpi=%s",
            file_name, page_index + 1, pix.width, pix.height, self._dpi,
        )
        return img
