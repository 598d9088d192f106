# examscan/adapters/vision/ocr/tesseract.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import cv2  # type: ignore
import numpy as np  # type: ignore
from PIL import Image  # type: ignore
import pytesseract  # type: ignore

from examscan.domain.errors import VisionServiceError

logger = logging.getLogger(__name__)

# 숫자만, 한 블록 텍스트
DIGITS_CONFIG = "--psm 6 -c tessedit_char_whitelist=0123456789"


@dataclass
class OCRResult:
    text: str
    confidence: Optional[float] = None
    raw: Optional[Any] = None


def tesseract_ocr(image: np.ndarray, config: str = DIGITS_CONFIG) -> OCRResult:
    rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB) if image.ndim == 3 else image
    img = Image.fromarray(rgb)

    try:
        data = pytesseract.image_to_data(img, config=config, output_type=pytesseract.Output.DICT)
    except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as e:
        raise VisionServiceError(f"tesseract failed: {e}") from e

    text = " ".join(t for t in data.get("text", []) if t and t.strip()).strip()

    confs = [float(c) for c in data.get("conf", []) if float(c) != -1]
    confidence = (sum(confs) / len(confs)) if confs else None

    return OCRResult(text=text, confidence=confidence, raw=None)


class TesseractStudentNumberReader:

    def __init__(self, config: str = DIGITS_CONFIG) -> None:
        self._config = config

    def read_student_number(self, image: np.ndarray, scope: str = "page") -> Optional[str]:
        result = tesseract_ocr(image, self._config)
        logger.debug("TESSERACT_OCR | scope=%s | confidence=%s", scope, result.confidence)
        return result.text or None
