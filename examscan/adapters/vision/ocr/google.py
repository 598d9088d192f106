# examscan/adapters/vision/ocr/google.py
from __future__ import annotations

from typing import Any, Optional

import numpy as np  # type: ignore

# google cloud vision
from google.cloud import vision  # type: ignore

from examscan.adapters.vision.opencv.imaging import encode_png
from examscan.domain.errors import VisionServiceError


class GoogleVisionStudentNumberReader:
    """
    Google Cloud Vision text_detection.
    - service account는 GOOGLE_APPLICATION_CREDENTIALS 또는 기본 환경에 따름
    - 클라이언트는 첫 호출 때 생성
    """

    def __init__(self, client: Optional[Any] = None) -> None:
        self._client = client

    def _get_client(self):
        if self._client is None:
            self._client = vision.ImageAnnotatorClient()
        return self._client

    def read_student_number(self, image: np.ndarray, scope: str = "page") -> Optional[str]:
        try:
            client = self._get_client()
            response = client.text_detection(image=vision.Image(content=encode_png(image)))
        except Exception as e:
            raise VisionServiceError(f"google vision failed: {e}") from e

        if getattr(response, "error", None) and response.error.message:
            raise VisionServiceError(f"google vision error: {response.error.message}")

        annotations = getattr(response, "text_annotations", None) or []
        if not annotations:
            return None
        return annotations[0].description or None
