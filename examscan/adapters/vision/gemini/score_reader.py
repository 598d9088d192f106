"""
VisionInference 구현 - 영역 이미지 → Gemini 응답 텍스트
"""
from __future__ import annotations

from typing import Dict

import numpy as np  # type: ignore

from examscan.adapters.vision.gemini.client import GeminiVisionClient
from examscan.adapters.vision.opencv.imaging import encode_png, resize_if_large
from examscan.application.ports.vision import HINT_GENERIC, HINT_QUESTION_SCORE, HINT_TOTAL_SCORE

PROMPTS: Dict[str, str] = {
    HINT_TOTAL_SCORE: (
        "This image is the TOTAL SCORE box of a graded exam answer sheet. "
        "Read the handwritten number written by the grader. "
        "Reply with digits only (e.g. 85). If the box is empty reply EMPTY."
    ),
    HINT_QUESTION_SCORE: (
        "This image is a single question's score box on a graded exam answer sheet. "
        "Reply with the handwritten number only, digits only. If it is empty reply EMPTY."
    ),
    HINT_GENERIC: (
        "Read the number in this image. Reply with digits only, or EMPTY if there is none."
    ),
}


class GeminiScoreReader:

    def __init__(self, client: GeminiVisionClient) -> None:
        self._client = client

    def read_text(self, image: np.ndarray, context_hint: str) -> str:
        prompt = PROMPTS.get(context_hint, PROMPTS[HINT_GENERIC])
        small, _ = resize_if_large(image)
        return self._client.generate(prompt, encode_png(small))
