from __future__ import annotations

from typing import Optional

import numpy as np  # type: ignore

from examscan.adapters.vision.gemini.client import GeminiVisionClient
from examscan.adapters.vision.opencv.imaging import encode_png, resize_if_large
from examscan.application.ports.vision import SCOPE_REGION

REGION_PROMPT = (
    "This image is the student number box of an exam answer sheet. "
    "Reply with the student number digits only. If it is empty reply EMPTY."
)
PAGE_PROMPT = (
    "This is a scanned exam answer sheet. Find the student number "
    "(a 5 to 12 digit number, usually near the top next to the student's name). "
    "Reply with the digits only. If there is no student number reply EMPTY."
)


class GeminiStudentNumberReader:

    def __init__(self, client: GeminiVisionClient) -> None:
        self._client = client

    def read_student_number(self, image: np.ndarray, scope: str = "page") -> Optional[str]:
        prompt = REGION_PROMPT if scope == SCOPE_REGION else PAGE_PROMPT
        small, _ = resize_if_large(image)
        reply = self._client.generate(prompt, encode_png(small))
        return reply or None
