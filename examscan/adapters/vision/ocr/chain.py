from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

from examscan.application.ports.vision import StudentNumberReader
from examscan.domain.errors import ExternalServiceError
from examscan.domain.scanning.student_number import from_ocr_reply

logger = logging.getLogger(__name__)


class ChainedStudentNumberReader:
    """
    engine=auto: 앞 엔진이 실패하거나 학번 형태를 못 찾으면 다음 엔진.
    모든 엔진이 예외로 끝나면 마지막 오류를 올린다.
    """

    def __init__(self, readers: Sequence[StudentNumberReader]) -> None:
        if not readers:
            raise ValueError("at least one reader is required")
        self._readers: List[StudentNumberReader] = list(readers)

    def read_student_number(self, image: Any, scope: str = "page") -> Optional[str]:
        last_error: Optional[ExternalServiceError] = None
        any_succeeded = False
        for reader in self._readers:
            try:
                raw = reader.read_student_number(image, scope)
            except ExternalServiceError as e:
                logger.warning(
                    "OCR_ENGINE_FALLBACK | engine=%s | error=%s", reader.__class__.__name__, e
                )
                last_error = e
                continue
            any_succeeded = True
            if from_ocr_reply(raw):
                return raw
        if not any_succeeded and last_error is not None:
            raise last_error
        return None
