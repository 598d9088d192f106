"""
점수 판독 어댑터 계약: 영역 이미지 → 0 이상 정수

- 응답 파싱: 빈 응답/EMPTY → 0, 첫 숫자열 → int, 그 외 ScoreParseError
- read_region: 영역 단위 실패는 0점 + 사유 (문서 실패로 올리지 않음)
  단 MissingCredentialsError 는 문서 실패로 전파
"""
from __future__ import annotations

import logging
import re
from typing import Any, Optional

from examscan.application.ports.vision import VisionInference
from examscan.domain.errors import MissingCredentialsError, ScoreParseError
from examscan.domain.scanning.results import BlankPlaceholder, ExtractionResult, RegionRead

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"\d+")


def parse_score_reply(reply: Optional[str]) -> int:
    text = (reply or "").strip()
    if not text or text.lower() == "empty":
        return 0
    m = _DIGITS.search(text)
    if not m:
        raise ScoreParseError(f"Invalid score value detected: {text[:40]!r}")
    return int(m.group(0))


def clamp_score(value: int, max_value: Optional[float] = None) -> int:
    value = max(0, int(value))
    if max_value is not None and max_value >= 0:
        value = min(value, int(max_value))
    return value


def read_score(
    vision: VisionInference,
    region_image: Any,
    context_hint: str,
    max_value: Optional[float] = None,
) -> int:
    reply = vision.read_text(region_image, context_hint)
    return clamp_score(parse_score_reply(reply), max_value)


def read_region(
    vision: VisionInference,
    extraction: ExtractionResult,
    context_hint: str,
    max_value: Optional[float] = None,
) -> RegionRead:
    if isinstance(extraction, BlankPlaceholder):
        return RegionRead(name=extraction.name, score=0, error=extraction.reason or "blank region")

    try:
        score = read_score(vision, extraction.image, context_hint, max_value)
    except MissingCredentialsError:
        raise
    except Exception as e:
        logger.warning("REGION_READ_FAILED | region=%s | error=%s", extraction.name, e)
        return RegionRead(name=extraction.name, score=0, error=f"{e.__class__.__name__}: {e}")

    return RegionRead(name=extraction.name, score=score)
