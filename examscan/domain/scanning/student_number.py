"""
학번 추출 규칙 (파일명 → 학번 박스 OCR → 전체 페이지 OCR 순서는 use case 에서)
"""
from __future__ import annotations

import os
import re
from typing import Optional

# 2021xxxx 형태(입학년도 접두) 우선, 그 외 7~12자리
FILENAME_PATTERN = re.compile(r"\b(20\d{4,6}|\d{7,12})\b")
OCR_PATTERN = re.compile(r"\d{5,12}")
MIN_DIGITS = 5

_SEPARATORS = re.compile(r"[_\-.]+")


def from_filename(file_name: str) -> Optional[str]:
    """
    "2021123456_midterm.pdf" → "2021123456".
    '_' 는 단어 문자라 \\b 가 끊기지 않으므로 구분자를 공백으로 바꾼 뒤 매칭.
    """
    if not file_name:
        return None
    stem = os.path.splitext(os.path.basename(file_name))[0]
    m = FILENAME_PATTERN.search(_SEPARATORS.sub(" ", stem))
    return m.group(1) if m else None


def from_ocr_reply(reply: Optional[str]) -> Optional[str]:
    """OCR/비전 응답 → 학번. 빈 응답/EMPTY/5자리 미만이면 None."""
    text = (reply or "").strip()
    if not text or text.upper() == "EMPTY":
        return None
    m = OCR_PATTERN.search(re.sub(r"\s+", "", text))
    if not m:
        return None
    digits = m.group(0)
    return digits if len(digits) >= MIN_DIGITS else None
