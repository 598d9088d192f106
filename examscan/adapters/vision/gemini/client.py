"""
Gemini generateContent REST 클라이언트 (requests)

- 이미지(PNG) + 프롬프트 1회 호출 → 응답 텍스트
- 모델 404 이면 다음 후보 모델로 (모델 폐기/지역 미지원 대비)
- API 키 없음 → MissingCredentialsError (문서 실패로 전파)
- 그 외 HTTP/네트워크 오류 → VisionServiceError (영역 단위 0점 처리)
"""
from __future__ import annotations

import base64
import logging
from typing import Any, Dict, List, Optional, Sequence

import requests

from examscan.config import DEFAULT_GEMINI_FALLBACK_MODELS
from examscan.domain.errors import MissingCredentialsError, VisionServiceError

logger = logging.getLogger(__name__)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_TIMEOUT = 25.0


def _extract_text(data: Dict[str, Any]) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        feedback = data.get("promptFeedback") or {}
        raise VisionServiceError(f"Gemini returned no candidates: {feedback.get('blockReason') or 'empty'}")
    parts = ((candidates[0].get("content") or {}).get("parts")) or []
    return "".join(str(p.get("text") or "") for p in parts).strip()


class GeminiVisionClient:

    def __init__(
        self,
        api_key: Optional[str],
        *,
        model: str = DEFAULT_MODEL,
        fallback_models: Sequence[str] = DEFAULT_GEMINI_FALLBACK_MODELS,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._session = session or requests.Session()
        self._models: List[str] = [model] + [m for m in fallback_models if m != model]

    @property
    def models(self) -> List[str]:
        return list(self._models)

    def generate(self, prompt: str, png_bytes: bytes) -> str:
        if not self._api_key:
            raise MissingCredentialsError("GEMINI_API_KEY is not configured")

        body = {
            "generationConfig": {"temperature": 0.0, "maxOutputTokens": 32},
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": prompt},
                        {
                            "inline_data": {
                                "mime_type": "image/png",
                                "data": base64.b64encode(png_bytes).decode("ascii"),
                            }
                        },
                    ],
                }
            ],
        }

        for model in self._models:
            url = f"{GEMINI_API_BASE}/{model}:generateContent"
            try:
                r = self._session.post(
                    url, params={"key": self._api_key}, json=body, timeout=self._timeout
                )
            except requests.RequestException as e:
                raise VisionServiceError(f"Gemini request failed ({model}): {e}") from e

            if r.status_code == 404:
                logger.warning("GEMINI_MODEL_UNAVAILABLE | model=%s", model)
                continue
            if r.status_code >= 400:
                raise VisionServiceError(
                    f"Gemini HTTP {r.status_code} ({model}): {(r.text or '')[:200]}"
                )

            try:
                data = r.json()
            except ValueError as e:
                raise VisionServiceError(f"Gemini returned invalid JSON ({model})") from e

            text = _extract_text(data)
            logger.debug("GEMINI_REPLY | model=%s | text=%s", model, text[:60])
            return text

        raise VisionServiceError(f"No Gemini model available (tried {', '.join(self._models)})")
