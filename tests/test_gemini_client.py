import numpy as np
import pytest
import requests

from examscan.adapters.vision.gemini.client import GeminiVisionClient
from examscan.adapters.vision.gemini.score_reader import PROMPTS, GeminiScoreReader
from examscan.adapters.vision.gemini.student_number import (
    PAGE_PROMPT,
    REGION_PROMPT,
    GeminiStudentNumberReader,
)
from examscan.domain.errors import MissingCredentialsError, VisionServiceError


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    def __init__(self, responses):
        self._responses = list(responses)
        self.calls = []

    def post(self, url, params=None, json=None, timeout=None):
        self.calls.append({"url": url, "params": params, "json": json, "timeout": timeout})
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def _reply(text):
    return FakeResponse(payload={"candidates": [{"content": {"parts": [{"text": text}]}}]})


def _client(responses, **kwargs):
    session = FakeSession(responses)
    kwargs.setdefault("model", "gemini-2.5-flash")
    kwargs.setdefault("fallback_models", ("gemini-2.0-flash",))
    return GeminiVisionClient("test-key", session=session, **kwargs), session


class TestGeminiVisionClient:
    def test_returns_text(self):
        client, session = _client([_reply(" 85 \n")])

        assert client.generate("prompt", b"png") == "85"
        call = session.calls[0]
        assert call["url"].endswith("/gemini-2.5-flash:generateContent")
        assert call["params"] == {"key": "test-key"}
        parts = call["json"]["contents"][0]["parts"]
        assert parts[0] == {"text": "prompt"}
        assert parts[1]["inline_data"]["mime_type"] == "image/png"
        assert parts[1]["inline_data"]["data"] == "cG5n"

    def test_model_not_found_falls_back(self):
        client, session = _client([FakeResponse(status_code=404), _reply("42")])

        assert client.generate("prompt", b"png") == "42"
        assert session.calls[1]["url"].endswith("/gemini-2.0-flash:generateContent")

    def test_all_models_missing(self):
        client, _ = _client([FakeResponse(status_code=404), FakeResponse(status_code=404)])
        with pytest.raises(VisionServiceError, match="No Gemini model"):
            client.generate("prompt", b"png")

    def test_http_error(self):
        client, session = _client([FakeResponse(status_code=500, text="boom")])
        with pytest.raises(VisionServiceError, match="HTTP 500"):
            client.generate("prompt", b"png")
        assert len(session.calls) == 1

    def test_network_error(self):
        client, _ = _client([requests.ConnectionError("reset")])
        with pytest.raises(VisionServiceError):
            client.generate("prompt", b"png")

    def test_invalid_json(self):
        client, _ = _client([FakeResponse(payload=None)])
        with pytest.raises(VisionServiceError, match="invalid JSON"):
            client.generate("prompt", b"png")

    def test_blocked_prompt(self):
        client, _ = _client([FakeResponse(payload={"promptFeedback": {"blockReason": "SAFETY"}})])
        with pytest.raises(VisionServiceError, match="SAFETY"):
            client.generate("prompt", b"png")

    def test_missing_key(self):
        session = FakeSession([])
        client = GeminiVisionClient(None, session=session)

        with pytest.raises(MissingCredentialsError):
            client.generate("prompt", b"png")
        assert session.calls == []

    def test_primary_model_not_repeated_in_fallbacks(self):
        client = GeminiVisionClient("k", model="a", fallback_models=("b", "a", "c"), session=FakeSession([]))
        assert client.models == ["a", "b", "c"]


class TestGeminiReaders:
    def test_score_reader_prompt_by_hint(self):
        client, session = _client([_reply("7")])
        reader = GeminiScoreReader(client)

        assert reader.read_text(np.full((20, 20, 3), 255, dtype=np.uint8), "question_score") == "7"
        assert session.calls[0]["json"]["contents"][0]["parts"][0]["text"] == PROMPTS["question_score"]

    def test_student_reader_scopes(self):
        client, session = _client([_reply("2021001"), _reply("")])
        reader = GeminiStudentNumberReader(client)
        image = np.full((20, 20, 3), 255, dtype=np.uint8)

        assert reader.read_student_number(image, "region") == "2021001"
        assert reader.read_student_number(image, "page") is None
        prompts = [c["json"]["contents"][0]["parts"][0]["text"] for c in session.calls]
        assert prompts == [REGION_PROMPT, PAGE_PROMPT]
