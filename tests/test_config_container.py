import pytest

from examscan.adapters.cache.redis.client import reset_redis_state
from examscan.adapters.db.memory.job_store import InMemoryBatchJobStore
from examscan.adapters.db.memory.repositories import InMemoryExamRepository
from examscan.adapters.vision.gemini.student_number import GeminiStudentNumberReader
from examscan.adapters.vision.ocr.chain import ChainedStudentNumberReader
from examscan.adapters.vision.ocr.tesseract import TesseractStudentNumberReader
from examscan.config import DEFAULT_GEMINI_FALLBACK_MODELS, ScoringConfig
from examscan.framework.container import (
    build_container,
    build_job_store,
    build_student_reader,
)

ENV_KEYS = (
    "GEMINI_API_KEY", "GEMINI_MODEL", "GEMINI_FALLBACK_MODELS", "GEMINI_TIMEOUT",
    "STUDENT_NUMBER_OCR_ENGINE", "BATCH_MAX_WORKERS", "ENABLE_OPENCV_WARP", "RASTER_DPI",
    "SHEET_TEMPLATE_PATH", "DEBUG_CROP_DIR", "MAX_REGION_SCORE", "JOB_STORE", "RESULT_STORE",
    "REDIS_HOST", "REDIS_PORT", "REDIS_PASSWORD", "REDIS_DB", "BATCH_STATUS_TTL_SECONDS",
)


@pytest.fixture
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    reset_redis_state()
    yield monkeypatch
    reset_redis_state()


class TestScoringConfig:
    def test_defaults(self, clean_env):
        config = ScoringConfig.load()

        assert config.GEMINI_API_KEY is None
        assert config.GEMINI_MODEL == "gemini-2.5-flash"
        assert config.GEMINI_FALLBACK_MODELS == DEFAULT_GEMINI_FALLBACK_MODELS
        assert config.BATCH_MAX_WORKERS == 5
        assert config.ENABLE_OPENCV_WARP is True
        assert config.JOB_STORE == "memory"
        assert config.BATCH_STATUS_TTL_SECONDS == 86400

    def test_overrides(self, clean_env):
        clean_env.setenv("GEMINI_API_KEY", "k")
        clean_env.setenv("GEMINI_FALLBACK_MODELS", "a, b,,c")
        clean_env.setenv("BATCH_MAX_WORKERS", "3")
        clean_env.setenv("ENABLE_OPENCV_WARP", "false")
        clean_env.setenv("JOB_STORE", "Redis")
        clean_env.setenv("STUDENT_NUMBER_OCR_ENGINE", "TESSERACT")

        config = ScoringConfig.load()

        assert config.GEMINI_API_KEY == "k"
        assert config.GEMINI_FALLBACK_MODELS == ("a", "b", "c")
        assert config.BATCH_MAX_WORKERS == 3
        assert config.ENABLE_OPENCV_WARP is False
        assert config.JOB_STORE == "redis"
        assert config.STUDENT_NUMBER_OCR_ENGINE == "tesseract"

    def test_empty_value_uses_default(self, clean_env):
        clean_env.setenv("RASTER_DPI", "")
        assert ScoringConfig.load().RASTER_DPI == 200


class TestContainer:
    def test_memory_defaults(self, clean_env):
        container = build_container(ScoringConfig())

        assert isinstance(container.jobs, InMemoryBatchJobStore)
        assert isinstance(container.exams, InMemoryExamRepository)
        assert container.orchestrator.max_workers == 5
        container.orchestrator.shutdown()

    def test_redis_without_host_falls_back(self, clean_env):
        store = build_job_store(ScoringConfig(JOB_STORE="redis"))
        assert isinstance(store, InMemoryBatchJobStore)

    def test_student_reader_engines(self):
        assert isinstance(build_student_reader(ScoringConfig(), gemini_client=None), GeminiStudentNumberReader)
        assert isinstance(
            build_student_reader(ScoringConfig(STUDENT_NUMBER_OCR_ENGINE="tesseract"), gemini_client=None),
            TesseractStudentNumberReader,
        )
        assert isinstance(
            build_student_reader(ScoringConfig(STUDENT_NUMBER_OCR_ENGINE="auto"), gemini_client=None),
            ChainedStudentNumberReader,
        )

    def test_unknown_engine(self):
        with pytest.raises(ValueError):
            build_student_reader(ScoringConfig(STUDENT_NUMBER_OCR_ENGINE="paper"), gemini_client=None)
