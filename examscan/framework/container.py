"""
조립(Composition Root) - 설정에 따라 어댑터를 골라 Use Case 에 주입

- JOB_STORE=redis 이고 Redis 연결 가능 → RedisBatchJobStore, 아니면 인메모리
- RESULT_STORE=django → Django ORM (호출 측에서 Django 설정/ setup 완료 전제), 아니면 인메모리
- STUDENT_NUMBER_OCR_ENGINE: gemini | google | tesseract | auto(gemini → google → tesseract)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from examscan.application.ports.job_store import BatchJobStore
from examscan.application.ports.repositories import ExamRepository, StudentResultRepository
from examscan.application.ports.vision import StudentNumberReader
from examscan.application.use_cases.scoring.score_document import DocumentScorer
from examscan.application.use_cases.scoring.submit_batch import BatchOrchestrator
from examscan.config import ScoringConfig
from examscan.domain.scanning.regions import SheetLayout

logger = logging.getLogger(__name__)


@dataclass
class Container:
    config: ScoringConfig
    exams: Any
    results: Any
    jobs: BatchJobStore
    scorer: DocumentScorer
    orchestrator: BatchOrchestrator


def build_job_store(config: ScoringConfig) -> BatchJobStore:
    from examscan.adapters.db.memory.job_store import InMemoryBatchJobStore

    if config.JOB_STORE == "redis":
        from examscan.adapters.cache.redis.client import get_redis_client
        from examscan.adapters.cache.redis.job_store import RedisBatchJobStore

        client = get_redis_client(config)
        if client is not None:
            return RedisBatchJobStore(client, ttl_seconds=config.BATCH_STATUS_TTL_SECONDS)
        logger.warning("JOB_STORE=redis but Redis unavailable, using in-memory job store")
    return InMemoryBatchJobStore()


def build_repositories(config: ScoringConfig):
    if config.RESULT_STORE == "django":
        from examscan.adapters.db.django.repositories import (
            DjangoExamRepository,
            DjangoStudentResultRepository,
        )
        return DjangoExamRepository(), DjangoStudentResultRepository()

    from examscan.adapters.db.memory.repositories import (
        InMemoryExamRepository,
        InMemoryStudentResultRepository,
    )
    exams = InMemoryExamRepository()
    results = InMemoryStudentResultRepository()
    exams.bind_results(results)
    return exams, results


def build_student_reader(config: ScoringConfig, gemini_client) -> Optional[StudentNumberReader]:
    from examscan.adapters.vision.gemini.student_number import GeminiStudentNumberReader

    engine = config.STUDENT_NUMBER_OCR_ENGINE
    if engine == "gemini":
        return GeminiStudentNumberReader(gemini_client)
    if engine == "google":
        from examscan.adapters.vision.ocr.google import GoogleVisionStudentNumberReader
        return GoogleVisionStudentNumberReader()
    if engine == "tesseract":
        from examscan.adapters.vision.ocr.tesseract import TesseractStudentNumberReader
        return TesseractStudentNumberReader()
    if engine == "auto":
        from examscan.adapters.vision.ocr.chain import ChainedStudentNumberReader
        from examscan.adapters.vision.ocr.google import GoogleVisionStudentNumberReader
        from examscan.adapters.vision.ocr.tesseract import TesseractStudentNumberReader

        readers: List[StudentNumberReader] = []
        if config.GEMINI_API_KEY:
            readers.append(GeminiStudentNumberReader(gemini_client))
        readers.append(GoogleVisionStudentNumberReader())
        readers.append(TesseractStudentNumberReader())
        return ChainedStudentNumberReader(readers)

    raise ValueError(f"Unsupported STUDENT_NUMBER_OCR_ENGINE: {engine}")


def build_container(
    config: Optional[ScoringConfig] = None,
    *,
    exams: Optional[ExamRepository] = None,
    results: Optional[StudentResultRepository] = None,
    jobs: Optional[BatchJobStore] = None,
) -> Container:
    from examscan.adapters.vision.gemini.client import GeminiVisionClient
    from examscan.adapters.vision.gemini.score_reader import GeminiScoreReader
    from examscan.adapters.vision.opencv.imaging import OpenCVDebugCropWriter
    from examscan.adapters.vision.opencv.markers import OpenCVMarkerDetector
    from examscan.adapters.vision.opencv.warp import OpenCVPerspectiveWarper
    from examscan.adapters.vision.pdf.rasterizer import PyMuPdfRasterizer

    config = config or ScoringConfig.load()

    if exams is None or results is None:
        default_exams, default_results = build_repositories(config)
        exams = exams or default_exams
        results = results or default_results
    jobs = jobs or build_job_store(config)

    layout = SheetLayout.load(config.SHEET_TEMPLATE_PATH) if config.SHEET_TEMPLATE_PATH else SheetLayout.default()

    gemini = GeminiVisionClient(
        config.GEMINI_API_KEY,
        model=config.GEMINI_MODEL,
        fallback_models=config.GEMINI_FALLBACK_MODELS,
        timeout=config.GEMINI_TIMEOUT,
    )

    scorer = DocumentScorer(
        results=results,
        rasterizer=PyMuPdfRasterizer(dpi=config.RASTER_DPI),
        marker_detector=OpenCVMarkerDetector(),
        warper=OpenCVPerspectiveWarper(),
        vision=GeminiScoreReader(gemini),
        student_reader=build_student_reader(config, gemini),
        layout=layout,
        warp_enabled=config.ENABLE_OPENCV_WARP,
        max_region_score=config.MAX_REGION_SCORE,
        debug_writer=OpenCVDebugCropWriter(config.DEBUG_CROP_DIR) if config.DEBUG_CROP_DIR else None,
    )
    orchestrator = BatchOrchestrator(
        exams=exams,
        jobs=jobs,
        scorer=scorer,
        max_workers=config.BATCH_MAX_WORKERS,
    )
    logger.info(
        "CONTAINER_READY | job_store=%s | result_store=%s | ocr_engine=%s | workers=%s",
        jobs.__class__.__name__, results.__class__.__name__,
        config.STUDENT_NUMBER_OCR_ENGINE, config.BATCH_MAX_WORKERS,
    )
    return Container(
        config=config,
        exams=exams,
        results=results,
        jobs=jobs,
        scorer=scorer,
        orchestrator=orchestrator,
    )
