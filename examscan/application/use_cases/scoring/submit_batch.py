"""
배치 오케스트레이터

- submit_batch: 동기 검증(시험/과목/파일 수) → 페이지 수 집계 → Job 생성(카운트 0) → 워커 풀에 페이지 투입 → batch_id 즉시 반환
- 작업 단위는 페이지 (PDF 한 페이지 = 학생 한 명), totalFiles 도 페이지 수
- 워커 풀: 고정 크기 ThreadPoolExecutor (동시 페이지 수 상한)
- 페이지 실패는 perFileStatus 로 기록, 형제 페이지는 계속
- 완료된 배치의 Future/취소 토큰은 마지막 페이지 기록 직후 해제
- 카운터 갱신은 BatchJobStore.record_outcome 이 원자적으로 수행
- Job 별 취소 토큰: shutdown(cancel_pending=True) 에서만 set → 아직 시작 안 한 문서는 "cancelled" 실패로 기록
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from examscan.application.ports.job_store import BatchJobStore
from examscan.application.ports.repositories import ExamRepository
from examscan.application.use_cases.assessment.manage_results import load_exam_and_course
from examscan.application.use_cases.scoring.score_document import DocumentScore, DocumentScorer
from examscan.domain.assessment.entities import Course, Exam
from examscan.domain.batch.entities import BatchJob, FileStatus, PageWorkItem, UploadedDocument
from examscan.domain.errors import BatchNotFoundError, RasterizationError, ScoringError, ValidationError
from examscan.domain.shared.ids import generate_batch_id
from examscan.domain.shared.result import Err, Ok, Result, err_from_exception

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 5
CANCELLED_REASON = "cancelled"


class BatchOrchestrator:

    def __init__(
        self,
        *,
        exams: ExamRepository,
        jobs: BatchJobStore,
        scorer: DocumentScorer,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        if max_workers < 1:
            raise ValidationError(f"max_workers must be >= 1 (got {max_workers})")
        self._exams = exams
        self._jobs = jobs
        self._scorer = scorer
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="examscan-batch"
        )
        self._lock = threading.Lock()
        self._futures: Dict[str, List[Future]] = {}
        self._cancel_tokens: Dict[str, threading.Event] = {}
        self._closed = False

    def submit_batch(
        self,
        exam_id: str,
        documents: Sequence[UploadedDocument],
        now: Optional[datetime] = None,
    ) -> str:
        exam, course = load_exam_and_course(self._exams, exam_id)
        if not documents:
            raise ValidationError("At least one document is required")

        items = self._expand(documents)

        with self._lock:
            if self._closed:
                raise ValidationError("Batch orchestrator is shut down")

            batch_id = generate_batch_id()
            job = BatchJob(
                batch_id=batch_id,
                exam_id=exam.id,
                course_id=course.id,
                total_files=len(items),
                started_at=now or datetime.now(timezone.utc),
            )
            self._jobs.create(job)

            token = threading.Event()
            self._cancel_tokens[batch_id] = token
            self._futures[batch_id] = [
                self._executor.submit(self._run_document, batch_id, exam, course, item, token)
                for item in items
            ]

        logger.info(
            "BATCH_SUBMITTED | batch_id=%s | exam_id=%s | files=%s | pages=%s",
            batch_id, exam.id, len(documents), len(items),
        )
        return batch_id

    def _expand(self, documents: Sequence[UploadedDocument]) -> List[PageWorkItem]:
        """문서 → 페이지 작업 단위. 페이지 수를 못 읽으면 1건으로 두고 워커에서 실패 기록."""
        items: List[PageWorkItem] = []
        for doc in documents:
            try:
                count = self._scorer.count_pages(doc.file_name, doc.content)
            except RasterizationError as e:
                logger.warning("PAGE_COUNT_FAILED | file=%s | error=%s", doc.file_name, e)
                count = 1
            items.extend(
                PageWorkItem(document=doc, page_index=i, page_count=count) for i in range(count)
            )
        return items

    def poll_batch(self, batch_id: str) -> BatchJob:
        job = self._jobs.get(batch_id)
        if job is None:
            raise BatchNotFoundError(batch_id)
        return job

    def wait_for_batch(self, batch_id: str, timeout: Optional[float] = None) -> BatchJob:
        """CLI/테스트용: 해당 배치의 모든 문서가 끝날 때까지 대기 후 스냅샷."""
        with self._lock:
            futures = list(self._futures.get(batch_id, []))
        if futures:
            wait(futures, timeout=timeout)
        return self.poll_batch(batch_id)

    def shutdown(self, *, cancel_pending: bool = False, wait_for_running: bool = True) -> None:
        with self._lock:
            self._closed = True
            if cancel_pending:
                for token in self._cancel_tokens.values():
                    token.set()
        logger.info("BATCH_ORCHESTRATOR_SHUTDOWN | cancel_pending=%s", cancel_pending)
        self._executor.shutdown(wait=wait_for_running)

    def _process(
        self,
        exam: Exam,
        course: Course,
        item: PageWorkItem,
    ) -> Result[DocumentScore]:
        try:
            return Ok(self._scorer.score(
                exam=exam,
                course=course,
                file_name=item.document.file_name,
                content=item.document.content,
                page_index=item.page_index,
                page_count=item.page_count,
            ))
        except ScoringError as e:
            logger.warning("DOCUMENT_FAILED | file=%s | code=%s | error=%s", item.label, e.code, e)
            return err_from_exception(e)
        except Exception as e:
            logger.exception("DOCUMENT_FAILED | file=%s | error=%s", item.label, e)
            return err_from_exception(e)

    def _run_document(
        self,
        batch_id: str,
        exam: Exam,
        course: Course,
        item: PageWorkItem,
        token: threading.Event,
    ) -> None:
        if token.is_set():
            status = FileStatus.failed(item.label, CANCELLED_REASON, error_code=CANCELLED_REASON)
        else:
            outcome = self._process(exam, course, item)
            if isinstance(outcome, Ok):
                scored = outcome.value
                status = FileStatus.succeeded(
                    item.label,
                    student_number=scored.student_number,
                    calibration=scored.calibration,
                    total_score=scored.total_score,
                    question_scores=scored.question_scores,
                    region_errors=scored.region_errors,
                )
            else:
                status = _failed_status(item.label, outcome)

        try:
            job = self._jobs.record_outcome(batch_id, status)
        except Exception:
            logger.exception(
                "BATCH_STATUS_UPDATE_FAILED | batch_id=%s | file=%s", batch_id, item.label
            )
            raise

        if job.is_complete:
            self._release(batch_id)
            logger.info(
                "BATCH_COMPLETED | batch_id=%s | success=%s | failed=%s",
                batch_id, job.success_count, job.failed_count,
            )

    def _release(self, batch_id: str) -> None:
        """완료된 배치의 Future/취소 토큰 정리 (상태는 Job 저장소에 남는다)."""
        with self._lock:
            self._futures.pop(batch_id, None)
            self._cancel_tokens.pop(batch_id, None)

    def active_batch_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._futures)


def _failed_status(file_name: str, err: Err) -> FileStatus:
    return FileStatus.failed(file_name, err.message, error_code=err.code)
