"""
인메모리 BatchJobStore - Job 별 잠금 (증가 + 상태 추가를 한 번에)

프로세스 수명 동안만 유지.
"""
from __future__ import annotations

import threading
from datetime import datetime
from typing import Dict, Optional

from examscan.domain.batch.entities import BatchJob, FileStatus
from examscan.domain.errors import BatchNotFoundError, ValidationError


class InMemoryBatchJobStore:

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._jobs: Dict[str, BatchJob] = {}
        self._locks: Dict[str, threading.Lock] = {}

    def create(self, job: BatchJob) -> None:
        with self._registry_lock:
            if job.batch_id in self._jobs:
                raise ValidationError(f"Batch already exists: {job.batch_id}")
            self._jobs[job.batch_id] = job.snapshot()
            self._locks[job.batch_id] = threading.Lock()

    def _entry(self, batch_id: str):
        with self._registry_lock:
            return self._jobs.get(batch_id), self._locks.get(batch_id)

    def get(self, batch_id: str) -> Optional[BatchJob]:
        job, lock = self._entry(batch_id)
        if job is None:
            return None
        with lock:
            return job.snapshot()

    def record_outcome(
        self,
        batch_id: str,
        status: FileStatus,
        now: Optional[datetime] = None,
    ) -> BatchJob:
        job, lock = self._entry(batch_id)
        if job is None:
            raise BatchNotFoundError(batch_id)
        with lock:
            job.record(status, now)
            return job.snapshot()
