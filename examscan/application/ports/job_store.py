"""
배치 Job 저장소 포트 - 메모리(기본/테스트) 또는 Redis
"""
from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import Optional, Protocol

from examscan.domain.batch.entities import BatchJob, FileStatus


class BatchJobStore(Protocol):

    @abstractmethod
    def create(self, job: BatchJob) -> None:
        """카운트 0 상태로 등록."""
        ...

    @abstractmethod
    def get(self, batch_id: str) -> Optional[BatchJob]:
        """
        일관된 스냅샷 (카운트 합이 항상 맞는 상태). 없으면 None.
        """
        ...

    @abstractmethod
    def record_outcome(
        self,
        batch_id: str,
        status: FileStatus,
        now: Optional[datetime] = None,
    ) -> BatchJob:
        """
        processed/success|failed 증가 + perFileStatus 추가를 원자적으로.
        Returns: 반영 후 스냅샷.
        """
        ...
