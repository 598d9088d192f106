"""
Redis 기반 배치 Job 상태

- 키: batch:{batch_id}:meta     (Hash: exam_id, course_id, total_files, processed, success, failed, started_at, completed_at)
      batch:{batch_id}:statuses (List: FileStatus JSON)
- TTL: BATCH_STATUS_TTL_SECONDS (기본 24시간)
- 갱신: WATCH meta → 존재/완료 확인 → MULTI/EXEC (증가 + 상태 추가 + completed_at + TTL 한 번에)
  동시 갱신으로 meta 가 바뀌면 WatchError → 재시도

재시작 후 조회는 가능하지만 진행 중이던 문서는 재개되지 않는다.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import redis

from examscan.domain.batch.entities import BatchJob, FileStatus
from examscan.domain.errors import BatchNotFoundError, ExternalServiceError

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 86400  # 24시간


def _meta_key(batch_id: str) -> str:
    return f"batch:{batch_id}:meta"


def _statuses_key(batch_id: str) -> str:
    return f"batch:{batch_id}:statuses"


def _safe_int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return int(default)


def _parse_dt(v: Any) -> Optional[datetime]:
    return datetime.fromisoformat(v) if v else None


class RedisBatchJobStore:

    def __init__(self, client: redis.Redis, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        self._client = client
        self._ttl = ttl_seconds

    def create(self, job: BatchJob) -> None:
        mapping = {
            "batch_id": job.batch_id,
            "exam_id": job.exam_id,
            "course_id": job.course_id,
            "total_files": job.total_files,
            "processed": 0,
            "success": 0,
            "failed": 0,
            "started_at": (job.started_at or datetime.now(timezone.utc)).isoformat(),
            "completed_at": "",
        }
        try:
            pipe = self._client.pipeline(transaction=True)
            pipe.delete(_statuses_key(job.batch_id))
            pipe.hset(_meta_key(job.batch_id), mapping=mapping)
            pipe.expire(_meta_key(job.batch_id), self._ttl)
            pipe.execute()
        except redis.RedisError as e:
            raise ExternalServiceError(f"Redis batch create failed: {e}") from e

    def get(self, batch_id: str) -> Optional[BatchJob]:
        try:
            pipe = self._client.pipeline(transaction=True)
            pipe.hgetall(_meta_key(batch_id))
            pipe.lrange(_statuses_key(batch_id), 0, -1)
            meta, raw_statuses = pipe.execute()
        except redis.RedisError as e:
            raise ExternalServiceError(f"Redis batch get failed: {e}") from e

        if not meta:
            return None
        return BatchJob(
            batch_id=meta.get("batch_id") or batch_id,
            exam_id=meta.get("exam_id", ""),
            course_id=meta.get("course_id", ""),
            total_files=_safe_int(meta.get("total_files")),
            processed_count=_safe_int(meta.get("processed")),
            success_count=_safe_int(meta.get("success")),
            failed_count=_safe_int(meta.get("failed")),
            statuses=[FileStatus.from_dict(json.loads(s)) for s in (raw_statuses or [])],
            started_at=_parse_dt(meta.get("started_at")),
            completed_at=_parse_dt(meta.get("completed_at")),
        )

    def record_outcome(
        self,
        batch_id: str,
        status: FileStatus,
        now: Optional[datetime] = None,
    ) -> BatchJob:
        meta_key = _meta_key(batch_id)
        statuses_key = _statuses_key(batch_id)
        outcome_field = "success" if status.status == "success" else "failed"
        payload = json.dumps(status.to_dict(), ensure_ascii=False)

        try:
            with self._client.pipeline(transaction=True) as pipe:
                while True:
                    try:
                        # WATCH 이후 읽기는 즉시 실행, multi() 이후는 EXEC 까지 큐잉
                        pipe.watch(meta_key)
                        if not pipe.exists(meta_key):
                            raise BatchNotFoundError(batch_id)
                        processed, total = (_safe_int(v) for v in pipe.hmget(meta_key, "processed", "total_files"))
                        if total and processed >= total:
                            raise ValueError(f"Batch {batch_id} already complete: {processed}/{total}")

                        pipe.multi()
                        pipe.hincrby(meta_key, "processed", 1)
                        pipe.hincrby(meta_key, outcome_field, 1)
                        pipe.rpush(statuses_key, payload)
                        if total and processed + 1 >= total:
                            completed_at = (now or datetime.now(timezone.utc)).isoformat()
                            pipe.hset(meta_key, "completed_at", completed_at)
                        pipe.expire(meta_key, self._ttl)
                        pipe.expire(statuses_key, self._ttl)
                        pipe.execute()
                        break
                    except redis.WatchError:
                        logger.debug("BATCH_UPDATE_RETRY | batch_id=%s", batch_id)
                        continue
        except redis.RedisError as e:
            raise ExternalServiceError(f"Redis batch update failed: {e}") from e

        job = self.get(batch_id)
        if job is None:
            raise BatchNotFoundError(batch_id)
        return job
