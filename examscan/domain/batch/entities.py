"""
배치 Job 엔티티 - 프로세스 수명 동안만 유지 (재시작 내구성 없음)

카운터 규칙:
- success + failed == processed
- processed 는 단조 증가, total 을 넘지 않음
- processed == total 이면 completed_at 기록
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Tuple

FileStatusKind = Literal["success", "failed"]


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def _parse_dt(v: Any) -> Optional[datetime]:
    if not v:
        return None
    if isinstance(v, datetime):
        return v
    return datetime.fromisoformat(str(v))


@dataclass(frozen=True)
class UploadedDocument:
    file_name: str
    content: bytes


@dataclass(frozen=True)
class PageWorkItem:
    """배치 작업 단위: 문서 한 페이지 = 학생 한 명. page_index 는 0부터."""
    document: UploadedDocument
    page_index: int = 0
    page_count: int = 1

    @property
    def label(self) -> str:
        """perFileStatus 표시 이름. 여러 페이지 문서만 페이지 번호를 붙인다."""
        if self.page_count <= 1:
            return self.document.file_name
        return f"{self.document.file_name} (page {self.page_index + 1})"


@dataclass(frozen=True)
class FileStatus:
    """
    perFileStatus 한 줄.
    message: 성공이면 보정 경로(markers|template), 실패면 사람이 읽을 사유.
    """
    file_name: str
    status: FileStatusKind
    message: str
    student_number: Optional[str] = None
    error_code: Optional[str] = None
    total_score: Optional[float] = None
    question_scores: Tuple[int, ...] = ()
    region_errors: Tuple[str, ...] = ()

    @staticmethod
    def succeeded(
        file_name: str,
        *,
        student_number: str,
        calibration: str,
        total_score: float,
        question_scores: Tuple[int, ...] = (),
        region_errors: Tuple[str, ...] = (),
    ) -> "FileStatus":
        return FileStatus(
            file_name=file_name,
            status="success",
            message=calibration,
            student_number=student_number,
            total_score=total_score,
            question_scores=tuple(question_scores),
            region_errors=tuple(region_errors),
        )

    @staticmethod
    def failed(
        file_name: str,
        reason: str,
        *,
        error_code: str = "error",
        student_number: Optional[str] = None,
    ) -> "FileStatus":
        return FileStatus(
            file_name=file_name,
            status="failed",
            message=reason,
            student_number=student_number,
            error_code=error_code,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fileName": self.file_name,
            "status": self.status,
            "message": self.message,
            "studentNumber": self.student_number,
            "errorCode": self.error_code,
            "totalScore": self.total_score,
            "questionScores": list(self.question_scores),
            "regionErrors": list(self.region_errors),
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "FileStatus":
        status = data.get("status")
        return FileStatus(
            file_name=str(data.get("fileName") or ""),
            status="success" if status == "success" else "failed",
            message=str(data.get("message") or ""),
            student_number=data.get("studentNumber"),
            error_code=data.get("errorCode"),
            total_score=data.get("totalScore"),
            question_scores=tuple(int(s) for s in (data.get("questionScores") or [])),
            region_errors=tuple(str(e) for e in (data.get("regionErrors") or [])),
        )


@dataclass
class BatchJob:
    batch_id: str
    exam_id: str
    course_id: str
    total_files: int
    processed_count: int = 0
    success_count: int = 0
    failed_count: int = 0
    statuses: List[FileStatus] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_complete(self) -> bool:
        return self.processed_count >= self.total_files

    def record(self, status: FileStatus, now: Optional[datetime] = None) -> None:
        """문서 1건 종료 반영. 규칙 위반 시 ValueError (호출자가 잠금 안에서 호출)."""
        if self.is_complete:
            raise ValueError(
                f"Batch {self.batch_id} already complete: {self.processed_count}/{self.total_files}"
            )
        self.processed_count += 1
        if status.status == "success":
            self.success_count += 1
        else:
            self.failed_count += 1
        self.statuses.append(status)
        if self.is_complete:
            self.completed_at = now or datetime.now(timezone.utc)

    def snapshot(self) -> "BatchJob":
        """폴링용 복사본 (FileStatus 는 불변이라 리스트만 복사)."""
        return BatchJob(
            batch_id=self.batch_id,
            exam_id=self.exam_id,
            course_id=self.course_id,
            total_files=self.total_files,
            processed_count=self.processed_count,
            success_count=self.success_count,
            failed_count=self.failed_count,
            statuses=list(self.statuses),
            started_at=self.started_at,
            completed_at=self.completed_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "batchId": self.batch_id,
            "examId": self.exam_id,
            "courseId": self.course_id,
            "totalFiles": self.total_files,
            "processedCount": self.processed_count,
            "successCount": self.success_count,
            "failedCount": self.failed_count,
            "isComplete": self.is_complete,
            "startedAt": _iso(self.started_at),
            "completedAt": _iso(self.completed_at),
            "statuses": [s.to_dict() for s in self.statuses],
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "BatchJob":
        return BatchJob(
            batch_id=str(data.get("batchId")),
            exam_id=str(data.get("examId")),
            course_id=str(data.get("courseId")),
            total_files=int(data.get("totalFiles") or 0),
            processed_count=int(data.get("processedCount") or 0),
            success_count=int(data.get("successCount") or 0),
            failed_count=int(data.get("failedCount") or 0),
            statuses=[FileStatus.from_dict(s) for s in (data.get("statuses") or [])],
            started_at=_parse_dt(data.get("startedAt")),
            completed_at=_parse_dt(data.get("completedAt")),
        )
