"""
Repository 포트 - 영속화 추상화 (Django/ORM 미사용)
"""
from __future__ import annotations

from abc import abstractmethod
from typing import List, Optional, Protocol

from examscan.domain.assessment.entities import Course, Exam, StudentExamResult


class ExamRepository(Protocol):
    """시험/과목 정의 조회. CRUD 화면은 범위 밖이라 조회 + 삭제만."""

    @abstractmethod
    def get_exam(self, exam_id: str) -> Optional[Exam]:
        """없으면 None."""
        ...

    @abstractmethod
    def get_course(self, course_id: str) -> Optional[Course]:
        """없으면 None."""
        ...

    @abstractmethod
    def delete_exam(self, exam_id: str) -> None:
        """결과가 남아 있으면 ExamHasResultsError (어댑터가 최종 방어)."""
        ...


class StudentResultRepository(Protocol):
    """(student_number, exam_id) 유일성은 저장소가 보장 (in-process 조율 아님)."""

    @abstractmethod
    def add(self, result: StudentExamResult) -> StudentExamResult:
        """
        신규 생성만. 이미 있으면 DuplicateResultError, 기존 레코드는 그대로.
        Returns: created_at 등이 채워진 저장본.
        """
        ...

    @abstractmethod
    def get(self, student_number: str, exam_id: str) -> Optional[StudentExamResult]:
        ...

    @abstractmethod
    def list_for_exam(self, exam_id: str) -> List[StudentExamResult]:
        """생성 순서."""
        ...

    @abstractmethod
    def count_for_exam(self, exam_id: str) -> int:
        ...
