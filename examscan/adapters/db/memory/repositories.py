"""
인메모리 Repository - 기본 구성/테스트용. 유일성은 잠금 안에서 검사.
"""
from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from examscan.domain.assessment.entities import Course, Exam, StudentExamResult
from examscan.domain.errors import DuplicateResultError, ExamHasResultsError


class InMemoryExamRepository:

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._courses: Dict[str, Course] = {}
        self._exams: Dict[str, Exam] = {}
        self._results: Optional["InMemoryStudentResultRepository"] = None

    def bind_results(self, results: "InMemoryStudentResultRepository") -> None:
        """delete_exam 의 결과 보유 검사용 (DB 의 PROTECT 역할)."""
        self._results = results

    def save_course(self, course: Course) -> Course:
        with self._lock:
            self._courses[course.id] = course
        return course

    def save_exam(self, exam: Exam) -> Exam:
        with self._lock:
            self._exams[exam.id] = exam
        return exam

    def get_exam(self, exam_id: str) -> Optional[Exam]:
        with self._lock:
            return self._exams.get(str(exam_id))

    def get_course(self, course_id: str) -> Optional[Course]:
        with self._lock:
            return self._courses.get(str(course_id))

    def delete_exam(self, exam_id: str) -> None:
        if self._results is not None:
            count = self._results.count_for_exam(exam_id)
            if count:
                raise ExamHasResultsError(exam_id, count)
        with self._lock:
            self._exams.pop(str(exam_id), None)


class InMemoryStudentResultRepository:

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rows: Dict[Tuple[str, str], StudentExamResult] = {}

    def add(self, result: StudentExamResult) -> StudentExamResult:
        key = (result.student_number, result.exam_id)
        with self._lock:
            if key in self._rows:
                raise DuplicateResultError(result.student_number, result.exam_id)
            saved = result if result.created_at else replace(result, created_at=datetime.now(timezone.utc))
            self._rows[key] = saved
        return saved

    def get(self, student_number: str, exam_id: str) -> Optional[StudentExamResult]:
        with self._lock:
            return self._rows.get((student_number, str(exam_id)))

    def list_for_exam(self, exam_id: str) -> List[StudentExamResult]:
        with self._lock:
            return [r for r in self._rows.values() if r.exam_id == str(exam_id)]

    def count_for_exam(self, exam_id: str) -> int:
        return len(self.list_for_exam(exam_id))
