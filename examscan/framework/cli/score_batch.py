#!/usr/bin/env python
"""
답안지 일괄 채점 CLI (thin) - 인메모리 저장소로 배치 1회 실행

사용:
  python -m examscan.framework.cli.score_batch --exam-file exam.json 2021001.pdf 2021002.pdf ...

exam.json:
{
  "course": {"id": "c1", "code": "CENG101", "learningOutcomes": [{"code": "ÖÇ1", "programOutcomes": ["PÇ1"]}]},
  "exam":   {"id": "e1", "kind": "midterm", "code": "MT1", "maxScore": 100,
             "questions": [{"questionNumber": 1, "learningOutcomeCodes": ["ÖÇ1"]}]}
}
PDF 는 페이지마다 학생 한 명으로 채점 (여러 페이지면 학번은 OCR 로만).
출력: 배치 상태 + 평가 리포트 (JSON, stdout)
"""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence

from examscan.adapters.db.memory.repositories import (
    InMemoryExamRepository,
    InMemoryStudentResultRepository,
)
from examscan.application.use_cases.assessment.compute_assessment import compute_assessment
from examscan.config import ScoringConfig
from examscan.domain.assessment.entities import (
    DEFAULT_MAX_SCORE,
    DEFAULT_PASSING_SCORE,
    Course,
    Exam,
    ExamKind,
    ExamQuestion,
    LearningOutcome,
)
from examscan.domain.batch.entities import UploadedDocument
from examscan.domain.errors import ScoringError
from examscan.framework.container import build_container

logger = logging.getLogger("examscan.score_batch")


def course_from_dict(data: Dict[str, Any]) -> Course:
    return Course(
        id=str(data["id"]),
        code=str(data.get("code") or data["id"]),
        name=str(data.get("name") or ""),
        learning_outcomes=tuple(
            LearningOutcome(
                code=str(lo["code"]),
                description=str(lo.get("description") or ""),
                program_outcomes=tuple(lo.get("programOutcomes") or ()),
            )
            for lo in (data.get("learningOutcomes") or [])
        ),
    )


def exam_from_dict(data: Dict[str, Any], course_id: str) -> Exam:
    questions: List[ExamQuestion] = []
    for q in data.get("questions") or []:
        codes = q.get("learningOutcomeCodes") or ([q["learningOutcomeCode"]] if q.get("learningOutcomeCode") else [])
        questions.append(
            ExamQuestion(
                number=int(q["questionNumber"]),
                learning_outcome_codes=tuple(codes),
                max_score=q.get("maxScore"),
            )
        )
    return Exam(
        id=str(data["id"]),
        course_id=str(data.get("courseId") or course_id),
        kind=ExamKind(data.get("kind") or data.get("examType") or "midterm"),
        code=str(data.get("code") or data.get("examCode") or data["id"]),
        max_score=float(data.get("maxScore", DEFAULT_MAX_SCORE)),
        questions=tuple(questions),
        learning_outcome_codes=tuple(data.get("learningOutcomes") or ()),
        passing_score=float(data.get("passingScore", DEFAULT_PASSING_SCORE)),
    )


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Score scanned answer sheets for one exam")
    p.add_argument("--exam-file", required=True, help="JSON with course + exam definitions")
    p.add_argument("--workers", type=int, default=None, help="override BATCH_MAX_WORKERS")
    p.add_argument("--timeout", type=float, default=None, help="seconds to wait for the batch")
    p.add_argument("files", nargs="+", help="PDF or image files (student number in file name)")
    return p.parse_args(argv)


def run(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)

    with open(args.exam_file, "r", encoding="utf-8") as f:
        definition = json.load(f)
    course = course_from_dict(definition["course"])
    exam = exam_from_dict(definition["exam"], course.id)

    exams = InMemoryExamRepository()
    results = InMemoryStudentResultRepository()
    exams.bind_results(results)
    exams.save_course(course)
    exams.save_exam(exam)

    config = ScoringConfig.load()
    if args.workers:
        config = replace(config, BATCH_MAX_WORKERS=args.workers)
    container = build_container(config, exams=exams, results=results)

    documents = []
    for path in args.files:
        with open(path, "rb") as f:
            documents.append(UploadedDocument(file_name=os.path.basename(path), content=f.read()))

    try:
        batch_id = container.orchestrator.submit_batch(exam.id, documents)
        job = container.orchestrator.wait_for_batch(batch_id, timeout=args.timeout)
        report = compute_assessment(exams=exams, results=results, exam_id=exam.id)
    except ScoringError as e:
        logger.error("SCORE_BATCH_FAILED | code=%s | error=%s", e.code, e)
        return 1
    finally:
        container.orchestrator.shutdown(cancel_pending=True)

    json.dump(
        {"batch": job.to_dict(), "assessment": report.to_dict()},
        sys.stdout,
        ensure_ascii=False,
        indent=2,
    )
    sys.stdout.write("\n")
    return 0 if job.is_complete else 2


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] [SCORE-BATCH] %(message)s",
    )
    sys.exit(run())


if __name__ == "__main__":
    main()
