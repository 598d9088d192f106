# examscan/adapters/db/django/models.py
from __future__ import annotations

from django.db import models
from django.utils import timezone


class CourseModel(models.Model):
    code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=255, blank=True, default="")
    # [{"code": "ÖÇ1", "description": "...", "programOutcomes": ["PÇ1", ...]}, ...]
    learning_outcomes = models.JSONField(default=list, blank=True)

    class Meta:
        app_label = "examscan"
        db_table = "examscan_course"

    def __str__(self) -> str:
        return self.code


class ExamModel(models.Model):
    KIND_CHOICES = (
        ("midterm", "Midterm"),
        ("final", "Final"),
    )

    course = models.ForeignKey(CourseModel, on_delete=models.CASCADE, related_name="exams")
    kind = models.CharField(max_length=20, choices=KIND_CHOICES)
    code = models.CharField(max_length=50)
    max_score = models.FloatField(default=100.0)
    # [{"questionNumber": 1, "learningOutcomeCodes": ["ÖÇ1"], "maxScore": 10}, ...]
    questions = models.JSONField(default=list, blank=True)
    learning_outcome_codes = models.JSONField(default=list, blank=True)
    passing_score = models.FloatField(default=60.0)

    class Meta:
        app_label = "examscan"
        db_table = "examscan_exam"
        constraints = [
            models.UniqueConstraint(fields=["course", "code"], name="uniq_exam_code_per_course"),
        ]

    def __str__(self) -> str:
        return f"{self.course_id}:{self.code}"


class StudentExamResultModel(models.Model):
    SOURCE_CHOICES = (
        ("pipeline", "Pipeline"),
        ("manual", "Manual"),
    )

    student_number = models.CharField(max_length=32, db_index=True)
    # 결과가 남아 있는 시험은 삭제 불가
    exam = models.ForeignKey(ExamModel, on_delete=models.PROTECT, related_name="results")
    course = models.ForeignKey(CourseModel, on_delete=models.PROTECT, related_name="results")
    total_score = models.FloatField()
    max_score = models.FloatField()
    percentage = models.FloatField()
    outcome_performance = models.JSONField(default=dict, blank=True)
    program_outcome_performance = models.JSONField(default=dict, blank=True)
    source = models.CharField(max_length=20, choices=SOURCE_CHOICES, default="pipeline")
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        app_label = "examscan"
        db_table = "examscan_student_exam_result"
        constraints = [
            models.UniqueConstraint(
                fields=["student_number", "exam"], name="uniq_result_per_student_exam"
            ),
        ]
        ordering = ["id"]
