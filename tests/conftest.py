import django
import pytest
from django.conf import settings

from examscan.adapters.db.memory.job_store import InMemoryBatchJobStore
from examscan.adapters.db.memory.repositories import (
    InMemoryExamRepository,
    InMemoryStudentResultRepository,
)
from examscan.domain.assessment.entities import (
    Course,
    Exam,
    ExamKind,
    ExamQuestion,
    LearningOutcome,
)

if not settings.configured:
    settings.configure(
        DATABASES={"default": {"ENGINE": "django.db.backends.sqlite3", "NAME": ":memory:"}},
        INSTALLED_APPS=["examscan.adapters.db.django.apps.ExamscanStoreConfig"],
        USE_TZ=True,
        DEFAULT_AUTO_FIELD="django.db.models.BigAutoField",
    )
    django.setup()


@pytest.fixture(scope="session")
def django_db_tables():
    from django.core.management import call_command

    call_command("migrate", run_syncdb=True, verbosity=0)


@pytest.fixture
def django_db(django_db_tables):
    from examscan.adapters.db.django.models import CourseModel, ExamModel, StudentExamResultModel

    yield
    StudentExamResultModel.objects.all().delete()
    ExamModel.objects.all().delete()
    CourseModel.objects.all().delete()


# ---------------------------------------------------------------------------
# 도메인 픽스처
# ---------------------------------------------------------------------------


@pytest.fixture
def course():
    return Course(
        id="c1",
        code="CENG101",
        name="Intro",
        learning_outcomes=(
            LearningOutcome(code="ÖÇ1", description="Basics", program_outcomes=("PÇ1", "PÇ2")),
            LearningOutcome(code="ÖÇ2", description="Design", program_outcomes=("PÇ2",)),
            LearningOutcome(code="ÖÇ3", description="Ethics", program_outcomes=()),
        ),
    )


@pytest.fixture
def exam():
    return Exam(
        id="e1",
        course_id="c1",
        kind=ExamKind.MIDTERM,
        code="MT1",
        max_score=100,
        questions=(
            ExamQuestion(number=1, learning_outcome_codes=("ÖÇ1",)),
            ExamQuestion(number=2, learning_outcome_codes=("ÖÇ1", "ÖÇ2")),
        ),
    )


@pytest.fixture
def repos(course, exam):
    exams = InMemoryExamRepository()
    results = InMemoryStudentResultRepository()
    exams.bind_results(results)
    exams.save_course(course)
    exams.save_exam(exam)
    return exams, results


@pytest.fixture
def job_store():
    return InMemoryBatchJobStore()
