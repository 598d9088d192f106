from django.apps import AppConfig


class ExamscanStoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "examscan.adapters.db.django"
    label = "examscan"
    verbose_name = "Exam scoring results"
