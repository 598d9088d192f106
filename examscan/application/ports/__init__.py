from examscan.application.ports.repositories import ExamRepository, StudentResultRepository
from examscan.application.ports.job_store import BatchJobStore
from examscan.application.ports.vision import (
    DebugCropWriter,
    MarkerDetector,
    PerspectiveWarper,
    Rasterizer,
    StudentNumberReader,
    VisionInference,
)

__all__ = [
    "ExamRepository",
    "StudentResultRepository",
    "BatchJobStore",
    "DebugCropWriter",
    "MarkerDetector",
    "PerspectiveWarper",
    "Rasterizer",
    "StudentNumberReader",
    "VisionInference",
]
