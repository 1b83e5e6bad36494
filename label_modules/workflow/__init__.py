from .models import WORKFLOW_STEPS, OutputFile, ProcessImageRequest, WorkflowResult
from .services import GcsStore, OCRInpaintingWorkflow, TempWorkspace

__all__ = [
    "WORKFLOW_STEPS",
    "OutputFile",
    "ProcessImageRequest",
    "WorkflowResult",
    "GcsStore",
    "OCRInpaintingWorkflow",
    "TempWorkspace",
]
