from .orchestrator import OCRInpaintingWorkflow, memoised_ocr, output_names
from .storage import GcsStore
from .validation import ALLOWED_FORMATS, MAX_IMAGE_BYTES, validate_image
from .workspace import TempWorkspace

__all__ = [
    "OCRInpaintingWorkflow",
    "GcsStore",
    "TempWorkspace",
    "validate_image",
    "memoised_ocr",
    "output_names",
    "ALLOWED_FORMATS",
    "MAX_IMAGE_BYTES",
]
