from .models import ReconciliationResult, SelectedField
from .services import OCRReconciler

__all__ = ["OCRReconciler", "ReconciliationResult", "SelectedField"]
