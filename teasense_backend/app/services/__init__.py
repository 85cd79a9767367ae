# teasense_backend/app/services/__init__.py
from .batch import analyze_batch
from .calibration import calibration_report, compare_with_expected

__all__ = ["analyze_batch", "calibration_report", "compare_with_expected"]
