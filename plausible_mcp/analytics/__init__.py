"""Traffic analytics: in-memory recorder, persistence and HTTP views."""

from .models import AnalyticsState, ToolCallRecord
from .recorder import AnalyticsRecorder, RequestMetadata
from .storage import DualModeStore, FirebaseStore, LocalFileStore, PeriodicSaver

__all__ = [
    "AnalyticsRecorder",
    "AnalyticsState",
    "DualModeStore",
    "FirebaseStore",
    "LocalFileStore",
    "PeriodicSaver",
    "RequestMetadata",
    "ToolCallRecord",
]
