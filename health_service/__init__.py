"""Health service - estadísticas de ventana, scoring y timeline buffer."""

from .scoring import OPTIMAL_REASON, classify, compute_health
from .stats import WindowStats, compute_window_stats
from .timeline_buffer import InferenceOutcome, InferenceTrigger, TimelineBufferManager

__all__ = [
    "OPTIMAL_REASON",
    "classify",
    "compute_health",
    "WindowStats",
    "compute_window_stats",
    "InferenceOutcome",
    "InferenceTrigger",
    "TimelineBufferManager",
]
