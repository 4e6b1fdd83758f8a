"""Booking <-> external calendar synchronization engine."""

from .conflicts import ConflictDetector
from .health import HealthMonitor
from .orchestrator import SyncOrchestrator
from .reconciler import SyncReconciler
from .stats import StatisticsAggregator
from .translator import EventTranslator

__all__ = [
    "ConflictDetector",
    "EventTranslator",
    "HealthMonitor",
    "StatisticsAggregator",
    "SyncOrchestrator",
    "SyncReconciler",
]
