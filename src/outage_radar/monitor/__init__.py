"""Status orchestration and background refresh."""

from outage_radar.monitor.orchestrator import StatusOrchestrator
from outage_radar.monitor.scheduler import SchedulerHandle, SchedulerState, StatusScheduler

__all__ = ["SchedulerHandle", "SchedulerState", "StatusOrchestrator", "StatusScheduler"]
