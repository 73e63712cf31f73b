"""Monitoring loop: tick scheduling, mode transitions and status.

Modules:
    controller -- MonitoringController: per-tick scoring, effects, hibernation
    scheduler  -- TickScheduler: interruptible sleep + cancellation token
    status     -- MonitorMode, MonitorStatus and the StatusBoard observers read
"""

from driftoff.monitor.scheduler import TickScheduler
from driftoff.monitor.status import MonitorMode, MonitorStatus, StatusBoard
from driftoff.monitor.controller import (
    ACTIVE_INTERVAL_S,
    HIBERNATION_CONFIRM_TICKS,
    HIBERNATION_INTERVAL_S,
    MonitoringController,
)

__all__ = [
    # scheduler
    "TickScheduler",
    # status
    "MonitorMode",
    "MonitorStatus",
    "StatusBoard",
    # controller
    "ACTIVE_INTERVAL_S",
    "HIBERNATION_CONFIRM_TICKS",
    "HIBERNATION_INTERVAL_S",
    "MonitoringController",
]
