"""Observable monitoring status shared with UIs and other readers."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable

from driftoff.scoring.smoothing import DrowsinessState


class MonitorMode(str, Enum):
    STOPPED = "stopped"
    ACTIVE = "active"
    HIBERNATING = "hibernating"
    STANDBY = "standby"


@dataclass(frozen=True)
class MonitorStatus:
    score: float = 0.0
    state: DrowsinessState = DrowsinessState.AWAKE
    monitoring: bool = False
    mode: MonitorMode = MonitorMode.STOPPED


Subscriber = Callable[[MonitorStatus], None]


class StatusBoard:
    """Single-writer, multi-reader holder for the latest :class:`MonitorStatus`.

    The controller is the only writer.  Each publish swaps in a new frozen
    status object, so readers always see a complete snapshot.
    """

    def __init__(self) -> None:
        self._status = MonitorStatus()
        self._subscribers: list[Subscriber] = []

    @property
    def current(self) -> MonitorStatus:
        return self._status

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register *callback*; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def publish(self, **changes) -> MonitorStatus:
        self._status = replace(self._status, **changes)
        for callback in list(self._subscribers):
            callback(self._status)
        return self._status

    def reset(self) -> MonitorStatus:
        """Back to the idle status (score 0, AWAKE, not monitoring)."""
        self._status = MonitorStatus()
        for callback in list(self._subscribers):
            callback(self._status)
        return self._status
