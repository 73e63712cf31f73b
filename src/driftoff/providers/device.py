"""In-process device effect sink.

Stands in for the phone's brightness/volume/DND controls when running on
a desktop or from a replay.  Every change is logged and kept in
:attr:`SimulatedDevice.history` so a replay can be inspected afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

logger = structlog.get_logger()


@dataclass
class DeviceState:
    brightness: int = 128  # 0..max_level
    volume: float = 0.5  # 0-1
    dnd: bool = False


class SimulatedDevice:
    def __init__(self, initial: DeviceState | None = None) -> None:
        self.state = initial or DeviceState()
        self.saved: DeviceState | None = None
        self.history: list[tuple[str, object]] = []

    def _record(self, effect: str, value: object) -> None:
        self.history.append((effect, value))
        logger.info("device_effect", effect=effect, value=value)

    def save_settings(self) -> None:
        self.saved = DeviceState(**vars(self.state))
        self._record("save", vars(self.saved))

    def restore_settings(self) -> None:
        # Nothing saved means nothing to restore
        if self.saved is None:
            return
        self.state = DeviceState(**vars(self.saved))
        self._record("restore", vars(self.state))

    def apply_brightness(self, level: float, max_level: int = 255) -> None:
        level = min(max(level, 0.0), 1.0)
        self.state.brightness = int(level * max_level)
        self._record("brightness", self.state.brightness)

    def apply_volume(self, level: float) -> None:
        self.state.volume = min(max(level, 0.0), 1.0)
        self._record("volume", round(self.state.volume, 3))

    def enable_dnd(self) -> None:
        if self.state.dnd:
            return
        self.state.dnd = True
        self._record("dnd", True)
