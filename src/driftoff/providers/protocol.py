"""Interfaces for the collaborators that surround the scoring core.

Every collaborator is optional or fail-soft from the core's point of
view: a missing permission, absent hardware or a transient error just
means "no data this tick".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class CameraVerdict:
    """Result of a camera-based sleep check."""

    is_sleeping: bool
    confidence: float  # 0-1
    eye_open_probability: float  # lower = more likely sleeping
    face_detected: bool


class SensorProvider(Protocol):
    """Already-derived scalar features from the phone's own sensors."""

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def ambient_light(self) -> float: ...

    def stillness(self) -> float: ...

    def screen_off_minutes(self) -> float: ...

    def screen_on_minutes(self) -> float: ...

    def session_minutes(self) -> float: ...

    def movement_magnitude(self) -> float: ...


class HeartRateProvider(Protocol):
    def latest_bpm(self) -> float | None: ...


class NoiseProvider(Protocol):
    def has_permission(self) -> bool: ...

    def sample_db(self) -> float | None: ...


class CameraVerifier(Protocol):
    def has_permission(self) -> bool: ...

    async def verify(self, duration_s: int) -> CameraVerdict | None:
        """Watch for *duration_s* seconds; None when verification is unavailable."""
        ...

    def shutdown(self) -> None: ...


class DeviceEffects(Protocol):
    """Effect sink for brightness, volume and do-not-disturb."""

    def save_settings(self) -> None: ...

    def restore_settings(self) -> None: ...

    def apply_brightness(self, level: float, max_level: int = 255) -> None: ...

    def apply_volume(self, level: float) -> None: ...

    def enable_dnd(self) -> None: ...
