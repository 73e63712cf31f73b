"""Collaborator interfaces and the adapters shipped with driftoff.

Modules:
    protocol   -- Sensor, heart-rate, noise, camera and device protocols
    collector  -- FeatureCollector: fail-soft reads into a FeatureSnapshot
    heart_rate -- BLE Heart Rate Measurement adapter (imports bleak)
    device     -- SimulatedDevice effect sink
    replay     -- JSONL sensor-frame replay through the full controller

heart_rate, device and replay are imported from their modules directly.
"""

from driftoff.providers.protocol import (
    CameraVerdict,
    CameraVerifier,
    DeviceEffects,
    HeartRateProvider,
    NoiseProvider,
    SensorProvider,
)
from driftoff.providers.collector import FeatureCollector

__all__ = [
    "CameraVerdict",
    "CameraVerifier",
    "DeviceEffects",
    "HeartRateProvider",
    "NoiseProvider",
    "SensorProvider",
    "FeatureCollector",
]
