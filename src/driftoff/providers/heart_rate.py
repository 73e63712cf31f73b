"""Heart-rate provider backed by a BLE chest strap or watch.

Uses the standard Heart Rate Measurement characteristic (0x2A37).  The
latest reading is cached; the scoring core polls :meth:`latest_bpm` each
tick and treats stale readings as "no data".
"""

from __future__ import annotations

import asyncio
import struct
import time
from dataclasses import dataclass, field
from typing import Callable

import structlog
from bleak import BleakClient
from bleak.backends.characteristic import BleakGATTCharacteristic

logger = structlog.get_logger()

HR_SERVICE_UUID = "0000180d-0000-1000-8000-00805f9b34fb"
HR_MEASUREMENT_UUID = "00002a37-0000-1000-8000-00805f9b34fb"

# Readings older than this are ignored (seconds)
DEFAULT_MAX_AGE_S = 30.0


@dataclass
class HeartRateMeasurement:
    hr_bpm: int
    sensor_contact: bool | None = None
    energy_expended_kj: int | None = None
    rr_intervals_ms: list[float] = field(default_factory=list)

    def __repr__(self) -> str:
        rr = f", rr={len(self.rr_intervals_ms)}" if self.rr_intervals_ms else ""
        return f"HeartRateMeasurement({self.hr_bpm} bpm{rr})"


# ---------------------------------------------------------------------------
# Heart Rate Measurement parser (0x2A37)
# ---------------------------------------------------------------------------
def parse_heart_rate(data: bytes | bytearray) -> HeartRateMeasurement:
    """Parse a Heart Rate Measurement value.

    Layout:
    - Byte 0: Flags
      - Bit 0: HR format (0 = uint8, 1 = uint16)
      - Bit 1-2: Sensor contact status
      - Bit 3: Energy expended present
      - Bit 4: RR-interval present
    - Byte 1(+2): Heart rate value
    - Optional: Energy expended (uint16)
    - Optional: RR-intervals (uint16 each, in 1/1024 sec units)

    Raises ValueError on a truncated payload.
    """
    if len(data) < 2:
        raise ValueError(f"heart rate payload too short: {len(data)} byte(s)")

    flags = data[0]
    contact_supported = bool(flags & 0x02)
    contact_detected = bool(flags & 0x04)

    try:
        if flags & 0x01:
            bpm = struct.unpack_from("<H", data, 1)[0]
            offset = 3
        else:
            bpm = data[1]
            offset = 2

        energy = None
        if flags & 0x08:
            energy = struct.unpack_from("<H", data, offset)[0]
            offset += 2
    except struct.error as exc:
        raise ValueError(f"truncated heart rate payload: {exc}") from exc

    rr_intervals: list[float] = []
    if flags & 0x10:
        while offset + 1 < len(data):
            rr_raw = struct.unpack_from("<H", data, offset)[0]
            rr_intervals.append(round(rr_raw / 1024.0 * 1000.0, 1))
            offset += 2

    return HeartRateMeasurement(
        hr_bpm=bpm,
        sensor_contact=contact_detected if contact_supported else None,
        energy_expended_kj=energy,
        rr_intervals_ms=rr_intervals,
    )


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------


class BleHeartRateMonitor:
    """Caches the most recent BPM from a BLE heart-rate device."""

    def __init__(
        self,
        address: str,
        max_age_s: float = DEFAULT_MAX_AGE_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.address = address
        self.max_age_s = max_age_s
        self.clock = clock
        self._latest: HeartRateMeasurement | None = None
        self._received_at: float | None = None

    def handle_measurement(self, data: bytes | bytearray) -> HeartRateMeasurement | None:
        """Parse and cache one notification; malformed payloads are dropped."""
        try:
            measurement = parse_heart_rate(data)
        except ValueError as exc:
            logger.warning("heart_rate_parse_failed", error=str(exc), raw=bytes(data).hex())
            return None
        # Contact explicitly lost means the value is garbage
        if measurement.sensor_contact is False or measurement.hr_bpm <= 0:
            return None
        self._latest = measurement
        self._received_at = self.clock()
        return measurement

    def latest_bpm(self) -> float | None:
        if self._latest is None or self._received_at is None:
            return None
        if self.clock() - self._received_at > self.max_age_s:
            return None
        return float(self._latest.hr_bpm)

    async def run(self, stop: asyncio.Event) -> None:
        """Connect, subscribe to 0x2A37 and keep the cache fresh until *stop* is set."""
        logger.info("heart_rate_connecting", address=self.address)

        def _on_notification(_char: BleakGATTCharacteristic, data: bytearray) -> None:
            measurement = self.handle_measurement(data)
            if measurement is not None:
                logger.debug("heart_rate", bpm=measurement.hr_bpm)

        async with BleakClient(self.address) as client:
            await client.start_notify(HR_MEASUREMENT_UUID, _on_notification)
            logger.info("heart_rate_subscribed", address=self.address)
            try:
                await stop.wait()
            finally:
                try:
                    await client.stop_notify(HR_MEASUREMENT_UUID)
                except Exception as exc:
                    logger.warning("heart_rate_unsubscribe_failed", error=str(exc))
