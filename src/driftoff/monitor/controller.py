"""Monitoring control loop: scoring, device effects, hibernation and sessions.

The controller is a small state machine over :class:`MonitorMode`:

    STOPPED ──start──▶ ACTIVE ──20 high ticks──▶ HIBERNATING
                        ▲  │                        │
                        │  └──window ends──▶ STANDBY ◀┘
                        └────window opens────┘

Every tick first looks for a wake signal (sustained screen use or large
movement), then either scores the user (inside the sleep window), does
nothing (hibernating), or winds down to standby (outside the window).
A failing tick is logged and the loop carries on; only a stop request
ends a run.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable

import structlog

from driftoff.analytics.session import SessionRecorder
from driftoff.monitor.scheduler import TickScheduler
from driftoff.monitor.status import MonitorMode, StatusBoard
from driftoff.providers.collector import read_or_default
from driftoff.providers.protocol import CameraVerdict, CameraVerifier, DeviceEffects, SensorProvider
from driftoff.scoring.calculator import ScoreCalculator, ScoreResult
from driftoff.scoring.smoothing import RELAXING_THRESHOLD, DrowsinessState
from driftoff.settings import SleepSettings, is_within_sleep_window

logger = structlog.get_logger()

# Tick cadence (seconds)
ACTIVE_INTERVAL_S = 15.0
HIBERNATION_INTERVAL_S = 300.0

# Consecutive ticks at/above the sleeping threshold before hibernating
HIBERNATION_CONFIRM_TICKS = 20

# Wake signals
WAKE_SCREEN_ON_MIN = 1.0
WAKE_MOVEMENT = 2.0

# Gradual adjustments start from this level at the bottom of the RELAXING band
GRADUAL_START_LEVEL = 0.7

# Hibernation pushes the device to these levels
HIBERNATION_BRIGHTNESS = 0.01
HIBERNATION_VOLUME = 0.0


class MonitoringController:
    def __init__(
        self,
        calculator: ScoreCalculator,
        sensors: SensorProvider,
        device: DeviceEffects,
        recorder: SessionRecorder,
        settings: SleepSettings,
        camera: CameraVerifier | None = None,
        status: StatusBoard | None = None,
        scheduler: TickScheduler | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.calculator = calculator
        self.sensors = sensors
        self.device = device
        self.recorder = recorder
        self.settings = settings
        self.camera = camera
        self.status = status or StatusBoard()
        self.scheduler = scheduler or TickScheduler()
        self.clock = clock

        self._pending_settings: SleepSettings | None = None
        self._mode = MonitorMode.STOPPED
        self._last_state = DrowsinessState.AWAKE
        self._sleep_confirmed = False
        self._high_score_ticks = 0
        self._camera_attempted = False
        self._verification_unavailable = False

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def mode(self) -> MonitorMode:
        return self._mode

    @property
    def hibernating(self) -> bool:
        return self._mode is MonitorMode.HIBERNATING

    @property
    def sleep_confirmed(self) -> bool:
        return self._sleep_confirmed

    @property
    def high_score_ticks(self) -> int:
        return self._high_score_ticks

    @property
    def last_state(self) -> DrowsinessState:
        return self._last_state

    def tick_interval(self) -> float:
        return HIBERNATION_INTERVAL_S if self.hibernating else ACTIVE_INTERVAL_S

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def update_settings(self, settings: SleepSettings) -> None:
        """Queue new settings; they take effect at the start of the next tick."""
        self._pending_settings = settings

    def request_stop(self) -> None:
        self.scheduler.cancel()

    def start(self) -> None:
        if self._mode is not MonitorMode.STOPPED:
            return
        logger.info("monitoring_starting")
        self.scheduler.reset()
        self.device.save_settings()
        self.sensors.start()
        self.calculator.reset()
        self._reset_sleep_tracking()
        self.recorder.start_session()
        self._set_mode(MonitorMode.ACTIVE)

    def stop(self) -> None:
        """Restore the device and flush the open session.

        Safe to call at any point, including from a cancelled run.  Each
        cleanup step runs even if an earlier one fails.
        """
        if self._mode is MonitorMode.STOPPED:
            return
        logger.info("monitoring_stopping", mode=self._mode.value)
        self.scheduler.cancel()

        self._cleanup("sensors_stop", self.sensors.stop)
        self._cleanup("restore_settings", self.device.restore_settings)
        if self.camera is not None:
            self._cleanup("camera_shutdown", self.camera.shutdown)
        if self._sleep_confirmed:
            self._cleanup("record_wake", self.recorder.record_wake)
        self._cleanup("end_session", self.recorder.end_session)

        self._mode = MonitorMode.STOPPED
        self._reset_sleep_tracking()
        self.status.reset()

    async def run(self) -> None:
        """Start monitoring and tick until a stop is requested."""
        self.start()
        try:
            await self.step()
            while not self.scheduler.cancelled:
                if not await self.scheduler.sleep(self.tick_interval()):
                    break
                await self.step()
        finally:
            self.stop()

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    async def step(self) -> None:
        """Run one tick; failures are logged, never raised."""
        try:
            await self.tick()
        except Exception:
            logger.exception("tick_failed", mode=self._mode.value)

    async def tick(self) -> None:
        """Run one control cycle."""
        if self._mode is MonitorMode.STOPPED or self.scheduler.cancelled:
            return
        self._apply_pending_settings()
        now = self.clock()

        if self._wake_signal_detected():
            self._handle_wake()
        elif is_within_sleep_window(self.settings, now):
            if self.hibernating:
                logger.debug("hibernation_check", at=now.isoformat())
                return
            if self._mode is MonitorMode.STANDBY:
                self._resume_from_standby()
            await self._scoring_cycle(now)
        else:
            self._handle_end_of_window()

    def _apply_pending_settings(self) -> None:
        if self._pending_settings is not None:
            self.settings = self._pending_settings
            self._pending_settings = None
            logger.info("settings_applied")

    def _wake_signal_detected(self) -> bool:
        screen_on = read_or_default("screen_on_minutes", self.sensors.screen_on_minutes, 0.0)
        if screen_on > WAKE_SCREEN_ON_MIN:
            logger.info("wake_signal", reason="screen_on", minutes=screen_on)
            return True
        movement = read_or_default("movement", self.sensors.movement_magnitude, 0.0)
        if movement > WAKE_MOVEMENT:
            logger.info("wake_signal", reason="movement", magnitude=movement)
            return True
        return False

    async def _scoring_cycle(self, now: datetime) -> None:
        settings = self.settings
        result = self.calculator.calculate(settings, now)
        self.recorder.record_score(result.score)

        if result.score >= settings.sleeping_threshold:
            self._high_score_ticks += 1
        else:
            self._high_score_ticks = 0

        self.status.publish(score=result.score, state=result.state)
        logger.info(
            "tick_scored",
            score=round(result.score, 1),
            raw=round(result.raw_score, 1),
            state=result.state.value,
            high_ticks=self._high_score_ticks,
        )

        state = result.state
        if state is DrowsinessState.AWAKE:
            if self._last_state is not DrowsinessState.AWAKE:
                self.device.restore_settings()
                if self._sleep_confirmed:
                    self.recorder.record_disturbance()
        elif state in (DrowsinessState.RELAXING, DrowsinessState.DROWSY):
            self._apply_gradual_effects(result.score, settings)
        else:
            await self._handle_likely_sleeping(result, settings)
            if self.scheduler.cancelled:
                return

        self._last_state = state

    # ------------------------------------------------------------------
    # State handlers
    # ------------------------------------------------------------------

    def _apply_gradual_effects(self, score: float, settings: SleepSettings) -> None:
        """Interpolate brightness/volume across the RELAXING..sleeping band."""
        span = settings.sleeping_threshold - RELAXING_THRESHOLD
        if span > 0:
            normalized = min(max((score - RELAXING_THRESHOLD) / span, 0.0), 1.0)
        else:
            normalized = 1.0

        if settings.adjust_brightness:
            brightness = GRADUAL_START_LEVEL - normalized * (
                GRADUAL_START_LEVEL - settings.target_brightness
            )
            self.device.apply_brightness(brightness, settings.max_brightness)
        if settings.adjust_volume:
            volume = GRADUAL_START_LEVEL - normalized * (
                GRADUAL_START_LEVEL - settings.target_volume
            )
            self.device.apply_volume(volume)

    def _apply_sleep_mode(self, settings: SleepSettings) -> None:
        if settings.adjust_brightness:
            self.device.apply_brightness(settings.target_brightness, settings.max_brightness)
        if settings.adjust_volume:
            self.device.apply_volume(settings.target_volume)
        if settings.enable_dnd:
            self.device.enable_dnd()

    def _camera_permitted(self) -> bool:
        if self.camera is None:
            return False
        return bool(read_or_default("camera_permission", self.camera.has_permission, False))

    async def _verify_with_camera(self, settings: SleepSettings) -> CameraVerdict | None:
        try:
            return await self.camera.verify(settings.camera_verification_duration_s)
        except Exception as exc:
            logger.warning("camera_verification_failed", error=str(exc))
            return None

    async def _handle_likely_sleeping(self, result: ScoreResult, settings: SleepSettings) -> None:
        if not self._sleep_confirmed:
            verdict = None
            if result.should_verify_with_camera and not self._camera_attempted:
                self._camera_attempted = True
                if self._camera_permitted():
                    self.recorder.record_camera_verification()
                    verdict = await self._verify_with_camera(settings)
                    if self.scheduler.cancelled:
                        return
                    self._verification_unavailable = verdict is None
                else:
                    logger.warning("camera_permission_missing")
                    self._verification_unavailable = True

            if verdict is not None and verdict.is_sleeping:
                logger.info("camera_confirmed_sleep", confidence=verdict.confidence)
                self._confirm_sleep()
            elif (
                self._verification_unavailable
                and self._high_score_ticks >= HIBERNATION_CONFIRM_TICKS
            ):
                logger.warning("sleep_confirmed_without_camera", high_ticks=self._high_score_ticks)
                self._confirm_sleep()

        self._apply_sleep_mode(settings)

        if self._high_score_ticks >= HIBERNATION_CONFIRM_TICKS and (
            self._sleep_confirmed or not settings.camera_verification
        ):
            self._enter_hibernation(settings)

    def _confirm_sleep(self) -> None:
        self._sleep_confirmed = True
        self.recorder.confirm_sleep_start()

    def _enter_hibernation(self, settings: SleepSettings) -> None:
        if self.hibernating:
            return
        logger.info("hibernation_entered", high_ticks=self._high_score_ticks)
        self._set_mode(MonitorMode.HIBERNATING)
        self._confirm_sleep()
        self.recorder.mark_hibernation()
        self.sensors.stop()

        self.device.apply_brightness(HIBERNATION_BRIGHTNESS, settings.max_brightness)
        self.device.apply_volume(HIBERNATION_VOLUME)
        if settings.enable_dnd:
            self.device.enable_dnd()

    def _exit_hibernation(self) -> None:
        logger.info("hibernation_exited")
        self._set_mode(MonitorMode.ACTIVE)
        self._high_score_ticks = 0
        self.recorder.record_wake()
        self.sensors.start()
        self.calculator.reset()

    def _handle_wake(self) -> None:
        if self._last_state is DrowsinessState.AWAKE and not self.hibernating:
            return

        if self.hibernating:
            self._exit_hibernation()
            return

        logger.info("user_awake", sleep_confirmed=self._sleep_confirmed)
        self.recorder.record_wake()
        self.recorder.end_session()
        self._reset_sleep_tracking()
        self.calculator.reset()
        self.device.restore_settings()
        self.recorder.start_session()
        self.status.publish(state=DrowsinessState.AWAKE)

    def _handle_end_of_window(self) -> None:
        if (
            self._last_state is not DrowsinessState.AWAKE
            or self.hibernating
            or self._sleep_confirmed
        ):
            self.device.restore_settings()
            if self.hibernating:
                self.sensors.start()
            self.recorder.end_session()
            self._reset_sleep_tracking()
        if self._mode is not MonitorMode.STANDBY:
            logger.info("standby_entered")
            self._set_mode(MonitorMode.STANDBY)

    def _resume_from_standby(self) -> None:
        logger.info("sleep_window_opened")
        self._set_mode(MonitorMode.ACTIVE)
        # Each window gets its own session; start_session closes any leftover
        self.recorder.start_session()
        self._reset_sleep_tracking()
        self.calculator.reset()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _reset_sleep_tracking(self) -> None:
        self._last_state = DrowsinessState.AWAKE
        self._sleep_confirmed = False
        self._high_score_ticks = 0
        self._camera_attempted = False
        self._verification_unavailable = False

    def _set_mode(self, mode: MonitorMode) -> None:
        self._mode = mode
        self.status.publish(mode=mode, monitoring=mode is not MonitorMode.STOPPED)

    def _cleanup(self, step: str, action: Callable[[], object]) -> None:
        try:
            action()
        except Exception:
            logger.exception("cleanup_failed", step=step)
