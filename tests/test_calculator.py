"""Tests for scoring/calculator.py and providers/collector.py."""

from datetime import datetime

import pytest

from driftoff.providers.collector import DEFAULT_LUX, DEFAULT_STILLNESS, FeatureCollector
from driftoff.scoring.calculator import ScoreCalculator, apply_multiplier
from driftoff.scoring.features import DEFAULT_HEART_RATE
from driftoff.scoring.smoothing import DrowsinessState
from tests.conftest import NIGHT, ConstantModel, FakeNoise, FakeSensors, make_settings


class TestApplyMultiplier:
    def test_neutral(self):
        assert apply_multiplier(60.0, 1.0) == 60.0

    def test_multiplier_bounded(self):
        assert apply_multiplier(40.0, 3.0) == pytest.approx(60.0)  # capped at 1.5
        assert apply_multiplier(40.0, 0.1) == pytest.approx(20.0)  # floored at 0.5

    def test_result_clamped(self):
        assert apply_multiplier(90.0, 1.5) == 100.0
        assert apply_multiplier(-5.0, 1.0) == 0.0


class TestScoreCalculator:
    def _calc(self, value=80.0, multiplier=None, sensors=None):
        return ScoreCalculator(
            ConstantModel(value),
            FeatureCollector(sensors or FakeSensors()),
            multiplier=multiplier,
        )

    def test_multiplier_applied_before_smoothing(self):
        calc = self._calc(60.0, multiplier=lambda: 1.2)
        result = calc.calculate(make_settings(), NIGHT)
        assert result.raw_score == 60.0
        assert result.score == pytest.approx(72.0)
        assert result.adaptive_multiplier == 1.2

    def test_camera_requested_only_when_likely_sleeping(self):
        calc = self._calc(90.0)
        settings = make_settings()
        results = [calc.calculate(settings, NIGHT) for _ in range(3)]
        assert [r.should_verify_with_camera for r in results] == [False, False, True]
        assert results[-1].state is DrowsinessState.LIKELY_SLEEPING

    def test_camera_never_requested_when_disabled(self):
        calc = self._calc(90.0)
        settings = make_settings(camera_verification=False)
        results = [calc.calculate(settings, NIGHT) for _ in range(5)]
        assert not any(r.should_verify_with_camera for r in results)

    def test_reset_clears_state(self):
        calc = self._calc(90.0)
        settings = make_settings()
        for _ in range(3):
            calc.calculate(settings, NIGHT)
        calc.reset()
        assert calc.calculate(settings, NIGHT).state is DrowsinessState.AWAKE

    def test_score_always_in_bounds(self):
        for value in (-50.0, 0.0, 50.0, 250.0):
            result = self._calc(value, multiplier=lambda: 1.5).calculate(make_settings(), NIGHT)
            assert 0.0 <= result.score <= 100.0


class TestFeatureCollector:
    def test_reads_every_sensor(self):
        sensors = FakeSensors(lux=12.0, stillness=0.8, screen_off=4.0, session=9.0)
        snap = FeatureCollector(sensors, heart_rate=sensors).collect(make_settings(), NIGHT)
        assert snap.ambient_light_lux == 12.0
        assert snap.stillness == 0.8
        assert snap.screen_off_minutes == 4.0
        assert snap.session_minutes == 9.0
        assert snap.heart_rate_bpm == 40.0
        assert snap.time_proximity == pytest.approx(1.0)
        assert snap.timestamp == NIGHT

    def test_failed_reads_fall_back_to_neutral(self):
        sensors = FakeSensors()
        sensors.failing = {"ambient_light", "stillness", "session_minutes", "heart_rate"}
        snap = FeatureCollector(sensors, heart_rate=sensors).collect(make_settings(), NIGHT)
        assert snap.ambient_light_lux == DEFAULT_LUX
        assert snap.stillness == DEFAULT_STILLNESS
        assert snap.session_minutes == 0.0
        assert snap.heart_rate_bpm == DEFAULT_HEART_RATE

    @pytest.mark.parametrize("bpm", [None, 0.0, -3.0])
    def test_missing_heart_rate_defaults(self, bpm):
        sensors = FakeSensors(heart_rate=bpm)
        snap = FeatureCollector(sensors, heart_rate=sensors).collect(make_settings(), NIGHT)
        assert snap.heart_rate_bpm == DEFAULT_HEART_RATE

    def test_noise_requires_opt_in(self):
        noise = FakeNoise(db=38.0)
        collector = FeatureCollector(FakeSensors(), noise=noise)
        assert collector.collect(make_settings(), NIGHT).ambient_noise_db is None
        assert noise.samples == 0

        snap = collector.collect(make_settings(audio_sampling=True), NIGHT)
        assert snap.ambient_noise_db == 38.0

    def test_noise_requires_permission(self):
        collector = FeatureCollector(FakeSensors(), noise=FakeNoise(permission=False))
        snap = collector.collect(make_settings(audio_sampling=True), NIGHT)
        assert snap.ambient_noise_db is None

    def test_proximity_zero_outside_window(self):
        noon = datetime(2026, 3, 10, 12, 0)
        snap = FeatureCollector(FakeSensors()).collect(make_settings(), noon)
        assert snap.time_proximity == 0.0
