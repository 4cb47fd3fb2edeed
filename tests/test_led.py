"""
Tests for circuitsim.behavior.led: LED thermal and failure state machine.
"""

from dataclasses import replace

import pytest

from circuitsim.behavior.led import (
    LedElectrical,
    element_seed,
    explosion_delay_ms,
    forward_voltage,
    initial_led_runtime,
    led_parameters,
    update_led_runtime,
)
from circuitsim.config import LED_LIMITS, RGB_LED_LIMITS

VF = 2.8        # blue die, so the drive sits above the low-voltage guard
DT = 0.05


def drive(current, forward=3.0):
    return LedElectrical(forward_voltage=forward, current=current, power=forward * current)


def run(electrical, ticks, dt=DT, rt=None, start_ms=0.0, limits=LED_LIMITS):
    rt = rt or initial_led_runtime(element_seed("led1"))
    history = []
    for k in range(ticks):
        rt = update_led_runtime(rt, electrical, dt, start_ms + (k + 1) * dt * 1e3, VF, limits)
        history.append(rt)
    return rt, history


class TestHardOverstress:
    def test_explodes_at_limit_factor(self):
        i = LED_LIMITS.max_current * LED_LIMITS.hard_overstress_factor
        rt, _ = run(drive(i), 1)
        assert rt.exploded
        assert rt.visual_state == "exploded"
        assert rt.brightness == 0.0

    @pytest.mark.parametrize("dt", [1e-6, 0.016, 1.0])
    def test_explodes_for_any_positive_dt(self, dt):
        i = LED_LIMITS.max_current * LED_LIMITS.hard_overstress_factor
        rt, _ = run(drive(i), 1, dt=dt)
        assert rt.exploded

    def test_overpower_reason(self):
        rt, _ = run(LedElectrical(forward_voltage=5.0, current=0.02, power=0.1), 1)
        assert rt.exploded
        assert rt.failure_reason == "overpower"

    def test_reverse_breakdown(self):
        rt, _ = run(LedElectrical(forward_voltage=-60.0, current=0.0), 1)
        assert rt.exploded
        assert rt.failure_reason == "reverse"

    def test_rgb_reverse_rating_is_lower(self):
        rt, _ = run(LedElectrical(forward_voltage=-6.0, current=0.0), 1, limits=RGB_LED_LIMITS)
        assert rt.exploded


class TestSafeOperation:
    def test_just_below_rating_never_explodes(self):
        rt, history = run(drive(0.99 * LED_LIMITS.max_current), 20000, dt=0.1)
        assert not any(r.exploded for r in history)
        assert rt.pending_explosion_at is None
        assert rt.thermal_energy <= LED_LIMITS.resting_energy + 1e-12
        assert rt.visual_state == "on"

    def test_low_voltage_never_explodes(self):
        rt, history = run(drive(1.0, forward=2.2), 2000, dt=0.1)
        assert not any(r.exploded for r in history)
        assert rt.thermal_energy == 0.0

    def test_brightness_tracks_current(self):
        rt, _ = run(drive(0.01), 1)
        assert rt.brightness == pytest.approx(0.5)

    def test_blocking_led_is_off_and_cools(self):
        warm = initial_led_runtime(1)
        warm = replace(warm, thermal_energy=0.5)
        rt, _ = run(LedElectrical(forward_voltage=1.0, current=0.0), 1, dt=1.0, rt=warm)
        assert rt.visual_state == "off"
        assert rt.thermal_energy == pytest.approx(0.5 - LED_LIMITS.cooldown_per_sec)

    def test_zero_dt_keeps_energy(self):
        first, _ = run(drive(0.022), 10)
        again = update_led_runtime(first, drive(0.022), 0.0, first.last_update_at, VF)
        assert again.thermal_energy == first.thermal_energy

    def test_negative_dt_rejected(self):
        with pytest.raises(ValueError):
            update_led_runtime(None, drive(0.01), -0.1, 0.0, VF)


class TestThermalRunaway:
    # 10 % over the current rating: E rises (0.05 + 0.1 * 2.0) = 0.25 per second.
    STRESS = 1.1 * 0.02

    def test_heats_flickers_then_explodes(self):
        rt, history = run(drive(self.STRESS), 200)
        assert rt.exploded
        assert rt.failure_reason == "overcurrent"
        states = [r.visual_state for r in history]
        assert states[0] == "hot"
        assert "exploded" in states
        armed = next(r for r in history if r.pending_explosion_at is not None)
        assert armed.thermal_energy >= LED_LIMITS.explosion_threshold
        assert not armed.exploded

    def test_explosion_waits_for_delay(self):
        _, history = run(drive(self.STRESS), 200)
        armed = next(r for r in history if r.pending_explosion_at is not None)
        blown = next(r for r in history if r.exploded)
        assert blown.last_update_at >= armed.pending_explosion_at
        assert 200.0 <= armed.pending_explosion_at - armed.last_update_at <= 300.0

    def test_same_seed_same_timing(self):
        _, a = run(drive(self.STRESS), 200)
        _, b = run(drive(self.STRESS), 200)
        assert [r.pending_explosion_at for r in a] == [r.pending_explosion_at for r in b]

    def test_guard_disarms_pending_explosion(self):
        _, history = run(drive(self.STRESS), 200)
        armed = next(r for r in history if r.pending_explosion_at is not None)
        rt = update_led_runtime(armed, drive(0.01, forward=2.0), DT, armed.last_update_at + 50.0, VF)
        assert rt.pending_explosion_at is None
        assert not rt.exploded

    def test_exploded_is_terminal(self):
        i = LED_LIMITS.max_current * LED_LIMITS.hard_overstress_factor
        rt, _ = run(drive(i), 1)
        rt, history = run(LedElectrical(forward_voltage=0.0, current=0.0), 50, rt=rt, start_ms=1000.0)
        assert all(r.exploded for r in history)
        assert rt.thermal_energy >= LED_LIMITS.explosion_threshold


class TestSeedsAndParameters:
    def test_element_seed_is_stable(self):
        assert element_seed("led1") == element_seed("led1")
        assert element_seed("led1") != element_seed("led2")
        assert element_seed("rgb", channel="red") != element_seed("rgb", channel="green")

    def test_delay_within_window(self):
        for seed in range(50):
            assert 200.0 <= explosion_delay_ms(seed) <= 300.0

    def test_forward_voltage_table(self):
        assert forward_voltage("red") == 1.0
        assert forward_voltage("Blue") == 2.8
        assert forward_voltage("ultraviolet") == 2.0

    def test_explicit_properties_win(self):
        assert led_parameters({"color": "red", "forwardVoltage": 1.7}) == (1.7, 6.856)
        assert led_parameters({"color": "green"}) == (2.0, 6.2)
