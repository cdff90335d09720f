"""Tests for the zoom controller."""

import math

import pytest

from view_engine.zoom import ZoomController, touch_distance


class TestZoomController:
    """Clamping, stepping and change notification."""

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            ZoomController(min_zoom=3.0, max_zoom=1.0)

    def test_initial_value_is_clamped(self):
        assert ZoomController(initial_zoom=10.0).zoom == 3.0

    def test_set_clamps(self):
        zoom = ZoomController()
        assert zoom.set(5.0) == 3.0
        assert zoom.set(0.1) == 0.8
        assert zoom.set(math.nan) == 0.8

    def test_wheel_direction(self):
        """Positive delta zooms out, negative zooms in, zero is a no-op."""
        zoom = ZoomController()
        assert zoom.wheel(100) == pytest.approx(0.9)
        assert zoom.wheel(-100) == pytest.approx(1.0)
        assert zoom.wheel(0) == pytest.approx(1.0)

    def test_zoom_in_at_boundary_is_noop(self):
        changes = []
        zoom = ZoomController(initial_zoom=3.0, on_zoom_change=changes.append)
        assert zoom.zoom_in() == 3.0
        assert changes == []

    def test_many_wheel_events_stay_in_range(self):
        zoom = ZoomController()
        for _ in range(50):
            zoom.wheel(-1)
        assert zoom.zoom == 3.0
        for _ in range(50):
            zoom.wheel(1)
        assert zoom.zoom == 0.8

    def test_percentage(self):
        zoom = ZoomController()
        zoom.zoom_in()
        assert zoom.percentage == 110

    def test_reset(self):
        zoom = ZoomController(initial_zoom=1.5)
        zoom.set(2.5)
        assert zoom.reset() == 1.5


class TestPinch:
    """Two-finger zoom."""

    def test_pinch_ratio_scales_base(self):
        zoom = ZoomController()
        zoom.begin_pinch()
        assert zoom.pinch(2.0) == pytest.approx(2.0)
        # Ratios apply to the zoom captured at pinch start, not the running value
        assert zoom.pinch(1.5) == pytest.approx(1.5)
        assert zoom.pinch(10.0) == 3.0

    def test_pinch_from_distances(self):
        zoom = ZoomController()
        zoom.pinch_start(100.0)
        assert zoom.is_pinching
        assert zoom.pinch_move(150.0) == pytest.approx(1.5)
        zoom.pinch_end()
        assert not zoom.is_pinching
        assert zoom.pinch_move(300.0) == pytest.approx(1.5)

    def test_zero_start_distance_is_ignored(self):
        zoom = ZoomController()
        zoom.pinch_start(0.0)
        assert not zoom.is_pinching
        assert zoom.pinch_move(100.0) == 1.0

    def test_touch_distance(self):
        assert touch_distance((0, 0), (3, 4)) == pytest.approx(5.0)
