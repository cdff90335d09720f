"""Tests for easing functions."""

import pytest

from view_engine.easing import EASINGS, ease_in_out_cubic, ease_out_cubic, get_easing, linear


class TestEasingFunctions:
    """Endpoints, monotonicity and known values."""

    @pytest.mark.parametrize("easing", list(EASINGS.values()))
    def test_endpoints(self, easing):
        """Every easing maps 0 to 0 and 1 to 1."""
        assert easing(0.0) == 0.0
        assert easing(1.0) == 1.0

    @pytest.mark.parametrize("easing", list(EASINGS.values()))
    def test_monotonic(self, easing):
        """Output never decreases as progress grows."""
        samples = [easing(i / 100) for i in range(101)]
        assert all(b >= a for a, b in zip(samples, samples[1:]))

    @pytest.mark.parametrize("easing", list(EASINGS.values()))
    def test_out_of_range_progress_is_clamped(self, easing):
        assert easing(-0.5) == 0.0
        assert easing(1.5) == 1.0

    def test_ease_out_cubic_values(self):
        assert ease_out_cubic(0.5) == pytest.approx(0.875)

    def test_ease_in_out_cubic_values(self):
        """Symmetric around the midpoint."""
        assert ease_in_out_cubic(0.25) == pytest.approx(0.0625)
        assert ease_in_out_cubic(0.5) == pytest.approx(0.5)
        assert ease_in_out_cubic(0.75) == pytest.approx(0.9375)

    def test_linear_is_identity(self):
        assert linear(0.3) == pytest.approx(0.3)


class TestEasingRegistry:
    """Lookup by name."""

    def test_lookup(self):
        assert get_easing('ease_out_cubic') is ease_out_cubic

    def test_unknown_name_raises(self):
        with pytest.raises(ValueError, match="Unknown easing"):
            get_easing('bounce')
