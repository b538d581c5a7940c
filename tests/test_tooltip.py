"""
CROSSHAIR TOOLTIP TESTS

Run:
    python -m pytest tests/test_tooltip.py -v
"""
import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


class FakeChart:
    """Minimal ChartQuery"""

    def __init__(self, width=800.0, height=360.0, samples=None, primary="s1"):
        self.width = width
        self.height = height
        self.samples = samples or {}
        self.primary = primary

    @property
    def primary_series_id(self):
        return self.primary

    def sample_at(self, time):
        from loopwatch.chart.models import normalize_time
        return self.samples.get(normalize_time(time))

    def bounds(self):
        return self.width, self.height


def fixed_measure(width=120.0, height=40.0):
    return lambda lines: (width, height)


def controller(chart=None, **kwargs):
    from loopwatch.chart.tooltip import TooltipController
    kwargs.setdefault("measure", fixed_measure())
    kwargs.setdefault("zone", "Asia/Shanghai")
    return TooltipController(chart or FakeChart(), **kwargs)


def event(x=400.0, y=200.0, time=1700006400, data=None, primary="s1"):
    from loopwatch.chart.models import CrosshairEvent, Point
    series_data = {primary: data} if data is not None else {}
    point = Point(x, y) if x is not None else None
    return CrosshairEvent(point=point, time=time, series_data=series_data)


# ============================================================
# A. TIME NORMALIZATION
# ============================================================

class TestNormalizeTime:

    def test_three_shapes_agree(self):
        from loopwatch.chart.models import BusinessDay, normalize_time

        assert normalize_time(1700006400) == 1700006400
        assert normalize_time("1700006400") == 1700006400
        assert normalize_time({"year": 2023, "month": 11, "day": 15}) == 1700006400
        assert normalize_time(BusinessDay(2023, 11, 15)) == 1700006400

    def test_float_epoch_truncates(self):
        from loopwatch.chart.models import normalize_time
        assert normalize_time(1000.9) == 1000

    @pytest.mark.parametrize("token", [
        None,
        True,
        "",
        "soon",
        float("nan"),
        float("inf"),
        "inf",
        {"year": 2023, "month": 13, "day": 1},
        {"year": 2023, "month": 2, "day": 30},
        {"year": "2023", "month": 11, "day": 15},
        {"month": 11, "day": 15},
        [2023, 11, 15],
    ])
    def test_unrecognized_tokens(self, token):
        from loopwatch.chart.models import normalize_time
        assert normalize_time(token) is None


# ============================================================
# B. VISIBILITY
# ============================================================

class TestVisibility:

    def test_valid_event_shows_labels(self):
        state = controller().reduce(event(data={"value": 10500}))

        assert state.visible
        assert state.epoch_s == 1700006400
        assert state.value == 10500
        assert state.value_label == "Balance: $10,500.00"
        assert state.timestamp_label == "11-15 08:00:00"

    def test_missing_point_hides(self):
        assert not controller().reduce(event(x=None, data={"value": 1})).visible

    def test_missing_time_hides(self):
        assert not controller().reduce(event(time=None, data={"value": 1})).visible

    @pytest.mark.parametrize("x,y", [(-1, 100), (100, -0.5), (801, 100), (100, 361), (float("nan"), 10)])
    def test_pointer_outside_bounds_hides(self, x, y):
        assert not controller().reduce(event(x=x, y=y, data={"value": 1})).visible

    def test_pointer_on_edge_is_inside(self):
        assert controller().reduce(event(x=800, y=360, data={"value": 1})).visible

    def test_close_field_fallback(self):
        state = controller().reduce(event(data={"open": 1, "high": 3, "low": 1, "close": 2.5}))
        assert state.visible
        assert state.value == 2.5

    def test_value_takes_precedence_over_close(self):
        state = controller().reduce(event(data={"value": 7, "close": 2.5}))
        assert state.value == 7

    def test_neither_value_nor_close_hides(self):
        assert not controller().reduce(event(data={"open": 1})).visible

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), "100", None, True])
    def test_non_numeric_value_hides(self, value):
        assert not controller().reduce(event(data={"value": value})).visible

    def test_falls_back_to_sample_lookup(self):
        chart = FakeChart(samples={1700006400: {"time": 1700006400, "value": 9000.0}})
        state = controller(chart).reduce(event(data=None))

        assert state.visible
        assert state.value == 9000

    def test_no_sample_hides(self):
        assert not controller(FakeChart()).reduce(event(data=None)).visible

    def test_unrecognized_time_hides(self):
        assert not controller().reduce(event(time="later", data={"value": 1})).visible

    def test_calendar_day_time_token(self):
        state = controller().reduce(event(time={"year": 2023, "month": 11, "day": 15}, data={"value": 1}))
        assert state.epoch_s == 1700006400

    def test_non_finite_measurement_hides(self):
        ctl = controller(measure=lambda lines: (float("nan"), 40.0))
        assert not ctl.reduce(event(data={"value": 1})).visible

    def test_invisible_after_hidden_frame(self):
        ctl = controller()
        assert ctl.on_crosshair_move(event(data={"value": 1})).visible
        assert not ctl.on_crosshair_move(event(x=None)).visible
        assert ctl.state.timestamp_label == ""


# ============================================================
# C. POSITIONING
# ============================================================

class TestClamp:

    def test_centered_on_pointer(self):
        from loopwatch.chart.tooltip import clamp_position
        left, top = clamp_position(400, 200, 120, 40, 800, 360)
        assert left == 400
        assert top == 188

    def test_clamped_left_and_right(self):
        from loopwatch.chart.tooltip import clamp_position

        assert clamp_position(0, 200, 120, 40, 800, 360)[0] == 68
        assert clamp_position(800, 200, 120, 40, 800, 360)[0] == 732

    def test_horizontal_bounds_hold_everywhere(self):
        from loopwatch.chart.tooltip import clamp_position

        container_width = 300.0
        for width in (10.0, 100.0, 250.0, 284.0, 290.0, 299.0):
            for x in range(0, 301, 5):
                left, _ = clamp_position(float(x), 100.0, width, 30.0, container_width, 200.0)
                assert width / 2 <= left <= container_width - width / 2

    def test_flips_below_near_top(self):
        from loopwatch.chart.tooltip import clamp_position
        _, top = clamp_position(400, 20, 120, 40, 800, 360)
        assert top == 20 + 40 + 12

    def test_clamped_to_bottom_after_flip(self):
        from loopwatch.chart.tooltip import clamp_position
        _, top = clamp_position(400, 30, 120, 40, 800, 70)
        assert top == 70 - 12

    def test_uses_configured_margin_and_offset(self):
        ctl = controller(margin=20, offset=5)
        state = ctl.reduce(event(x=0, y=200, data={"value": 1}))
        assert state.x == 60 + 20
        assert state.y == 195


# ============================================================
# D. LIFECYCLE
# ============================================================

class TestLifecycle:

    def test_attach_and_detach(self):
        from loopwatch.chart.surface import ChartContainer, ChartSurface

        container = ChartContainer(800, 360)
        surface = ChartSurface(800, 360)
        ctl = controller()

        ctl.attach(surface, container)
        ctl.attach(surface, container)
        assert ctl.attached
        assert len(container.overlays) == 1
        assert surface.subscriber_count == 1

        ctl.detach()
        ctl.detach()
        assert not ctl.attached
        assert container.overlays == []
        assert surface.subscriber_count == 0

    def test_dispatch_updates_overlay_node(self):
        from loopwatch.chart.surface import ChartContainer, ChartSurface

        container = ChartContainer(800, 360)
        surface = ChartSurface(800, 360)
        ctl = controller()
        ctl.attach(surface, container)

        surface.dispatch_crosshair(event(data={"value": 42}))

        assert container.overlays[0].state["visible"] is True
        assert container.overlays[0].state["value_label"] == "Balance: $42.00"

    def test_engine_series_data_drives_tooltip(self):
        from loopwatch.chart.engine import EquityChartEngine
        from loopwatch.chart.surface import ChartContainer
        from loopwatch.core.models import EquityCurveSample

        engine = EquityChartEngine(ChartContainer(800, 360))
        engine.update([
            EquityCurveSample(timestamp_ms=1000000, total_balance=10000),
            EquityCurveSample(timestamp_ms=2000000, total_balance=10500),
        ])

        engine.surface.dispatch_crosshair(event(time=2000, data=None))

        assert engine.tooltip.state.visible
        assert engine.tooltip.state.value == 10500

    def test_nearest_sample_labelled_with_its_own_time(self):
        from loopwatch.chart.engine import EquityChartEngine
        from loopwatch.chart.surface import ChartContainer
        from loopwatch.core.formatters import format_timestamp
        from loopwatch.core.models import EquityCurveSample

        engine = EquityChartEngine(ChartContainer(800, 360), tooltip_factory=lambda chart: controller(chart))
        engine.update([
            EquityCurveSample(timestamp_ms=1000000, total_balance=10000),
            EquityCurveSample(timestamp_ms=2000000, total_balance=10500),
        ])

        engine.surface.dispatch_crosshair(event(time=1400, data=None))

        state = engine.tooltip.state
        assert state.visible
        assert state.value == 10000
        assert state.epoch_s == 1000
        assert state.timestamp_label == format_timestamp(1000, "Asia/Shanghai")


# ============================================================
# E. FORMATTING
# ============================================================

class TestFormatters:

    def test_timestamp_uses_display_zone(self):
        from loopwatch.core.formatters import format_timestamp

        assert format_timestamp(0, "Asia/Shanghai") == "01-01 08:00:00"
        assert format_timestamp(0, "UTC") == "01-01 00:00:00"

    def test_unknown_zone_falls_back_to_utc(self):
        from loopwatch.core.formatters import format_timestamp
        assert format_timestamp(0, "Nowhere/Special") == "01-01 00:00:00"

    def test_currency(self):
        from loopwatch.core.formatters import PLACEHOLDER, format_currency

        assert format_currency(1234.5) == "$1,234.50"
        assert format_currency(-20) == "-$20.00"
        assert format_currency(None) == PLACEHOLDER
        assert format_currency(float("nan")) == PLACEHOLDER

    def test_percent_and_pnl_class(self):
        from loopwatch.core.formatters import format_percent, pnl_class

        assert format_percent(1.234) == "+1.23%"
        assert format_percent(-0.5) == "-0.50%"
        assert pnl_class(3) == "pnl-up"
        assert pnl_class(-3) == "pnl-down"
        assert pnl_class(None) == "pnl-flat"

    def test_datetime(self):
        from loopwatch.core.formatters import format_datetime

        assert format_datetime("2025-01-01T00:00:00Z", "Asia/Shanghai") == "01-01 08:00"
        assert format_datetime("not a date") == "not a date"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
