import datetime as dt
import unittest

from suncal.uv_aggregator import (
    FIXED_WIDTH_CHARS,
    bar_length,
    build_peak_event,
    floor_to_hour_utc,
    format_hour_label,
    round_half_up,
    to_hourly_points,
)

UTC = dt.timezone.utc


def _sample(uv, hour: int, minute: int = 0, day: int = 1) -> dict:
    return {"uv": uv, "uv_time": f"2024-06-{day:02d}T{hour:02d}:{minute:02d}:00.000Z"}


def _glyphs(text: str) -> str:
    return "".join(FIXED_WIDTH_CHARS.get(ch, ch) for ch in text)


class TestHourlyPoints(unittest.TestCase):
    def test_filters_on_unrounded_uv(self):
        points = to_hourly_points([_sample(0.6, 9), _sample(1.4, 10)], min_uv=1)
        self.assertEqual(len(points), 1)
        self.assertEqual(points[0].uv, 1)
        self.assertEqual(points[0].raw_uv, 1.4)
        self.assertEqual(points[0].hour, dt.datetime(2024, 6, 1, 10, tzinfo=UTC))

    def test_rounds_half_up(self):
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(3.49), 3)
        self.assertEqual(round_half_up(0.5), 1)

    def test_floors_timestamp_to_utc_hour(self):
        points = to_hourly_points([_sample(3.0, 10, minute=45)], min_uv=1)
        self.assertEqual(points[0].hour, dt.datetime(2024, 6, 1, 10, tzinfo=UTC))

        offset = dt.datetime(2024, 6, 1, 10, 45, tzinfo=dt.timezone(dt.timedelta(hours=5, minutes=30)))
        self.assertEqual(floor_to_hour_utc(offset), dt.datetime(2024, 6, 1, 5, tzinfo=UTC))

    def test_naive_timestamp_read_as_utc(self):
        points = to_hourly_points([{"uv": 2, "uv_time": "2024-06-01T07:10:00"}], min_uv=0)
        self.assertEqual(points[0].hour, dt.datetime(2024, 6, 1, 7, tzinfo=UTC))

    def test_drops_non_finite_and_malformed_samples(self):
        samples = [
            {"uv": None, "uv_time": "2024-06-01T09:00:00Z"},
            {"uv": float("nan"), "uv_time": "2024-06-01T10:00:00Z"},
            {"uv": 4.0, "uv_time": "not a time"},
            {"uv": 4.0},
            _sample(4.0, 12),
        ]
        points = to_hourly_points(samples, min_uv=0)
        self.assertEqual([p.hour.hour for p in points], [12])

    def test_only_numeric_uv_values_count(self):
        samples = [
            {"uv": "5", "uv_time": "2024-06-01T09:00:00Z"},
            {"uv": True, "uv_time": "2024-06-01T10:00:00Z"},
            {"uv": 3, "uv_time": "2024-06-01T11:00:00Z"},
        ]
        points = to_hourly_points(samples, min_uv=0)
        self.assertEqual([(p.uv, p.hour.hour) for p in points], [(3, 11)])

    def test_keeps_upstream_order(self):
        points = to_hourly_points([_sample(2, 14), _sample(3, 9), _sample(5, 11)], min_uv=1)
        self.assertEqual([p.hour.hour for p in points], [14, 9, 11])


class TestBarChart(unittest.TestCase):
    def test_bar_length_formula(self):
        self.assertEqual(bar_length(5, 3), 3)
        self.assertEqual(bar_length(0, 0), 1)
        self.assertEqual(bar_length(1, 1), 1)
        self.assertEqual(bar_length(2, 5), 0)

    def test_hour_label_uses_fixed_width_glyphs(self):
        hour = dt.datetime(2024, 6, 1, 10, tzinfo=UTC)
        self.assertEqual(format_hour_label(hour, 0), "𝟭𝟬𝖺𝗆")

    def test_hour_label_applies_offset(self):
        self.assertEqual(format_hour_label(dt.datetime(2024, 6, 1, 23, tzinfo=UTC), -5), _glyphs("06PM"))
        self.assertEqual(format_hour_label(dt.datetime(2024, 6, 1, 10, tzinfo=UTC), 5.5), _glyphs("03PM"))
        self.assertEqual(format_hour_label(dt.datetime(2024, 6, 1, 0, tzinfo=UTC), 0), _glyphs("12AM"))
        self.assertEqual(format_hour_label(dt.datetime(2024, 6, 1, 12, tzinfo=UTC), 0), _glyphs("12PM"))


class TestBuildPeakEvent(unittest.TestCase):
    def test_none_when_everything_below_min(self):
        self.assertIsNone(build_peak_event([_sample(0.4, 9), _sample(2.9, 10)], min_uv=3, tz_offset_hours=0))
        self.assertIsNone(build_peak_event([], min_uv=1, tz_offset_hours=0))

    def test_single_peak_spans_one_hour(self):
        event = build_peak_event([_sample(2, 9), _sample(6.2, 12), _sample(4, 15)], min_uv=1, tz_offset_hours=0)
        self.assertEqual(event.peak_value, 6)
        self.assertEqual(event.start, dt.datetime(2024, 6, 1, 12, tzinfo=UTC))
        self.assertEqual(event.end, dt.datetime(2024, 6, 1, 13, tzinfo=UTC))
        self.assertEqual(event.summary, "☀️ Peak UV index (6)")

    def test_ties_span_whole_peak_group(self):
        samples = [_sample(5, 10), _sample(3, 12), _sample(4.6, 14)]
        event = build_peak_event(samples, min_uv=1, tz_offset_hours=0)
        self.assertEqual(event.peak_value, 5)
        self.assertEqual(event.start, dt.datetime(2024, 6, 1, 10, tzinfo=UTC))
        self.assertEqual(event.end, dt.datetime(2024, 6, 1, 15, tzinfo=UTC))

    def test_description_lists_every_surviving_point(self):
        samples = [_sample(5, 10), _sample(0.2, 11), _sample(3, 12)]
        event = build_peak_event(samples, min_uv=3, tz_offset_hours=0)
        lines = event.description.split("\n")
        self.assertEqual(lines, [
            f"{_glyphs('10AM')} ███ 5",
            f"{_glyphs('12PM')} █ 3",
        ])

    def test_zero_min_uv_draws_one_block_for_zero(self):
        event = build_peak_event([_sample(0, 0)], min_uv=0, tz_offset_hours=0)
        self.assertEqual(event.description, f"{_glyphs('12AM')} █ 0")

    def test_description_is_deterministic(self):
        samples = [_sample(1.2, 8), _sample(7.7, 13), _sample(3.5, 16)]
        first = build_peak_event(samples, min_uv=1, tz_offset_hours=-7)
        second = build_peak_event([dict(s) for s in samples], min_uv=1, tz_offset_hours=-7)
        self.assertEqual(first.description.encode("utf-8"), second.description.encode("utf-8"))


if __name__ == "__main__":
    unittest.main()
