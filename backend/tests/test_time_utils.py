from datetime import date, datetime, timedelta, timezone

import pytest

from pisonet.time_utils import (
    business_date_for,
    business_day_window,
    parse_date_id,
    to_point_in_time,
    to_utc_z,
)


class TestPointInTime:
    def test_aware_datetime_is_converted_to_utc_naive(self):
        dt = datetime(2026, 10, 19, 8, 0, tzinfo=timezone(timedelta(hours=8)))
        assert to_point_in_time(dt) == datetime(2026, 10, 19, 0, 0)

    def test_naive_datetime_is_treated_as_utc(self):
        dt = datetime(2026, 10, 19, 8, 0)
        assert to_point_in_time(dt) == dt

    def test_iso_string_with_z(self):
        assert to_point_in_time("2026-10-19T01:02:03Z") == datetime(2026, 10, 19, 1, 2, 3)

    def test_iso_string_with_offset(self):
        assert to_point_in_time("2026-10-19T09:00:00+08:00") == datetime(2026, 10, 19, 1, 0)

    def test_epoch_milliseconds(self):
        assert to_point_in_time(1_000) == datetime(1970, 1, 1, 0, 0, 1)

    def test_seconds_nanoseconds_mapping(self):
        value = {"seconds": 86_400, "nanoseconds": 5_000_000}
        assert to_point_in_time(value) == datetime(1970, 1, 2, 0, 0, 0, 5_000)

    def test_none_passes_through(self):
        assert to_point_in_time(None) is None

    @pytest.mark.parametrize("value", ["", "   ", True, [1, 2], {"nanoseconds": 1}])
    def test_rejects_unusable_values(self, value):
        with pytest.raises(ValueError):
            to_point_in_time(value)

    def test_to_utc_z(self):
        assert to_utc_z(datetime(2026, 10, 19, 1, 2, 3, 999)) == "2026-10-19T01:02:03Z"
        assert to_utc_z(None) is None


class TestBusinessDay:
    def test_window_spans_business_midnight_to_midnight(self):
        window = business_day_window(date(2026, 10, 19), 480)

        assert window.date_id == "2026-10-19"
        assert window.start == datetime(2026, 10, 18, 16, 0)
        assert window.end == datetime(2026, 10, 19, 15, 59, 59, 999999)

    def test_window_boundaries_are_inclusive(self):
        window = business_day_window(date(2026, 10, 19), 480)

        assert window.contains(window.start)
        assert window.contains(window.end)
        assert not window.contains(window.start - timedelta(milliseconds=1))
        assert not window.contains(window.end + timedelta(microseconds=1))

    def test_business_date_crosses_utc_midnight(self):
        # 16:30 UTC is already 00:30 the next day in Manila
        assert business_date_for(datetime(2026, 10, 19, 16, 30), 480) == date(2026, 10, 20)
        assert business_date_for(datetime(2026, 10, 19, 15, 59), 480) == date(2026, 10, 19)

    def test_zero_offset(self):
        window = business_day_window(date(2026, 1, 1), 0)
        assert window.start == datetime(2026, 1, 1)

    def test_parse_date_id(self):
        assert parse_date_id("2026-10-19") == date(2026, 10, 19)
        with pytest.raises(ValueError):
            parse_date_id("October 19, 2026")
