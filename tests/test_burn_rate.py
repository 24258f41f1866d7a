from datetime import datetime, timedelta

import pytest

from conftest import make_record
from usagelens.burn_rate import (
    HIGH_BURN_RATE_MESSAGE,
    HIGH_UTILIZATION_MESSAGE,
    NO_DATA_MESSAGE,
    NO_RECENT_ACTIVITY_MESSAGE,
    NOMINAL_MESSAGE,
    TOO_MANY_SESSIONS_MESSAGE,
    burn_rate,
    recommendations,
    session_utilization,
)


def _ts(now: "datetime", minutes_ago: "float") -> "str":
    return (now - timedelta(minutes=minutes_ago)).isoformat()


class TestRecommendations:
    def test_nominal_when_nothing_triggers(self) -> "None":
        assert recommendations(10.0, 10.0, 1) == [NOMINAL_MESSAGE]

    def test_thresholds_are_strict(self) -> "None":
        assert recommendations(100.0, 80.0, 3) == [NOMINAL_MESSAGE]

    def test_all_triggers(self) -> "None":
        assert recommendations(100.1, 80.1, 4) == [
            HIGH_BURN_RATE_MESSAGE,
            HIGH_UTILIZATION_MESSAGE,
            TOO_MANY_SESSIONS_MESSAGE,
        ]


class TestSessionUtilization:
    def test_average_is_capped(self, now: "datetime") -> "None":
        starts = [now - timedelta(hours=10), now - timedelta(hours=20)]
        assert session_utilization(starts, now) == 100.0

    def test_average(self, now: "datetime") -> "None":
        starts = [now - timedelta(hours=1), now - timedelta(hours=3)]
        assert session_utilization(starts, now) == pytest.approx(40.0)

    def test_future_start_counts_as_zero(self, now: "datetime") -> "None":
        starts = [now + timedelta(hours=3)]
        assert session_utilization(starts, now) == 0.0

    def test_no_sessions(self, now: "datetime") -> "None":
        assert session_utilization([], now) == 0.0


class TestBurnRate:
    def test_no_data(self, now: "datetime") -> "None":
        report = burn_rate([], now)
        assert report.current_burn_rate == 0.0
        assert report.estimated_depletion_time is None
        assert report.recommendations == (NO_DATA_MESSAGE,)

    def test_no_recent_activity(self, now: "datetime") -> "None":
        report = burn_rate([make_record(_ts(now, 90))], now)
        assert report.current_burn_rate == 0.0
        assert report.session_utilization == 0.0
        assert report.recommendations == (NO_RECENT_ACTIVITY_MESSAGE,)

    def test_rate_counts_only_trailing_hour(self, now: "datetime") -> "None":
        records = [
            make_record(_ts(now, 120), session_id="s1", input_tokens=9_000),
            make_record(_ts(now, 30), session_id="s1", input_tokens=600),
            make_record(
                _ts(now, 5),
                session_id="s1",
                input_tokens=0,
                output_tokens=300,
                cache_read_tokens=300,
            ),
        ]
        report = burn_rate(records, now)
        assert report.current_burn_rate == pytest.approx(1_200 / 60)
        assert report.estimated_depletion_time is None
        # single session started 2h ago
        assert report.session_utilization == pytest.approx(40.0)
        assert report.recommendations == (NOMINAL_MESSAGE,)

    def test_high_usage_recommendations(self, now: "datetime") -> "None":
        records = [
            make_record(_ts(now, 10), session_id=f"s{i}", input_tokens=10_000)
            for i in range(4)
        ]
        report = burn_rate(records, now)
        assert report.current_burn_rate > 100
        assert HIGH_BURN_RATE_MESSAGE in report.recommendations
        assert TOO_MANY_SESSIONS_MESSAGE in report.recommendations
        assert HIGH_UTILIZATION_MESSAGE not in report.recommendations

    def test_future_records_do_not_count(self, now: "datetime") -> "None":
        report = burn_rate([make_record(_ts(now, -180), input_tokens=6_000)], now)
        assert report.current_burn_rate == 0.0
        assert report.recommendations == (NO_RECENT_ACTIVITY_MESSAGE,)

    def test_future_session_start_does_not_go_negative(self, now: "datetime") -> "None":
        records = [
            make_record(_ts(now, 30), session_id="s1", input_tokens=600),
            make_record(_ts(now, -180), session_id="s2", input_tokens=6_000),
        ]
        report = burn_rate(records, now)
        assert report.current_burn_rate == pytest.approx(600 / 60)
        # s1 is 0.5h in, s2 counts as 0h
        assert report.session_utilization == pytest.approx(5.0)
