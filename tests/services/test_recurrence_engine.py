from datetime import date

import pytest

from scheduling_core.core.config import settings
from scheduling_core.core.exceptions import InvalidRecurrenceRuleException
from scheduling_core.schemas import MonthlyRule, WeeklyRule
from scheduling_core.services.recurrence_engine import RecurrenceEngine, weekday_ordinal


@pytest.fixture
def engine() -> RecurrenceEngine:
    return RecurrenceEngine()


def _rule(frequency: str, end: dict, **fields) -> dict:
    return {"frequency": frequency, "end": end, **fields}


def _assert_strictly_increasing(dates):
    assert all(earlier < later for earlier, later in zip(dates, dates[1:]))


class TestDaily:
    def test_interval_with_inclusive_on_date(self, engine):
        rule = _rule("daily", {"onDate": "2025-01-10"}, interval=3)
        assert engine.expand(date(2025, 1, 1), rule) == [
            date(2025, 1, 1),
            date(2025, 1, 4),
            date(2025, 1, 7),
            date(2025, 1, 10),
        ]

    def test_after_occurrences(self, engine):
        rule = _rule("daily", {"afterOccurrences": 3})
        assert engine.expand(date(2025, 2, 27), rule) == [
            date(2025, 2, 27),
            date(2025, 2, 28),
            date(2025, 3, 1),
        ]

    def test_on_date_before_start_is_empty(self, engine):
        rule = _rule("daily", {"onDate": "2024-12-31"})
        assert engine.expand(date(2025, 1, 1), rule) == []

    def test_on_date_expansion_is_capped(self, engine, monkeypatch):
        monkeypatch.setattr(settings, "max_recurrence_expansion", 10)
        rule = _rule("daily", {"onDate": "2030-01-01"})
        assert len(engine.expand(date(2025, 1, 1), rule)) == 10


class TestWeekly:
    def test_days_in_interval_blocks_never_before_start(self, engine):
        # Wednesday start, Mon+Wed every second week
        rule = _rule("weekly", {"afterOccurrences": 5}, interval=2, daysOfWeek=[3, 1])
        assert engine.expand(date(2025, 3, 12), rule) == [
            date(2025, 3, 12),
            date(2025, 3, 24),
            date(2025, 3, 26),
            date(2025, 4, 7),
            date(2025, 4, 9),
        ]

    def test_empty_days_default_to_start_weekday(self, engine):
        rule = _rule("weekly", {"afterOccurrences": 3})
        assert engine.expand(date(2025, 3, 13), rule) == [
            date(2025, 3, 13),
            date(2025, 3, 20),
            date(2025, 3, 27),
        ]

    def test_sunday_and_saturday_in_same_block(self, engine):
        rule = _rule("weekly", {"afterOccurrences": 4}, daysOfWeek=[0, 6])
        # Sunday 2025-03-09 starts the block
        assert engine.expand(date(2025, 3, 9), rule) == [
            date(2025, 3, 9),
            date(2025, 3, 15),
            date(2025, 3, 16),
            date(2025, 3, 22),
        ]


class TestMonthly:
    def test_jan_31_clamps_to_leap_february(self, engine):
        rule = _rule("monthly", {"afterOccurrences": 4}, monthlyMode="dayOfMonth")
        assert engine.expand(date(2024, 1, 31), rule) == [
            date(2024, 1, 31),
            date(2024, 2, 29),
            date(2024, 3, 31),
            date(2024, 4, 30),
        ]

    def test_jan_31_clamps_to_common_february(self, engine):
        rule = _rule("monthly", {"afterOccurrences": 3}, monthlyMode="dayOfMonth")
        assert engine.expand(date(2025, 1, 31), rule) == [
            date(2025, 1, 31),
            date(2025, 2, 28),
            date(2025, 3, 31),
        ]

    def test_interval_crosses_year_boundary(self, engine):
        rule = _rule("monthly", {"afterOccurrences": 3}, interval=5)
        assert engine.expand(date(2024, 10, 15), rule) == [
            date(2024, 10, 15),
            date(2025, 3, 15),
            date(2025, 8, 15),
        ]

    def test_third_tuesday_across_leap_year(self, engine):
        start = date(2023, 9, 19)  # third Tuesday of September 2023
        rule = _rule("monthly", {"afterOccurrences": 15}, monthlyMode="dayOfWeek")
        dates = engine.expand(start, rule)

        assert len(dates) == 15
        assert date(2024, 2, 20) in dates
        for index, occurrence in enumerate(dates):
            months_from_start = (occurrence.year - 2023) * 12 + occurrence.month - 9
            assert months_from_start == index
            assert occurrence.weekday() == 1
            assert weekday_ordinal(occurrence) == 3
        _assert_strictly_increasing(dates)

    def test_fifth_weekday_clamps_to_last(self, engine):
        start = date(2024, 1, 30)  # fifth Tuesday of January 2024
        rule = _rule("monthly", {"afterOccurrences": 4}, monthlyMode="dayOfWeek")
        assert engine.expand(start, rule) == [
            date(2024, 1, 30),
            date(2024, 2, 27),
            date(2024, 3, 26),
            date(2024, 4, 30),
        ]

    def test_accepts_validated_rule_model(self, engine):
        rule = MonthlyRule(end={"after_occurrences": 2})
        assert engine.expand(date(2025, 5, 31), rule) == [date(2025, 5, 31), date(2025, 6, 30)]


class TestYearlyAndWeekday:
    def test_feb_29_clamps_outside_leap_years(self, engine):
        rule = _rule("yearly", {"afterOccurrences": 5})
        assert engine.expand(date(2024, 2, 29), rule) == [
            date(2024, 2, 29),
            date(2025, 2, 28),
            date(2026, 2, 28),
            date(2027, 2, 28),
            date(2028, 2, 29),
        ]

    def test_weekday_skips_weekends(self, engine):
        rule = _rule("weekday", {"afterOccurrences": 4})
        assert engine.expand(date(2025, 3, 14), rule) == [
            date(2025, 3, 14),
            date(2025, 3, 17),
            date(2025, 3, 18),
            date(2025, 3, 19),
        ]

    def test_weekday_ignores_interval(self, engine):
        start = date(2025, 3, 14)
        plain = engine.expand(start, _rule("weekday", {"afterOccurrences": 6}))
        spaced = engine.expand(start, _rule("weekday", {"afterOccurrences": 6}, interval=3))
        assert plain == spaced

    def test_weekday_start_on_saturday(self, engine):
        rule = _rule("weekday", {"onDate": "2025-03-18"})
        assert engine.expand(date(2025, 3, 15), rule) == [date(2025, 3, 17), date(2025, 3, 18)]


class TestRawSequence:
    def test_iter_occurrences_restarts_each_call(self, engine):
        rule = _rule("daily", {"afterOccurrences": 2})
        first = engine.iter_occurrences(date(2025, 1, 1), rule)
        second = engine.iter_occurrences(date(2025, 1, 1), rule)
        assert [next(first) for _ in range(5)] == [next(second) for _ in range(5)]

    def test_raw_sequence_ignores_end(self, engine):
        rule = _rule("daily", {"afterOccurrences": 2})
        raw = engine.iter_occurrences(date(2025, 1, 1), rule)
        assert len([next(raw) for _ in range(10)]) == 10

    def test_expand_is_deterministic(self, engine):
        rule = _rule("monthly", {"afterOccurrences": 12}, monthlyMode="dayOfWeek")
        assert engine.expand(date(2025, 1, 28), rule) == engine.expand(date(2025, 1, 28), rule)


class TestInvalidRules:
    @pytest.mark.parametrize(
        "payload",
        [
            {"frequency": "daily", "interval": 1},
            _rule("daily", {"afterOccurrences": 3, "onDate": "2025-01-01"}),
            _rule("daily", {}),
            _rule("daily", {"afterOccurrences": 0}),
            _rule("daily", {"afterOccurrences": 53}),
            _rule("daily", {"afterOccurrences": 3}, interval=31),
            _rule("daily", {"afterOccurrences": 3}, daysOfWeek=[1]),
            _rule("weekly", {"afterOccurrences": 3}, monthlyMode="dayOfMonth"),
            _rule("weekly", {"afterOccurrences": 3}, daysOfWeek=[7]),
            _rule("hourly", {"afterOccurrences": 3}),
        ],
    )
    def test_rejected(self, engine, payload):
        with pytest.raises(InvalidRecurrenceRuleException) as exc:
            engine.expand(date(2025, 1, 1), payload)
        assert exc.value.code == "INVALID_RECURRENCE_RULE"
        assert exc.value.details["errors"]


class TestPresetsAndDescriptions:
    def test_presets_for_third_tuesday(self, engine):
        presets = engine.presets(date(2025, 3, 18))
        labels = {preset.key: preset.label for preset in presets}
        assert labels == {
            "daily": "Daily",
            "weekly": "Weekly on Tuesday",
            "monthly_day": "Monthly on day 18",
            "monthly_weekday": "Monthly on the third Tuesday",
            "yearly": "Annually on March 18",
            "weekday": "Every weekday (Mon–Fri)",
        }
        counts = {preset.key: preset.rule.end.after_occurrences for preset in presets}
        assert counts == {
            "daily": 52,
            "weekly": 52,
            "monthly_day": 12,
            "monthly_weekday": 12,
            "yearly": 5,
            "weekday": 52,
        }

    def test_weekly_preset_pins_start_weekday(self, engine):
        weekly = next(p for p in engine.presets(date(2025, 3, 18)) if p.key == "weekly")
        assert isinstance(weekly.rule, WeeklyRule)
        assert weekly.rule.days_of_week == (2,)

    def test_describe_with_interval(self, engine):
        start = date(2025, 3, 18)
        assert engine.describe(start, _rule("daily", {"afterOccurrences": 2}, interval=3)) == (
            "Every 3 days"
        )
        assert (
            engine.describe(start, _rule("weekly", {"afterOccurrences": 2}, interval=2, daysOfWeek=[1, 4]))
            == "Every 2 weeks on Monday, Thursday"
        )
        assert (
            engine.describe(start, _rule("monthly", {"afterOccurrences": 2}, interval=2, monthlyMode="dayOfWeek"))
            == "Every 2 months on the third Tuesday"
        )
        assert engine.describe(start, _rule("yearly", {"afterOccurrences": 2}, interval=2)) == (
            "Every 2 years on March 18"
        )
