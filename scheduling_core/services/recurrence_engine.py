"""
Recurrence expansion for recurring calendar events and webinar series.

``iter_occurrences`` yields the raw, unbounded occurrence sequence for a rule;
``expand`` applies the rule's own end condition. Callers that impose their
own count (webinar session counts) slice the raw sequence instead.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from itertools import islice
import logging
from typing import Any, Iterator, Mapping, Union

from ..core.config import settings
from ..core.constants import DAY_NAMES, ORDINALS, PRESET_OCCURRENCES
from ..core.enums import MonthlyMode
from ..core.timezone_utils import day_index
from ..schemas.recurrence import (
    AfterOccurrences,
    DailyRule,
    MonthlyRule,
    RecurrenceRule,
    WeekdayRule,
    WeeklyRule,
    YearlyRule,
    parse_recurrence_rule,
)

logger = logging.getLogger(__name__)

RuleInput = Union[RecurrenceRule, Mapping[str, Any]]


def _shift_month(year: int, month: int, months: int) -> tuple[int, int]:
    total = year * 12 + (month - 1) + months
    return total // 12, total % 12 + 1


def _clamped_date(year: int, month: int, day: int) -> date:
    """``day`` of the month, or the month's last day when it is shorter."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def _nth_weekday(year: int, month: int, weekday: int, ordinal: int) -> date:
    """
    The ``ordinal``-th ``weekday`` (Monday=0) of a month.

    A 5th occurrence that does not exist falls back to the last such weekday.
    """
    first_weekday = date(year, month, 1).weekday()
    day = 1 + (weekday - first_weekday) % 7 + (ordinal - 1) * 7
    last_day = calendar.monthrange(year, month)[1]
    while day > last_day:
        day -= 7
    return date(year, month, day)


def weekday_ordinal(day: date) -> int:
    """1-based position of ``day`` among the same weekdays in its month."""
    return (day.day - 1) // 7 + 1


@dataclass(frozen=True)
class RecurrencePreset:
    key: str
    label: str
    rule: RecurrenceRule


class RecurrenceEngine:
    """Expands recurrence rules into ordered, duplicate-free local dates."""

    def iter_occurrences(self, start_date: date, rule: RuleInput) -> Iterator[date]:
        """
        Raw occurrence sequence, ignoring the rule's end condition.

        Each call returns a fresh iterator. Dates are strictly increasing
        and never before ``start_date``.
        """
        parsed = parse_recurrence_rule(rule)
        if isinstance(parsed, DailyRule):
            return self._daily(start_date, parsed.interval)
        if isinstance(parsed, WeeklyRule):
            return self._weekly(start_date, parsed)
        if isinstance(parsed, MonthlyRule):
            if parsed.monthly_mode is MonthlyMode.DAY_OF_WEEK:
                return self._monthly_by_weekday(start_date, parsed.interval)
            return self._monthly_by_day(start_date, parsed.interval)
        if isinstance(parsed, YearlyRule):
            return self._yearly(start_date, parsed.interval)
        return self._weekdays(start_date)

    def expand(self, start_date: date, rule: RuleInput) -> list[date]:
        """
        Occurrence dates honouring the rule's end condition.

        ``afterOccurrences`` stops after N dates; ``onDate`` includes a date
        falling exactly on the bound. ``onDate`` expansions are capped at
        ``settings.max_recurrence_expansion``.

        Raises:
            InvalidRecurrenceRuleException: malformed rule payload
        """
        parsed = parse_recurrence_rule(rule)
        occurrences = self.iter_occurrences(start_date, parsed)
        end = parsed.end
        if isinstance(end, AfterOccurrences):
            return list(islice(occurrences, end.after_occurrences))

        cap = settings.max_recurrence_expansion
        dates: list[date] = []
        for occurrence in occurrences:
            if occurrence > end.on_date:
                break
            if len(dates) >= cap:
                logger.warning(
                    "recurrence_expansion_capped",
                    extra={
                        "frequency": parsed.frequency,
                        "start_date": start_date.isoformat(),
                        "on_date": end.on_date.isoformat(),
                        "cap": cap,
                    },
                )
                break
            dates.append(occurrence)
        return dates

    def presets(self, start_date: date) -> list[RecurrencePreset]:
        """Common rules offered when a series starts on ``start_date``."""
        day_name = DAY_NAMES[day_index(start_date)]
        weekly = WeeklyRule(
            days_of_week=(day_index(start_date),),
            end=AfterOccurrences(after_occurrences=PRESET_OCCURRENCES["weekly"]),
        )
        candidates: list[tuple[str, RecurrenceRule]] = [
            ("daily", DailyRule(end=AfterOccurrences(after_occurrences=PRESET_OCCURRENCES["daily"]))),
            ("weekly", weekly),
            (
                "monthly_day",
                MonthlyRule(
                    monthly_mode=MonthlyMode.DAY_OF_MONTH,
                    end=AfterOccurrences(after_occurrences=PRESET_OCCURRENCES["monthly"]),
                ),
            ),
            (
                "monthly_weekday",
                MonthlyRule(
                    monthly_mode=MonthlyMode.DAY_OF_WEEK,
                    end=AfterOccurrences(after_occurrences=PRESET_OCCURRENCES["monthly"]),
                ),
            ),
            ("yearly", YearlyRule(end=AfterOccurrences(after_occurrences=PRESET_OCCURRENCES["yearly"]))),
            (
                "weekday",
                WeekdayRule(end=AfterOccurrences(after_occurrences=PRESET_OCCURRENCES["weekday"])),
            ),
        ]
        presets = [
            RecurrencePreset(key=key, label=self.describe(start_date, rule), rule=rule)
            for key, rule in candidates
        ]
        logger.debug(
            "recurrence_presets_built",
            extra={"start_date": start_date.isoformat(), "weekday": day_name},
        )
        return presets

    def describe(self, start_date: date, rule: RuleInput) -> str:
        """Human-readable label, e.g. "Monthly on the third Tuesday"."""
        parsed = parse_recurrence_rule(rule)
        interval = parsed.interval
        day_name = DAY_NAMES[day_index(start_date)]

        if isinstance(parsed, WeekdayRule):
            return "Every weekday (Mon–Fri)"
        if isinstance(parsed, DailyRule):
            return "Daily" if interval == 1 else f"Every {interval} days"
        if isinstance(parsed, WeeklyRule):
            days = parsed.days_of_week or (day_index(start_date),)
            names = ", ".join(DAY_NAMES[index] for index in days)
            return f"Weekly on {names}" if interval == 1 else f"Every {interval} weeks on {names}"
        if isinstance(parsed, MonthlyRule):
            prefix = "Monthly" if interval == 1 else f"Every {interval} months"
            if parsed.monthly_mode is MonthlyMode.DAY_OF_WEEK:
                ordinal = ORDINALS[weekday_ordinal(start_date) - 1]
                return f"{prefix} on the {ordinal} {day_name}"
            return f"{prefix} on day {start_date.day}"
        month_name = calendar.month_name[start_date.month]
        prefix = "Annually" if interval == 1 else f"Every {interval} years"
        return f"{prefix} on {month_name} {start_date.day}"

    # Generators

    @staticmethod
    def _daily(start_date: date, interval: int) -> Iterator[date]:
        step = timedelta(days=interval)
        current = start_date
        while True:
            yield current
            if date.max - current < step:
                return
            current += step

    @staticmethod
    def _weekly(start_date: date, rule: WeeklyRule) -> Iterator[date]:
        days = rule.days_of_week or (day_index(start_date),)
        # Blocks start on the Sunday of the start date's week
        block_start = start_date - timedelta(days=day_index(start_date))
        block_step = timedelta(weeks=rule.interval)
        while True:
            for index in days:
                candidate = block_start + timedelta(days=index)
                if candidate >= start_date:
                    yield candidate
            if date.max - block_start < block_step + timedelta(days=6):
                return
            block_start += block_step

    @staticmethod
    def _monthly_by_day(start_date: date, interval: int) -> Iterator[date]:
        step = 0
        while True:
            year, month = _shift_month(start_date.year, start_date.month, step)
            if year > date.max.year:
                return
            yield _clamped_date(year, month, start_date.day)
            step += interval

    @staticmethod
    def _monthly_by_weekday(start_date: date, interval: int) -> Iterator[date]:
        ordinal = weekday_ordinal(start_date)
        weekday = start_date.weekday()
        step = 0
        while True:
            year, month = _shift_month(start_date.year, start_date.month, step)
            if year > date.max.year:
                return
            yield _nth_weekday(year, month, weekday, ordinal)
            step += interval

    @staticmethod
    def _yearly(start_date: date, interval: int) -> Iterator[date]:
        year = start_date.year
        while year <= date.max.year:
            # Feb 29 falls back to Feb 28 outside leap years
            yield _clamped_date(year, start_date.month, start_date.day)
            year += interval

    @staticmethod
    def _weekdays(start_date: date) -> Iterator[date]:
        current = start_date
        one_day = timedelta(days=1)
        while current < date.max:
            if current.weekday() < 5:
                yield current
            current += one_day

