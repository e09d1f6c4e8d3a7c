"""
Recurrence rule schemas.

A rule is a tagged union on ``frequency`` so fields that only make sense for
one frequency (``daysOfWeek`` for weekly, ``monthlyMode`` for monthly) cannot
be attached to another. Every rule carries exactly one end condition.
"""

import datetime
from typing import Annotated, Any, Literal, Mapping, Tuple, Union

from pydantic import Field, TypeAdapter, ValidationError, field_validator

from ..core.constants import MAX_OCCURRENCES, MAX_RECURRENCE_INTERVAL, MIN_OCCURRENCES
from ..core.enums import MonthlyMode
from ..core.exceptions import InvalidRecurrenceRuleException
from ._strict_base import StrictModel

DateType = datetime.date


class AfterOccurrences(StrictModel):
    """Stop after N emitted occurrences."""

    after_occurrences: int = Field(ge=MIN_OCCURRENCES, le=MAX_OCCURRENCES)


class OnDate(StrictModel):
    """Stop once the next occurrence would fall after this date (inclusive bound)."""

    on_date: DateType


# Both variants forbid extras, so a payload carrying both keys (or neither) matches none.
RecurrenceEnd = Union[AfterOccurrences, OnDate]

Interval = Annotated[int, Field(ge=1, le=MAX_RECURRENCE_INTERVAL)]


class _RuleBase(StrictModel):
    end: RecurrenceEnd


class DailyRule(_RuleBase):
    frequency: Literal["daily"] = "daily"
    interval: Interval = 1


class WeeklyRule(_RuleBase):
    frequency: Literal["weekly"] = "weekly"
    interval: Interval = 1
    # 0 = Sunday ... 6 = Saturday; empty means "the start date's weekday"
    days_of_week: Tuple[Annotated[int, Field(ge=0, le=6)], ...] = ()

    @field_validator("days_of_week")
    @classmethod
    def _normalise_days(cls, value: Tuple[int, ...]) -> Tuple[int, ...]:
        return tuple(sorted(set(value)))


class MonthlyRule(_RuleBase):
    frequency: Literal["monthly"] = "monthly"
    interval: Interval = 1
    monthly_mode: MonthlyMode = MonthlyMode.DAY_OF_MONTH


class YearlyRule(_RuleBase):
    frequency: Literal["yearly"] = "yearly"
    interval: Interval = 1


class WeekdayRule(_RuleBase):
    """Every Monday to Friday. Any interval is accepted for compatibility and ignored."""

    frequency: Literal["weekday"] = "weekday"
    interval: Interval = 1


RecurrenceRule = Annotated[
    Union[DailyRule, WeeklyRule, MonthlyRule, YearlyRule, WeekdayRule],
    Field(discriminator="frequency"),
]

_RULE_ADAPTER: TypeAdapter = TypeAdapter(RecurrenceRule)


def parse_recurrence_rule(data: Union[Mapping[str, Any], StrictModel]) -> RecurrenceRule:
    """
    Validate a stored recurrence rule payload.

    Raises:
        InvalidRecurrenceRuleException: unknown frequency, missing or
            contradictory ``end``, or fields that do not apply to the frequency
    """
    if isinstance(data, (DailyRule, WeeklyRule, MonthlyRule, YearlyRule, WeekdayRule)):
        return data
    try:
        return _RULE_ADAPTER.validate_python(data)
    except ValidationError as exc:
        raise InvalidRecurrenceRuleException(
            "Invalid recurrence rule",
            details={
                "errors": [
                    {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
                    for err in exc.errors()
                ]
            },
        ) from exc
