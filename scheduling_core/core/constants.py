"""Shared constants for the scheduling core."""

from __future__ import annotations

DEFAULT_TIMEZONE = "Australia/Sydney"
DEFAULT_CURRENCY = "AUD"

# Booking defaults
DEFAULT_SLOT_DURATION_MINUTES = 30
DEFAULT_BUFFER_MINUTES = 0
DEFAULT_LOOKAHEAD_DAYS = 30
DEFAULT_CANCELLATION_DEADLINE_HOURS = 24

# Recurrence limits
MIN_OCCURRENCES = 1
MAX_OCCURRENCES = 52
MAX_RECURRENCE_INTERVAL = 30
MAX_RECURRENCE_EXPANSION = 366

# Preset occurrence counts offered for a new recurring series
PRESET_OCCURRENCES = {
    "daily": 52,
    "weekly": 52,
    "monthly": 12,
    "yearly": 5,
    "weekday": 52,
}

# Day indexes follow the client convention: 0 = Sunday ... 6 = Saturday
DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
ORDINALS = ["first", "second", "third", "fourth", "fifth"]

# Reminders
REMINDER_DAY_BEFORE_HOURS = 24
REMINDER_STARTING_SOON_MINUTES = 10

# Cancellation link paths
BOOKING_CANCEL_PATH = "/booking/cancel"
WEBINAR_CANCEL_PATH = "/webinar/cancel"
