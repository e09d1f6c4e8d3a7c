"""Booking and scheduling core: slots, recurrence, timezones, cancellation links and refunds."""

__version__ = "0.1.0"
