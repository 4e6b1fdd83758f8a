"""Keeps performer and venue calendars in step with show bookings."""

__version__ = "0.1.0"
