"""Booking admission engine: capacity-safe reservations over time-boxed resources."""

__version__ = "1.0.0"
