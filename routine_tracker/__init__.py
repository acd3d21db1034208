"""Routine tracker: recurring routines, daily check-ins and streaks."""

__version__ = "1.0.0"
