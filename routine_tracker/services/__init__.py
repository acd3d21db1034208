"""Business services: routines, check-ins, streaks, generation and events."""
