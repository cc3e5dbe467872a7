"""Opportunity tracker: backend API, client core and deadline reminders."""

__version__ = "1.0.0"
