"""Roster spreadsheet import for staff credential tracking."""

__version__ = "0.3.0"
