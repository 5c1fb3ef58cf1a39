"""Duty-roster spreadsheet import pipeline and schedule queries."""
