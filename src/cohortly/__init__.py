"""Cohortly: program, enrollment and assessment management API."""

__version__ = "0.1.0"
