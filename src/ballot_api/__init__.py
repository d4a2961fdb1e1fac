"""Ballot API: ballot validation, double-vote prevention, and live tallying service."""
