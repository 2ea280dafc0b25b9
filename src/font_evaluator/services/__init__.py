"""Recommendation, reconciliation, submission and storage services."""
