"""Candidates, suites, calibration and aggregation."""
