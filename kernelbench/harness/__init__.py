"""Timing primitives and the run harness."""
