"""Helpers for testing code that uses ctrf_reporter."""
