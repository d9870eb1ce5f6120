"""Shared helpers for the strata test suite."""
