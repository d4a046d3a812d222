"""Hourly drone flight ratings and best-window search."""
