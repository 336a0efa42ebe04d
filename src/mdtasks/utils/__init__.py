"""Shared helpers: dates, ids, tag and priority formatting."""
