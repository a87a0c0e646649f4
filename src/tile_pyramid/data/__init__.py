"""Bundled sample point data."""
