"""Holibayt booking REST API."""
