"""Shared domain layer for the Holibayt booking backend."""
