"""Persistence services for learning data."""
