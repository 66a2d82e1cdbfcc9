"""Shared helpers for error reporting and sheet summaries."""
