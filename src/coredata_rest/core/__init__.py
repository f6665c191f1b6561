"""Shared naming helpers and error types."""
