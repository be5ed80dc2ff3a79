"""Shared helpers: authentication and response validation."""
