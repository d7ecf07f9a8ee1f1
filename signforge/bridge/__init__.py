"""Bridges to external services."""
