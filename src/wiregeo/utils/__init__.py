"""Utilities shared across the package."""
