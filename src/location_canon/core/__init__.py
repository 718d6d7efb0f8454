"""Core validation helpers for canonical location tables."""
