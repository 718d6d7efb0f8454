"""Codebook enumerations for location history and trip tables."""
