"""Record and scenario builders for trip detection tests."""
