"""Session-level data access for the cache tables."""
