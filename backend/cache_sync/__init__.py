"""Local cache synchronization for cities and locations."""
