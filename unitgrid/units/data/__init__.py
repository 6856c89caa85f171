"""Unit catalogue build script and built tables."""
