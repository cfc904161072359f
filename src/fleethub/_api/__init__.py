"""REST endpoint modules (internal)."""
