"""Read-only status API."""
