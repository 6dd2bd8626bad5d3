"""Optional live landmark source (requires the camera extra)."""
