"""Per-frame recognizers: gestures, focus and swipes."""
