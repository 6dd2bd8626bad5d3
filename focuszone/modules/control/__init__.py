"""Gesture dwell tracking."""
