"""Landmark normalization and anchor indices."""
