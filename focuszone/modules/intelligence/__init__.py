"""Session analytics and attention readouts."""
