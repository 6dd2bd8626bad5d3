"""Core domain types, events, scheduling and session state."""
