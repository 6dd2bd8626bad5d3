"""Configuration, logging, performance monitoring and synthetic frames."""
