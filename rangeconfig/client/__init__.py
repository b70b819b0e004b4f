"""Configuration clients: delivery, backend detection and application."""
