"""Configuration server: inventory, matching and the HTTP service."""
