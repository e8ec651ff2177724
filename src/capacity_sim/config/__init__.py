"""Configuration and snapshot loading."""
